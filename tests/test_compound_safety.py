from apothecary.compounds import (
    SafetyContext,
    SafetyIssue,
    aggregate_safety_severity,
    check_formula_safety,
)
from apothecary.models import PregnancyRisk


def _formula(*products):
    share = 100 / len(products)
    return [{"product_id": product.productID, "percentage": share} for product in products]


def test_empty_formula_has_no_issues(db_session):
    assert check_formula_safety(db_session, [], SafetyContext(pregnancy_status="pregnant")) == []


def test_static_pregnancy_avoid_is_an_error(db_session, herbs):
    issues = check_formula_safety(
        db_session,
        _formula(herbs["vitex-berry"], herbs["lemon-balm"]),
        SafetyContext(pregnancy_status="pregnant"),
    )

    assert len(issues) == 1
    issue = issues[0]
    assert issue.severity == "error"
    assert issue.code == "PREGNANCY"
    assert issue.herb_id == herbs["vitex-berry"].productID
    assert issue.message == "Vitex Berry should be avoided during pregnancy or nursing."


def test_static_pregnancy_caution_is_a_warning(db_session, herbs):
    issues = check_formula_safety(
        db_session,
        _formula(herbs["ashwagandha-root"]),
        SafetyContext(pregnancy_status="nursing"),
    )

    assert [(issue.severity, issue.code) for issue in issues] == [("warning", "PREGNANCY")]
    assert "requires practitioner oversight" in issues[0].message


def test_not_pregnant_skips_pregnancy_checks(db_session, herbs):
    issues = check_formula_safety(
        db_session,
        _formula(herbs["vitex-berry"], herbs["ashwagandha-root"]),
        SafetyContext(pregnancy_status="not_pregnant"),
    )

    assert issues == []


def test_database_rule_takes_precedence_over_static(db_session, herbs, herb_safety_rule):
    herb_safety_rule(herbs["vitex-berry"], pregnancy_risk_level=PregnancyRisk.CAUTION)

    issues = check_formula_safety(
        db_session,
        _formula(herbs["vitex-berry"]),
        SafetyContext(pregnancy_status="unsure"),
    )

    assert [(issue.severity, issue.code) for issue in issues] == [("warning", "PREGNANCY")]


def test_medication_interactions_merge_database_and_static(db_session, herbs, herb_safety_rule):
    herb_safety_rule(herbs["turmeric-root"], interactions=["Anticoagulants"])

    issues = check_formula_safety(
        db_session,
        _formula(herbs["turmeric-root"]),
        SafetyContext(medications=["Warfarin"]),
    )

    assert len(issues) == 1
    assert issues[0].code == "MEDICATION"
    assert issues[0].severity == "warning"
    assert issues[0].message == (
        "Turmeric Root may interact with: Anticoagulants, Blood thinners. Review before dispensing."
    )


def test_interactions_ignored_without_medications(db_session, herbs):
    assert check_formula_safety(db_session, _formula(herbs["turmeric-root"]), SafetyContext()) == []


def test_allergy_matches_herb_name_case_insensitively(db_session, herbs):
    issues = check_formula_safety(
        db_session,
        _formula(herbs["ginger-root"], herbs["lemon-balm"]),
        SafetyContext(allergies=["GINGER", "  "]),
    )

    assert len(issues) == 1
    assert issues[0].code == "ALLERGY"
    assert issues[0].severity == "error"
    assert issues[0].herb_name == "Ginger Root"
    assert issues[0].message == "Ginger Root matches an allergy noted in the intake."


def test_blank_allergies_do_not_match_everything(db_session, herbs):
    issues = check_formula_safety(
        db_session,
        _formula(herbs["lemon-balm"]),
        SafetyContext(allergies=["", "   "]),
    )

    assert issues == []


def test_context_from_assessment_responses():
    context = SafetyContext.from_mapping(
        {"pregnancy_status": "pregnant", "medications": ["Sertraline"], "allergies": None}
    )

    assert context.pregnancy_status == "pregnant"
    assert context.medications == ["Sertraline"]
    assert context.allergies == []


def test_aggregate_severity():
    warning = SafetyIssue("warning", "MEDICATION", "check")
    error = SafetyIssue("error", "ALLERGY", "stop")

    assert aggregate_safety_severity([]) == "info"
    assert aggregate_safety_severity([warning]) == "warning"
    assert aggregate_safety_severity([warning, error]) == "error"
