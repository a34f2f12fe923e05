import pytest

from apothecary.sanitize import clean_text


def test_markup_is_stripped_and_entities_decoded():
    assert clean_text("Calm &amp; <b>Sleep</b>") == "Calm & Sleep"
    assert clean_text("  Tea & honey  ") == "Tea & honey"
    assert clean_text("dose < 5ml") == "dose < 5ml"


@pytest.mark.parametrize("value", [None, "", "   ", "<br>", "<p> </p>"])
def test_blank_results_become_none(value):
    assert clean_text(value) is None
