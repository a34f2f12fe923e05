"""Question copy for the wellness self-assessment funnel."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class QuestionConfig:
    id: str
    prompt: str


@dataclass(frozen=True)
class QualifyingQuestion:
    name: str
    prompt: str
    options: Tuple[Tuple[str, str], ...]

    def values(self) -> List[str]:
        return [value for value, _ in self.options]

    def label_for(self, value: str) -> str:
        return dict(self.options).get(value, value)


BEST_PRACTICE_QUESTIONS_CONFIG: List[QuestionConfig] = [
    QuestionConfig(
        "q1_digestive_issues",
        "Do you experience digestive discomfort (bloating, gas, irregular bowel movements) "
        "more than twice per week?",
    ),
    QuestionConfig("q2_sleep_quality", "Do you wake feeling unrested, even after 7-8 hours of sleep?"),
    QuestionConfig("q3_medications", "Have you taken antibiotics or long-term medication in the past 2 years?"),
    QuestionConfig("q4_processed_foods", "Do you consume processed foods or eat out more than 3 times per week?"),
    QuestionConfig("q5_energy_crashes", "Do you experience afternoon energy crashes or rely on caffeine to function?"),
    QuestionConfig("q6_water_intake", "Do you drink less than 2 liters of water daily?"),
    QuestionConfig(
        "q7_toxic_exposure",
        "Have you been exposed to environmental toxins (old homes, industrial areas, amalgam fillings)?",
    ),
    QuestionConfig("q8_symptoms", "Do you experience skin issues, headaches, or brain fog regularly?"),
    QuestionConfig("q9_supplements", "Do you rarely take supplements or aren't sure if they're working?"),
    QuestionConfig(
        "q10_unresolved_issues",
        "Have you struggled to resolve a health concern despite trying multiple approaches?",
    ),
]

QUALIFYING_QUESTIONS: List[QualifyingQuestion] = [
    QualifyingQuestion(
        "current_situation",
        "Which best describes your current health situation?",
        (
            ("just_beginning", "Just beginning to focus on my health"),
            ("managing_chronic", "Actively managing some chronic symptoms"),
            ("years_no_resolution", "Been working on health issues for years without resolution"),
            ("generally_healthy", "Generally healthy but want to optimize and prevent future issues"),
            ("recovering", "Recovering from illness and seeking maintenance"),
        ),
    ),
    QualifyingQuestion(
        "primary_goal",
        "What is your primary health goal for the next 90 days?",
        (
            ("resolve_digestive", "Resolve digestive issues and restore gut health"),
            ("increase_energy", "Increase energy and mental clarity"),
            ("address_toxic_load", "Understand and address potential toxic load"),
            ("lose_weight", "Lose weight in a healthy, sustainable way"),
            ("address_specific_symptoms", "Address specific symptoms (skin, hormones, sleep, etc.)"),
            ("optimize_health", "Comprehensive health optimization"),
        ),
    ),
    QualifyingQuestion(
        "biggest_obstacle",
        "What has been your biggest obstacle to achieving better health?",
        (
            ("dont_know_where_to_start", "Not knowing where to start or what's really wrong"),
            ("tried_many_things", "Tried many things but nothing seems to work"),
            ("conflicting_information", "Conflicting information and advice"),
            ("cost_of_care", "Cost of testing and treatments"),
            ("not_enough_time", "Not enough time to focus on health"),
            ("dismissed_by_practitioners", "Medical practitioners dismissing my concerns"),
        ),
    ),
    QualifyingQuestion(
        "preferred_support",
        "What type of support would best suit you?",
        (
            ("self_guided", "Self-guided resources and educational content"),
            ("one_time_consult", "One-time consultation and personalized plan"),
            ("comprehensive_testing", "Comprehensive testing (e.g., Oligoscan) + treatment plan"),
            ("ongoing_support", "Ongoing support with custom herbal formulations"),
            ("full_service_partnership", "Full-service health partnership with regular monitoring"),
        ),
    ),
]

NOTES_QUESTION: Dict[str, str] = {
    "name": "additional_notes",
    "prompt": "Is there anything else you would like us to know about your health journey?",
    "placeholder": (
        "Share specific concerns, previous diagnoses, or what prompted you to take this assessment today…"
    ),
}


def questionnaire() -> Dict[str, object]:
    """Serializable questionnaire definition for the funnel front end."""
    return {
        "best_practice": [
            {"id": question.id, "prompt": question.prompt, "options": ["yes", "sometimes", "no"]}
            for question in BEST_PRACTICE_QUESTIONS_CONFIG
        ],
        "qualifying": [
            {
                "name": question.name,
                "prompt": question.prompt,
                "options": [{"value": value, "label": label} for value, label in question.options],
            }
            for question in QUALIFYING_QUESTIONS
        ],
        "notes": dict(NOTES_QUESTION),
    }
