from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Answer(str, Enum):
    YES = "yes"
    NO = "no"
    SOMETIMES = "sometimes"


class CurrentSituation(str, Enum):
    JUST_BEGINNING = "just_beginning"
    MANAGING_CHRONIC = "managing_chronic"
    YEARS_NO_RESOLUTION = "years_no_resolution"
    GENERALLY_HEALTHY = "generally_healthy"
    RECOVERING = "recovering"


class PrimaryGoal(str, Enum):
    RESOLVE_DIGESTIVE = "resolve_digestive"
    INCREASE_ENERGY = "increase_energy"
    ADDRESS_TOXIC_LOAD = "address_toxic_load"
    LOSE_WEIGHT = "lose_weight"
    ADDRESS_SPECIFIC_SYMPTOMS = "address_specific_symptoms"
    OPTIMIZE_HEALTH = "optimize_health"


class BiggestObstacle(str, Enum):
    DONT_KNOW_WHERE_TO_START = "dont_know_where_to_start"
    TRIED_MANY_THINGS = "tried_many_things"
    CONFLICTING_INFORMATION = "conflicting_information"
    COST_OF_CARE = "cost_of_care"
    NOT_ENOUGH_TIME = "not_enough_time"
    DISMISSED_BY_PRACTITIONERS = "dismissed_by_practitioners"


class PreferredSupport(str, Enum):
    SELF_GUIDED = "self_guided"
    ONE_TIME_CONSULT = "one_time_consult"
    COMPREHENSIVE_TESTING = "comprehensive_testing"
    ONGOING_SUPPORT = "ongoing_support"
    FULL_SERVICE_PARTNERSHIP = "full_service_partnership"


class ScoreCategory(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    NEEDS_ATTENTION = "needs_attention"


class QualificationLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


BEST_PRACTICE_QUESTIONS: Tuple[str, ...] = (
    "q1_digestive_issues",
    "q2_sleep_quality",
    "q3_medications",
    "q4_processed_foods",
    "q5_energy_crashes",
    "q6_water_intake",
    "q7_toxic_exposure",
    "q8_symptoms",
    "q9_supplements",
    "q10_unresolved_issues",
)

INSIGHT_GROUPS: Tuple[str, ...] = ("gut", "toxic", "lifestyle")


@dataclass(frozen=True)
class WellnessScoreSummary:
    score: int
    category: ScoreCategory
    insight_flags: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "category": self.category.value,
            "insight_flags": dict(self.insight_flags),
        }


@dataclass(frozen=True)
class InsightCopy:
    title: str
    status: str
    summary: str


@dataclass(frozen=True)
class CallToAction:
    label: str
    href: str


@dataclass(frozen=True)
class NextStepRecommendation:
    title: str
    summary: str
    bullets: List[str]
    primary_cta: CallToAction
    secondary_cta: Optional[CallToAction] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AssessmentResultPayload:
    id: str
    name: str
    score: int
    category: ScoreCategory
    insight_flags: Dict[str, str]
    qualification_level: QualificationLevel
    recommended_next_step: NextStepRecommendation
    insights: List[InsightCopy] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "score": self.score,
            "category": self.category.value,
            "insight_flags": dict(self.insight_flags),
            "qualification_level": self.qualification_level.value,
            "recommended_next_step": self.recommended_next_step.to_dict(),
            "insights": [asdict(insight) for insight in self.insights],
        }
