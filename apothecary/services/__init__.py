"""Domain services used by the HTTP blueprints."""

from .batch_service import BatchService
from .catalog_service import CatalogService
from .compound_service import CompoundService
from .guided_assessment_service import GuidedAssessmentService
from .inventory_service import InventoryService
from .order_service import OrderService, calculate_order_totals
from .wellness_assessment_service import WellnessAssessmentService

__all__ = [
    "BatchService",
    "CatalogService",
    "CompoundService",
    "GuidedAssessmentService",
    "InventoryService",
    "OrderService",
    "WellnessAssessmentService",
    "calculate_order_totals",
]
