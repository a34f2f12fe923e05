from .admin import admin_bp
from .assessments import assessments_bp
from .batches import batches_bp
from .catalog import catalog_bp
from .compounds import compounds_bp
from .newsletter import newsletter_bp
from .orders import orders_bp
from .reviews import reviews_bp

ALL_BLUEPRINTS = (
    catalog_bp,
    reviews_bp,
    compounds_bp,
    batches_bp,
    assessments_bp,
    orders_bp,
    newsletter_bp,
    admin_bp,
)

__all__ = [
    "ALL_BLUEPRINTS",
    "admin_bp",
    "assessments_bp",
    "batches_bp",
    "catalog_bp",
    "compounds_bp",
    "newsletter_bp",
    "orders_bp",
    "reviews_bp",
]
