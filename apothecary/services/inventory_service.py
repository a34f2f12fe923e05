from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from apothecary.errors import ServiceError
from apothecary.models import Product
from apothecary.observability import set_gauge


class InventoryService:
    """Stock checks and adjustments for catalog products sold through checkout."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session
        self.logger = logging.getLogger(__name__)

    def ensure_available(self, product: Product, quantity: int) -> None:
        available = product.stock or 0
        if available < quantity:
            raise ServiceError(
                f"Insufficient stock for {product.name}: {available} available, {quantity} requested."
            )

    def decrease_stock(
        self,
        product_id: int,
        quantity: int,
        reason: str = "sale",
    ) -> Optional[int]:
        """
        Decrease stock for a product.

        Returns the new stock level, or None if the product does not exist.
        """
        product = self.db.query(Product).filter_by(productID=product_id).with_for_update().first()
        if not product:
            return None

        old_stock = product.stock or 0
        new_stock = max(0, old_stock - quantity)
        product.stock = new_stock
        set_gauge("product_stock", new_stock, {"product_id": str(product_id)})

        self.logger.info(
            "Stock decreased for product %d: %d -> %d (%s)",
            product_id,
            old_stock,
            new_stock,
            reason,
        )

        return new_stock
