from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Tuple

from sqlalchemy.orm import Session

from apothecary.config import Config
from apothecary.errors import NotFoundError
from apothecary.models import Compound, Order, OrderItem, OrderStatus, Product, User
from apothecary.observability import increment_counter, record_event
from apothecary.schemas import OrderCreate
from apothecary.services.inventory_service import InventoryService


def calculate_order_totals(subtotal: float, config: type[Config] = Config) -> Dict[str, float]:
    """Shipping, tax and grand total for a server-side subtotal."""
    subtotal = round(subtotal, 2)
    shipping = 0.0 if subtotal >= config.FREE_SHIPPING_THRESHOLD else config.FLAT_SHIPPING_FEE
    tax = round(subtotal * config.TAX_RATE, 2)
    return {
        "subtotal": subtotal,
        "shipping_cost": round(shipping, 2),
        "tax": tax,
        "total_amount": round(subtotal + shipping + tax, 2),
    }


class OrderService:
    """Checkout for catalog products and a customer's own compounds, priced on the server."""

    def __init__(
        self,
        db_session: Session,
        config: type[Config] = Config,
        inventory_service: InventoryService | None = None,
    ) -> None:
        self.db = db_session
        self.config = config
        self.inventory_service = inventory_service or InventoryService(db_session)
        self.logger = logging.getLogger(__name__)

    def list_orders(self, user_id: int) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.userID == user_id)
            .order_by(Order.created_at.desc(), Order.orderID.desc())
            .all()
        )

    def create_order(self, user: User, payload: OrderCreate) -> Order:
        lines, product_quantities = self._price_items(user, payload)

        for product_id, quantity in product_quantities.items():
            self.inventory_service.ensure_available(self.db.get(Product, product_id), quantity)

        totals = calculate_order_totals(sum(item.line_total for item in lines), self.config)
        order = Order(
            userID=user.userID,
            status=OrderStatus.PENDING,
            shipping_address=payload.shippingAddress.model_dump(exclude_none=True),
            **totals,
        )
        order.items.extend(lines)
        self.db.add(order)

        for product_id, quantity in product_quantities.items():
            self.inventory_service.decrease_stock(product_id, quantity, reason="order")

        self.db.commit()

        increment_counter("orders_created_total")
        record_event(
            "order_created",
            {"order_id": order.orderID, "user_id": user.userID, "total_amount": totals["total_amount"]},
        )
        self.logger.info(
            "Order %s created",
            order.orderID,
            extra={"user_id": user.userID, "items": len(lines), "total_amount": totals["total_amount"]},
        )
        return order

    def _price_items(self, user: User, payload: OrderCreate) -> Tuple[List[OrderItem], Dict[int, int]]:
        lines: List[OrderItem] = []
        product_quantities: Dict[int, int] = defaultdict(int)

        for item in payload.items:
            if item.type == "compound":
                compound = (
                    self.db.query(Compound)
                    .filter(Compound.compoundID == item.compound_id, Compound.ownerID == user.userID)
                    .first()
                )
                if compound is None:
                    raise NotFoundError(f"Compound {item.compound_id} not found")
                lines.append(
                    OrderItem(
                        compoundID=compound.compoundID,
                        compound=compound,
                        quantity=item.quantity,
                        price=float(compound.price),
                    )
                )
                continue

            product = (
                self.db.query(Product)
                .filter(Product.productID == item.product_id, Product.is_active.is_(True))
                .with_for_update()
                .first()
            )
            if product is None:
                raise NotFoundError(f"Product {item.product_id} not found")
            product_quantities[product.productID] += item.quantity
            lines.append(
                OrderItem(
                    productID=product.productID,
                    product=product,
                    quantity=item.quantity,
                    price=float(product.price),
                )
            )

        return lines, dict(product_quantities)
