from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from apothecary.config import Config
from apothecary.errors import NotFoundError, ServiceError
from apothecary.models import Product, ProductCategory

LIKE_ESCAPE = "\\"


def _escape_like(term: str) -> str:
    """Match ``%`` and ``_`` in a search term literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class CatalogService:
    """Read-only queries over the active product catalog."""

    def __init__(self, db_session: Session, config: type[Config] = Config) -> None:
        self.db = db_session
        self.config = config
        self.logger = logging.getLogger(__name__)

    def _active(self):
        return self.db.query(Product).filter(Product.is_active.is_(True))

    def list_products(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[Product], int]:
        query = self._active()

        if category:
            try:
                query = query.filter(Product.category == ProductCategory(category))
            except ValueError:
                raise ServiceError(f"Unknown product category: {category}")

        if search:
            pattern = f"%{_escape_like(search.strip())}%"
            query = query.filter(
                or_(
                    Product.name.ilike(pattern, escape=LIKE_ESCAPE),
                    Product.description.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )

        total = query.count()
        limit = min(limit or self.config.CATALOG_PAGE_SIZE, self.config.CATALOG_MAX_PAGE_SIZE)
        products = (
            query.order_by(Product.created_at.desc(), Product.productID.desc())
            .offset(max(offset, 0))
            .limit(limit)
            .all()
        )
        return products, total

    def get_product_by_slug(self, slug: str) -> Product:
        product = self._active().filter(Product.slug == slug).first()
        if product is None:
            raise NotFoundError("Product not found")
        return product

    def list_categories(self) -> List[str]:
        rows = self._active().with_entities(Product.category).distinct().all()
        return sorted(row[0].value for row in rows if row[0] is not None)
