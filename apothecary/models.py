# apothecary/models.py
from enum import Enum
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Date,
    ForeignKey,
    Boolean,
    Text,
    UniqueConstraint,
    Enum as SAEnum,
)
from sqlalchemy.orm import relationship

# All models share one declarative Base so metadata.create_all sees every table
from apothecary.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


ML_QUANTUM = Decimal("0.01")


def to_ml(value) -> Decimal:
    """Volumes are stored to the hundredth of a millilitre."""
    return Decimal(str(value or 0)).quantize(ML_QUANTUM, rounding=ROUND_HALF_UP)


class UserRole(str, Enum):
    CUSTOMER = "customer"
    PRACTITIONER = "practitioner"
    ADMIN = "admin"


class ProductCategory(str, Enum):
    DIGESTIVE = "digestive"
    CARDIOVASCULAR = "cardiovascular"
    IMMUNE = "immune"
    NERVOUS = "nervous"
    RESPIRATORY = "respiratory"
    MUSCULOSKELETAL = "musculoskeletal"
    ENDOCRINE = "endocrine"
    SKIN = "skin"
    REPRODUCTIVE = "reproductive"


class PregnancyRisk(str, Enum):
    AVOID = "avoid"
    CAUTION = "caution"


class BookingStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class AssessmentType(str, Enum):
    GUIDED_COMPOUND = "guided_compound"
    OLIGOSCAN = "oligoscan"


class CompoundType(str, Enum):
    PRESET = "preset"
    GUIDED = "guided"
    PRACTITIONER = "practitioner"


class CompoundStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class BatchStatus(str, Enum):
    PREPARED = "prepared"
    DISPENSED = "dispensed"
    EXPIRED = "expired"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class User(Base):
    __tablename__ = 'User'
    userID = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(255))
    role = Column(
        SAEnum(UserRole, name="user_role", native_enum=False, validate_strings=True),
        default=UserRole.CUSTOMER,
        nullable=False,
    )
    created_at = Column(DateTime, default=_utcnow)

    orders = relationship("Order", back_populates="user")
    assessments = relationship("Assessment", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_practitioner(self) -> bool:
        return self.role in {UserRole.PRACTITIONER, UserRole.ADMIN}


class Product(Base):
    __tablename__ = 'Product'
    productID = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    slug = Column(String(160), unique=True, nullable=False, index=True)
    description = Column(Text)
    category = Column(
        SAEnum(ProductCategory, name="product_category", native_enum=False, validate_strings=True),
        nullable=False,
    )
    price = Column(Numeric(10, 2), nullable=False)
    volume_ml = Column(Integer, nullable=False, default=100)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    contraindications = Column(JSON, default=list)
    created_at = Column(DateTime, default=_utcnow)

    safety_rule = relationship("HerbSafetyRule", uselist=False, back_populates="product")

    def to_dict(self) -> dict:
        return {
            "id": self.productID,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "category": self.category.value if self.category else None,
            "price": float(self.price),
            "volume_ml": self.volume_ml,
            "stock": self.stock,
            "contraindications": list(self.contraindications or []),
        }


class HerbSafetyRule(Base):
    __tablename__ = 'HerbSafetyRule'
    ruleID = Column(Integer, primary_key=True, autoincrement=True)
    productID = Column(Integer, ForeignKey('Product.productID'), unique=True, nullable=False)
    contraindications = Column(JSON, default=list)
    interactions = Column(JSON, default=list)
    pregnancy_risk_level = Column(
        SAEnum(PregnancyRisk, name="pregnancy_risk_level", native_enum=False, validate_strings=True),
        nullable=True,
    )

    product = relationship("Product", back_populates="safety_rule")


class CompoundPricingRule(Base):
    __tablename__ = 'CompoundPricingRule'
    ruleID = Column(Integer, primary_key=True, autoincrement=True)
    tier = Column(Integer, unique=True, nullable=False)
    min_price_per_100ml = Column(Numeric(10, 2))
    max_price_per_100ml = Column(Numeric(10, 2))
    default_margin = Column(Numeric(5, 4), default=0)

    def to_dict(self) -> dict:
        return {
            "tier": self.tier,
            "min_price_per_100ml": _as_float(self.min_price_per_100ml),
            "max_price_per_100ml": _as_float(self.max_price_per_100ml),
            "default_margin": _as_float(self.default_margin),
        }


class Booking(Base):
    """Consultation record; scheduling itself lives outside this service."""

    __tablename__ = 'Booking'
    bookingID = Column(Integer, primary_key=True, autoincrement=True)
    userID = Column(Integer, ForeignKey('User.userID'), nullable=False)
    practitionerID = Column(Integer, ForeignKey('User.userID'))
    booking_type = Column(String(50), default="initial")
    status = Column(
        SAEnum(BookingStatus, name="booking_status", native_enum=False, validate_strings=True),
        default=BookingStatus.SCHEDULED,
        nullable=False,
    )
    created_at = Column(DateTime, default=_utcnow)


class Assessment(Base):
    __tablename__ = 'Assessment'
    assessmentID = Column(Integer, primary_key=True, autoincrement=True)
    userID = Column(Integer, ForeignKey('User.userID'), nullable=False)
    type = Column(
        SAEnum(AssessmentType, name="assessment_type", native_enum=False, validate_strings=True),
        nullable=False,
    )
    responses = Column(JSON, nullable=False, default=dict)
    recommendations = Column(JSON)
    bookingID = Column(Integer, ForeignKey('Booking.bookingID'), index=True)
    score = Column(Numeric(4, 1))
    created_at = Column(DateTime, default=_utcnow, index=True)

    user = relationship("User", back_populates="assessments")

    def to_dict(self) -> dict:
        return {
            "id": self.assessmentID,
            "user_id": self.userID,
            "type": self.type.value,
            "responses": self.responses,
            "recommendations": self.recommendations,
            "booking_id": self.bookingID,
            "score": _as_float(self.score),
            "created_at": serialize_dt(self.created_at),
        }


class Compound(Base):
    __tablename__ = 'Compound'
    compoundID = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    ownerID = Column(Integer, ForeignKey('User.userID'), nullable=False, index=True)
    createdByID = Column(Integer, ForeignKey('User.userID'), nullable=False)
    type = Column(
        SAEnum(CompoundType, name="compound_type", native_enum=False, validate_strings=True),
        nullable=False,
    )
    tier = Column(Integer, nullable=False)
    formula = Column(JSON, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text)
    sourceAssessmentID = Column(Integer, ForeignKey('Assessment.assessmentID'))
    sourceBookingID = Column(Integer, ForeignKey('Booking.bookingID'))
    status = Column(
        SAEnum(CompoundStatus, name="compound_status", native_enum=False, validate_strings=True),
        default=CompoundStatus.DRAFT,
        nullable=False,
    )
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    batches = relationship("CompoundBatch", back_populates="compound")

    def to_dict(self) -> dict:
        return {
            "id": self.compoundID,
            "name": self.name,
            "owner_user_id": self.ownerID,
            "created_by": self.createdByID,
            "type": self.type.value,
            "tier": self.tier,
            "formula": self.formula,
            "price": float(self.price),
            "notes": self.notes,
            "source_assessment_id": self.sourceAssessmentID,
            "source_booking_id": self.sourceBookingID,
            "status": self.status.value,
            "created_at": serialize_dt(self.created_at),
        }


class CompoundBatch(Base):
    __tablename__ = 'CompoundBatch'
    batchID = Column(Integer, primary_key=True, autoincrement=True)
    compoundID = Column(Integer, ForeignKey('Compound.compoundID'), nullable=False, index=True)
    batch_code = Column(String(64), nullable=False)
    total_volume_ml = Column(Numeric(10, 2), nullable=False)
    expiry_date = Column(Date)
    notes = Column(Text)
    status = Column(
        SAEnum(BatchStatus, name="batch_status", native_enum=False, validate_strings=True),
        default=BatchStatus.PREPARED,
        nullable=False,
    )
    preparedByID = Column(Integer, ForeignKey('User.userID'), nullable=False)
    prepared_at = Column(DateTime, default=_utcnow)

    compound = relationship("Compound", back_populates="batches")
    dispensations = relationship("CompoundDispensation", back_populates="batch")

    def dispensed_volume(self) -> Decimal:
        return sum((to_ml(record.volume_ml) for record in self.dispensations), Decimal("0.00"))

    def to_dict(self) -> dict:
        return {
            "id": self.batchID,
            "compound_id": self.compoundID,
            "batch_code": self.batch_code,
            "total_volume_ml": float(self.total_volume_ml),
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "notes": self.notes,
            "status": self.status.value,
            "prepared_by": self.preparedByID,
            "prepared_at": serialize_dt(self.prepared_at),
        }


class CompoundDispensation(Base):
    __tablename__ = 'CompoundDispensation'
    dispensationID = Column(Integer, primary_key=True, autoincrement=True)
    batchID = Column(Integer, ForeignKey('CompoundBatch.batchID'), nullable=False, index=True)
    orderID = Column(Integer, ForeignKey('Order.orderID'))
    userID = Column(Integer, ForeignKey('User.userID'), nullable=False)
    volume_ml = Column(Numeric(10, 2), nullable=False)
    dispensed_at = Column(DateTime, default=_utcnow)

    batch = relationship("CompoundBatch", back_populates="dispensations")

    def to_dict(self) -> dict:
        return {
            "id": self.dispensationID,
            "batch_id": self.batchID,
            "order_id": self.orderID,
            "user_id": self.userID,
            "volume_ml": float(self.volume_ml),
            "dispensed_at": serialize_dt(self.dispensed_at),
        }


class WellnessAssessment(Base):
    __tablename__ = 'WellnessAssessment'
    wellnessAssessmentID = Column(Integer, primary_key=True, autoincrement=True)
    public_id = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid4()), index=True)

    name = Column(String(80), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(32))
    location = Column(String(120))
    ip_address = Column(String(120))

    q1_digestive_issues = Column(String(16), nullable=False)
    q2_sleep_quality = Column(String(16), nullable=False)
    q3_medications = Column(String(16), nullable=False)
    q4_processed_foods = Column(String(16), nullable=False)
    q5_energy_crashes = Column(String(16), nullable=False)
    q6_water_intake = Column(String(16), nullable=False)
    q7_toxic_exposure = Column(String(16), nullable=False)
    q8_symptoms = Column(String(16), nullable=False)
    q9_supplements = Column(String(16), nullable=False)
    q10_unresolved_issues = Column(String(16), nullable=False)

    current_situation = Column(String(40), nullable=False)
    primary_goal = Column(String(40), nullable=False)
    biggest_obstacle = Column(String(40), nullable=False)
    preferred_support = Column(String(40), nullable=False)
    additional_notes = Column(Text)

    utm_source = Column(String(120))
    utm_medium = Column(String(120))
    utm_campaign = Column(String(120))

    wellness_score = Column(Integer)
    score_category = Column(String(32))
    qualification_level = Column(String(16), index=True)
    recommended_next_step = Column(JSON)
    completed_at = Column(DateTime)
    result_viewed = Column(Boolean, nullable=False, default=False)
    clicked_cta = Column(Boolean, nullable=False, default=False)
    booking_made = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=_utcnow)


class Order(Base):
    __tablename__ = 'Order'
    orderID = Column(Integer, primary_key=True, autoincrement=True)
    userID = Column(Integer, ForeignKey('User.userID'), nullable=False, index=True)
    status = Column(
        SAEnum(OrderStatus, name="order_status", native_enum=False, validate_strings=True),
        default=OrderStatus.PENDING,
        nullable=False,
    )
    subtotal = Column(Numeric(10, 2), nullable=False)
    shipping_cost = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    shipping_address = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=_utcnow, index=True)

    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.orderID,
            "user_id": self.userID,
            "status": self.status.value,
            "subtotal": float(self.subtotal),
            "shipping_cost": float(self.shipping_cost),
            "tax": float(self.tax),
            "total_amount": float(self.total_amount),
            "shipping_address": self.shipping_address,
            "created_at": serialize_dt(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class OrderItem(Base):
    __tablename__ = 'OrderItem'
    orderItemID = Column(Integer, primary_key=True, autoincrement=True)
    orderID = Column(Integer, ForeignKey('Order.orderID'), nullable=False)
    productID = Column(Integer, ForeignKey('Product.productID'))
    compoundID = Column(Integer, ForeignKey('Compound.compoundID'))
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
    compound = relationship("Compound")

    @property
    def line_total(self) -> float:
        return round(float(self.price) * self.quantity, 2)

    def to_dict(self) -> dict:
        return {
            "id": self.orderItemID,
            "type": "compound" if self.compoundID else "product",
            "product_id": self.productID,
            "compound_id": self.compoundID,
            "name": (self.compound.name if self.compound else self.product.name if self.product else None),
            "quantity": self.quantity,
            "price": float(self.price),
            "line_total": self.line_total,
        }


class ProductReview(Base):
    __tablename__ = 'ProductReview'
    __table_args__ = (UniqueConstraint('productID', 'userID', name='uq_review_product_user'),)

    reviewID = Column(Integer, primary_key=True, autoincrement=True)
    productID = Column(Integer, ForeignKey('Product.productID'), nullable=False, index=True)
    userID = Column(Integer, ForeignKey('User.userID'), nullable=False)
    rating = Column(Integer, nullable=False)
    title = Column(String(100), nullable=False)
    comment = Column(Text, nullable=False)
    verified_purchase = Column(Boolean, nullable=False, default=False)
    is_approved = Column(Boolean, nullable=False, default=True)
    helpful_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=_utcnow, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User")
    votes = relationship("ReviewVote", back_populates="review", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.reviewID,
            "product_id": self.productID,
            "user_id": self.userID,
            "reviewer_name": self.user.full_name if self.user else None,
            "rating": self.rating,
            "title": self.title,
            "comment": self.comment,
            "verified_purchase": self.verified_purchase,
            "helpful_count": self.helpful_count,
            "created_at": serialize_dt(self.created_at),
            "updated_at": serialize_dt(self.updated_at),
        }


class ReviewVote(Base):
    __tablename__ = 'ReviewVote'
    __table_args__ = (UniqueConstraint('reviewID', 'userID', name='uq_vote_review_user'),)

    voteID = Column(Integer, primary_key=True, autoincrement=True)
    reviewID = Column(Integer, ForeignKey('ProductReview.reviewID'), nullable=False, index=True)
    userID = Column(Integer, ForeignKey('User.userID'), nullable=False)
    is_helpful = Column(Boolean, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    review = relationship("ProductReview", back_populates="votes")

    def to_dict(self) -> dict:
        return {
            "id": self.voteID,
            "review_id": self.reviewID,
            "user_id": self.userID,
            "is_helpful": self.is_helpful,
            "created_at": serialize_dt(self.created_at),
        }


class NewsletterSubscriber(Base):
    __tablename__ = 'NewsletterSubscriber'
    subscriberID = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(190), unique=True, nullable=False, index=True)
    name = Column(String(80))
    subscribed = Column(Boolean, nullable=False, default=True)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


def _as_float(value):
    return float(value) if value is not None else None


def serialize_dt(value):
    if not value:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
