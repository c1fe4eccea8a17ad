from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from restaurant.domain.enums import OrderStatus
from restaurant.infrastructure.database import Base, utcnow

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in OrderStatus)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_orders_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String(32), nullable=False, default=OrderStatus.PENDING.value, index=True)

    # Snapshot of {menu_item_id, name, price, quantity} taken at placement.
    # Later menu edits never touch it.
    items = Column(JSON, nullable=False)
    total = Column(Numeric(10, 2), nullable=False)

    # Contact snapshot, independent of any account (guest checkout)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(64))
    customer_address = Column(Text)

    user_id = Column(Integer, index=True)  # null for guests
    kitchen_staff_id = Column(Integer)
    delivery_staff_id = Column(Integer)
    estimated_ready_at = Column(DateTime)
    is_deleted_by_customer = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    review = relationship(
        "Review", back_populates="order", uselist=False, lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def customer(self) -> dict:
        return {
            "name": self.customer_name,
            "email": self.customer_email,
            "phone": self.customer_phone,
            "address": self.customer_address,
        }


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True)
    user_id = Column(Integer, nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    is_accepted = Column(Boolean, nullable=False, default=False)
    # Menu item ids tagged on acceptance. Replaced wholesale, never appended.
    tagged_menu_item_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    order = relationship("Order", back_populates="review")


class Permission(Base):
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("role", "resource", "action", name="uq_permissions_role_resource_action"),
    )

    id = Column(Integer, primary_key=True, index=True)
    role = Column(String(32), nullable=False)
    resource = Column(String(64), nullable=False)
    action = Column(String(32), nullable=False)
    allowed = Column(Boolean, nullable=False, default=False)
