"""Order repository - Database operations for orders"""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Query, Session

from ...models import CLOSED_ORDER_STATUSES, Order, OrderStatus, Priority

# Highest priority sorts first
_PRIORITY_RANK = case(
    {
        Priority.URGENT.value: 4,
        Priority.HIGH.value: 3,
        Priority.MEDIUM.value: 2,
        Priority.LOW.value: 1,
    },
    value=Order.priority,
    else_=0,
)


class OrderRepository:
    """Repository for order database operations"""

    @staticmethod
    def get_by_id(db: Session, order_id: int) -> Optional[Order]:
        return db.query(Order).filter(Order.id == order_id).first()

    @staticmethod
    def get_by_number(db: Session, order_number: str) -> Optional[Order]:
        return db.query(Order).filter(Order.order_number == order_number.strip().upper()).first()

    @staticmethod
    def create_order(db: Session, **order_data) -> Order:
        order = Order(**order_data)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    @staticmethod
    def update_order(db: Session, order: Order, **updates) -> Order:
        """Update an order with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(order, key):
                setattr(order, key, value)

        db.commit()
        db.refresh(order)
        return order

    @staticmethod
    def query_orders(
        db: Session,
        customer_id: Optional[int] = None,
        reviewer_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> Query:
        query = db.query(Order)
        if customer_id is not None:
            query = query.filter(Order.customer_id == customer_id)
        if reviewer_id is not None:
            query = query.filter(Order.reviewer_id == reviewer_id)
        if status:
            query = query.filter(Order.status == status)
        return query.order_by(Order.created_at.desc(), Order.id.desc())

    @staticmethod
    def get_pending(
        db: Session, priority: Optional[str] = None, product_type: Optional[str] = None
    ) -> list[Order]:
        """Unassigned orders, most urgent first, then oldest first"""
        query = db.query(Order).filter(Order.status == OrderStatus.PENDING_REVIEW.value)
        if priority:
            query = query.filter(Order.priority == priority)
        if product_type:
            query = query.filter(Order.product_type == product_type)
        return query.order_by(_PRIORITY_RANK.desc(), Order.created_at.asc(), Order.id.asc()).all()

    @staticmethod
    def get_overdue(db: Session, now: datetime) -> list[Order]:
        return (
            db.query(Order)
            .filter(
                Order.due_date.isnot(None),
                Order.due_date < now,
                Order.status.notin_(CLOSED_ORDER_STATUSES),
            )
            .order_by(Order.due_date.asc())
            .all()
        )

    @staticmethod
    def search(
        db: Session,
        term: str,
        customer_id: Optional[int] = None,
        reviewer_id: Optional[int] = None,
        limit: int = 50,
    ) -> list[Order]:
        pattern = f"%{term.strip()}%"
        query = db.query(Order).filter(
            or_(
                Order.order_number.ilike(pattern),
                Order.title.ilike(pattern),
                Order.description.ilike(pattern),
            )
        )
        if customer_id is not None:
            query = query.filter(Order.customer_id == customer_id)
        if reviewer_id is not None:
            query = query.filter(Order.reviewer_id == reviewer_id)
        return query.order_by(Order.created_at.desc()).limit(limit).all()

    @staticmethod
    def get_stats(
        db: Session, customer_id: Optional[int] = None, reviewer_id: Optional[int] = None
    ) -> dict:
        base = db.query(Order)
        if customer_id is not None:
            base = base.filter(Order.customer_id == customer_id)
        if reviewer_id is not None:
            base = base.filter(Order.reviewer_id == reviewer_id)

        by_status = dict(
            base.with_entities(Order.status, func.count(Order.id)).group_by(Order.status).all()
        )
        total_orders, total_amount, paid_amount = base.with_entities(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0.0),
            func.coalesce(func.sum(Order.paid_amount), 0.0),
        ).one()

        return {
            "total_orders": total_orders,
            "by_status": {status.value: by_status.get(status.value, 0) for status in OrderStatus},
            "total_amount": float(total_amount),
            "paid_amount": float(paid_amount),
            "average_order_value": float(total_amount) / total_orders if total_orders else 0.0,
        }
