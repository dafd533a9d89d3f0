"""Payment repository - Database operations for payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Query, Session

from ...models import Order, Payment, PaymentMethod, PaymentStatus


def _created_between(query: Query, start: Optional[datetime], end: Optional[datetime]) -> Query:
    if start is not None:
        query = query.filter(Payment.created_at >= start)
    if end is not None:
        query = query.filter(Payment.created_at <= end)
    return query


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_by_id(db: Session, payment_id: int) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == payment_id).first()

    @staticmethod
    def get_by_transaction_id(db: Session, transaction_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.transaction_id == transaction_id).first()

    @staticmethod
    def get_by_order(db: Session, order_id: int) -> list[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.order_id == order_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        )

    @staticmethod
    def create_payment(db: Session, **payment_data) -> Payment:
        payment = Payment(**payment_data)
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    @staticmethod
    def increment_paid_amount(db: Session, order_id: int, amount: float) -> None:
        """SQL-side increment; the caller commits together with the payment change"""
        db.query(Order).filter(Order.id == order_id).update(
            {Order.paid_amount: Order.paid_amount + amount}, synchronize_session=False
        )

    @staticmethod
    def decrement_paid_amount(db: Session, order_id: int, amount: float) -> None:
        """SQL-side decrement floored at zero; the caller commits"""
        remaining = Order.paid_amount - amount
        db.query(Order).filter(Order.id == order_id).update(
            {Order.paid_amount: case((remaining < 0, 0.0), else_=remaining)},
            synchronize_session=False,
        )

    @staticmethod
    def query_successful(
        db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> Query:
        """Completed payments, most recently processed first"""
        query = db.query(Payment).filter(Payment.status == PaymentStatus.COMPLETED.value)
        if start is not None:
            query = query.filter(Payment.processed_at >= start)
        if end is not None:
            query = query.filter(Payment.processed_at <= end)
        return query.order_by(Payment.processed_at.desc(), Payment.id.desc())

    @staticmethod
    def query_failed(db: Session) -> Query:
        return (
            db.query(Payment)
            .filter(Payment.status == PaymentStatus.FAILED.value)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
        )

    @staticmethod
    def query_pending(db: Session) -> Query:
        """Pending payments, oldest first"""
        return (
            db.query(Payment)
            .filter(Payment.status == PaymentStatus.PENDING.value)
            .order_by(Payment.created_at.asc(), Payment.id.asc())
        )

    @staticmethod
    def search(
        db: Session,
        term: str,
        status: Optional[str] = None,
        payment_method: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 20,
    ) -> list[Payment]:
        """Match gateway references (transaction or refund id)"""
        pattern = f"%{term.strip()}%"
        query = db.query(Payment).filter(
            or_(Payment.transaction_id.ilike(pattern), Payment.refund_id.ilike(pattern))
        )
        if status:
            query = query.filter(Payment.status == status)
        if payment_method:
            query = query.filter(Payment.payment_method == payment_method)
        query = _created_between(query, start, end)
        return query.order_by(Payment.created_at.desc(), Payment.id.desc()).limit(limit).all()

    @staticmethod
    def get_stats(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
        base = _created_between(db.query(Payment), start, end)

        by_status = dict(
            base.with_entities(Payment.status, func.count(Payment.id)).group_by(Payment.status).all()
        )
        by_method = dict(
            base.with_entities(Payment.payment_method, func.count(Payment.id))
            .group_by(Payment.payment_method)
            .all()
        )
        total, total_amount, total_net, total_fees, average = base.with_entities(
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount), 0.0),
            func.coalesce(func.sum(Payment.net_amount), 0.0),
            func.coalesce(func.sum(Payment.fee), 0.0),
            func.avg(Payment.amount),
        ).one()

        return {
            "total_payments": total,
            "total_amount": float(total_amount),
            "total_net_amount": float(total_net),
            "total_fees": float(total_fees),
            "average_amount": float(average) if average is not None else 0.0,
            "by_status": {s.value: by_status.get(s.value, 0) for s in PaymentStatus},
            "by_method": {m.value: by_method.get(m.value, 0) for m in PaymentMethod},
        }
