"""Payment service - Ledger of payment attempts and their effect on orders"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import (
    NotificationType,
    Payment,
    PaymentStatus,
    Priority,
    generate_transaction_id,
)
from ...shared.dates import utcnow
from ...shared.exceptions import (
    AlreadyCompleted,
    Conflict,
    InvalidAmount,
    InvalidDate,
    InvalidInput,
    InvalidState,
    NotFound,
)
from ...shared.pagination import paginate
from ..notifications.emitter import NotificationEmitter
from ..orders.repository import OrderRepository
from ..orders.service import order_url
from .repository import PaymentRepository
from .schemas import PaymentCompleteRequest, PaymentCreate, RefundRequest

logger = logging.getLogger(__name__)

# Tolerance for float money comparisons
AMOUNT_EPSILON = 1e-9


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PaymentRepository()
        self.orders = OrderRepository()
        self.notifier = NotificationEmitter(db)

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.repo.get_by_id(self.db, payment_id)
        if not payment:
            raise NotFound("Payment not found")
        return payment

    def get_by_transaction_id(self, transaction_id: str) -> Payment:
        payment = self.repo.get_by_transaction_id(self.db, transaction_id)
        if not payment:
            raise NotFound("Payment not found")
        return payment

    def list_by_order(self, order_id: int) -> list[Payment]:
        return self.repo.get_by_order(self.db, order_id)

    def list_successful(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        return paginate(self.repo.query_successful(self.db, start, end), page, limit)

    def list_failed(self, page: int = 1, limit: int = 20) -> dict:
        return paginate(self.repo.query_failed(self.db), page, limit)

    def list_pending(self, page: int = 1, limit: int = 20) -> dict:
        return paginate(self.repo.query_pending(self.db), page, limit)

    def search(
        self,
        term: str,
        status: Optional[str] = None,
        payment_method: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Payment]:
        if not term or not term.strip():
            raise InvalidInput("Search term is required")
        return self.repo.search(self.db, term, status, payment_method, start, end)

    def stats(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
        if start and end and start > end:
            raise InvalidDate("Start date must be before end date")
        return self.repo.get_stats(self.db, start, end)

    def history(self, order_id: int) -> dict:
        """Totals across every payment recorded for an order"""
        order = self.orders.get_by_id(self.db, order_id)
        if not order:
            raise NotFound("Order not found")

        payments = self.repo.get_by_order(self.db, order_id)
        settled = (PaymentStatus.COMPLETED.value, PaymentStatus.REFUNDED.value)
        total_paid = sum(p.amount for p in payments if p.status in settled)
        total_refunded = sum(p.refund_amount or 0.0 for p in payments)

        return {
            "order": order,
            "payments": payments,
            "total_paid": total_paid,
            "total_refunded": total_refunded,
            "outstanding": max(0.0, order.total_amount - total_paid + total_refunded),
        }

    def _notify_customer(self, payment: Payment, title: str, message: str, kind: NotificationType, priority=Priority.MEDIUM):
        order = self.orders.get_by_id(self.db, payment.order_id)
        self.notifier.emit(
            [order.customer_id],
            title,
            message,
            kind,
            order_id=order.id,
            priority=priority,
            action_url=order_url(order),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_payment(self, data: PaymentCreate) -> Payment:
        order = self.orders.get_by_id(self.db, data.orderId)
        if not order:
            raise NotFound("Order not found")
        if data.amount <= 0:
            raise InvalidAmount("Payment amount must be greater than zero")

        payment = self.repo.create_payment(
            self.db,
            order_id=order.id,
            amount=data.amount,
            currency=data.currency,
            payment_method=data.paymentMethod.value,
            payment_provider=data.paymentProvider,
            status=PaymentStatus.PENDING.value,
            fee=0.0,
        )
        logger.info(f"💳 Payment {payment.id} of {payment.amount} {payment.currency} created for order {order.id}")
        return payment

    def complete_payment(self, payment_id: int, data: Optional[PaymentCompleteRequest] = None) -> Payment:
        """Mark a payment completed and credit the order in the same transaction"""
        payment = self.get_payment(payment_id)
        data = data or PaymentCompleteRequest()

        if payment.status == PaymentStatus.COMPLETED.value:
            raise AlreadyCompleted()
        if payment.status not in (PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value):
            raise InvalidState(f"Cannot complete a payment in status {payment.status}")

        order = self.orders.get_by_id(self.db, payment.order_id)
        if order.paid_amount + payment.amount > order.total_amount + AMOUNT_EPSILON:
            logger.warning(
                f"⚠️ Payment {payment_id} would overpay order {order.id} "
                f"({order.paid_amount} + {payment.amount} > {order.total_amount})"
            )
            raise InvalidAmount("Payment would exceed the order total")

        transaction_id = data.transactionId or payment.transaction_id or generate_transaction_id()
        existing = self.repo.get_by_transaction_id(self.db, transaction_id)
        if existing and existing.id != payment.id:
            raise Conflict("Transaction id already recorded")

        fee = data.fee if data.fee is not None else (payment.fee or 0.0)
        payment.status = PaymentStatus.COMPLETED.value
        payment.transaction_id = transaction_id
        payment.fee = fee
        payment.net_amount = payment.amount - fee
        payment.processed_at = utcnow()
        if data.cardLast4:
            payment.card_last4 = data.cardLast4
        if data.cardBrand:
            payment.card_brand = data.cardBrand

        self.repo.increment_paid_amount(self.db, payment.order_id, payment.amount)
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"✅ Payment {payment.id} completed ({transaction_id}), order {payment.order_id} credited")

        self._notify_customer(
            payment,
            "Payment Received",
            f"We received your payment of {payment.amount:.2f} {payment.currency}.",
            NotificationType.PAYMENT_RECEIVED,
        )
        return payment

    def fail_payment(self, payment_id: int, reason: Optional[str] = None) -> Payment:
        payment = self.get_payment(payment_id)
        if payment.status not in (PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value):
            raise InvalidState(f"Cannot fail a payment in status {payment.status}")

        payment.status = PaymentStatus.FAILED.value
        payment.failure_reason = reason
        self.db.commit()
        self.db.refresh(payment)
        logger.warning(f"⚠️ Payment {payment.id} failed: {reason}")

        message = f"Your payment of {payment.amount:.2f} {payment.currency} failed."
        if reason:
            message += f" Reason: {reason}"
        self._notify_customer(
            payment, "Payment Failed", message, NotificationType.PAYMENT_FAILED, Priority.HIGH
        )
        return payment

    def refund_payment(self, payment_id: int, data: Optional[RefundRequest] = None) -> Payment:
        """Refund a completed payment; the order's paid amount drops with it"""
        payment = self.get_payment(payment_id)
        data = data or RefundRequest()

        if payment.status != PaymentStatus.COMPLETED.value:
            raise InvalidState("Only completed payments can be refunded")

        amount = data.amount if data.amount is not None else payment.amount
        if amount <= 0 or amount > payment.amount + AMOUNT_EPSILON:
            logger.warning(f"⚠️ Invalid refund of {amount} for payment {payment_id} of {payment.amount}")
            raise InvalidAmount("Refund amount must be positive and cannot exceed the payment amount")

        payment.status = PaymentStatus.REFUNDED.value
        payment.refund_amount = amount
        payment.refund_reason = data.reason
        payment.refund_id = data.refundId
        payment.refunded_at = utcnow()

        self.repo.decrement_paid_amount(self.db, payment.order_id, amount)
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"↩️ Payment {payment.id} refunded {amount}")

        self._notify_customer(
            payment,
            "Payment Refunded",
            f"A refund of {amount:.2f} {payment.currency} has been issued.",
            NotificationType.PAYMENT_RECEIVED,
        )
        return payment

    def retry_payment(self, payment_id: int) -> Payment:
        payment = self.get_payment(payment_id)
        if payment.status != PaymentStatus.FAILED.value:
            raise InvalidState("Only failed payments can be retried")

        payment.status = PaymentStatus.PENDING.value
        payment.failure_reason = None
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"🔁 Payment {payment.id} queued for retry")
        return payment

    def cancel_payment(self, payment_id: int) -> Payment:
        payment = self.get_payment(payment_id)
        if payment.status != PaymentStatus.PENDING.value:
            raise InvalidState("Only pending payments can be cancelled")

        payment.status = PaymentStatus.CANCELLED.value
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"🚫 Payment {payment.id} cancelled")
        return payment
