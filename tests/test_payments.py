"""Payment ledger service tests"""

from datetime import timedelta

import pytest

from medreview.domain.payments.schemas import PaymentCompleteRequest, PaymentCreate, RefundRequest
from medreview.domain.payments.service import PaymentService
from medreview.models import Notification, NotificationType, Order, PaymentMethod, PaymentStatus, Priority
from medreview.shared.dates import utcnow
from medreview.shared.exceptions import (
    AlreadyCompleted,
    Conflict,
    InvalidAmount,
    InvalidDate,
    InvalidInput,
    InvalidState,
    NotFound,
)


@pytest.fixture
def order(make_order, customer):
    return make_order(customer, total_amount=350.0)


def new_payment(db, order_id, amount):
    return PaymentService(db).create_payment(
        PaymentCreate(orderId=order_id, amount=amount, paymentMethod=PaymentMethod.CREDIT_CARD)
    )


def paid_amount(db, order_id):
    db.expire_all()
    return db.get(Order, order_id).paid_amount


class TestCreatePayment:
    def test_create_pending(self, db, order):
        payment = new_payment(db, order.id, 100)
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.currency == "USD"
        assert payment.transaction_id is None

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount(self, db, order, amount):
        with pytest.raises(InvalidAmount):
            new_payment(db, order.id, amount)

    def test_missing_order(self, db):
        with pytest.raises(NotFound):
            new_payment(db, 404, 10)


class TestCompletePayment:
    def test_complete_credits_order(self, db, order, customer):
        payment = new_payment(db, order.id, 200)
        payment = PaymentService(db).complete_payment(payment.id, PaymentCompleteRequest(fee=6.1))

        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.processed_at is not None
        assert payment.transaction_id.startswith("txn_")
        assert payment.net_amount == pytest.approx(193.9)
        assert paid_amount(db, order.id) == 200

        note = db.query(Notification).filter(Notification.user_id == customer.id).all()[-1]
        assert note.type == NotificationType.PAYMENT_RECEIVED.value

    def test_supplied_transaction_id_is_kept(self, db, order):
        payment = new_payment(db, order.id, 50)
        payment = PaymentService(db).complete_payment(payment.id, PaymentCompleteRequest(transactionId="ch_123"))
        assert PaymentService(db).get_by_transaction_id("ch_123").id == payment.id

    def test_duplicate_transaction_id(self, db, order):
        first = new_payment(db, order.id, 50)
        second = new_payment(db, order.id, 50)
        PaymentService(db).complete_payment(first.id, PaymentCompleteRequest(transactionId="ch_1"))

        with pytest.raises(Conflict):
            PaymentService(db).complete_payment(second.id, PaymentCompleteRequest(transactionId="ch_1"))

    def test_complete_twice(self, db, order):
        payment = new_payment(db, order.id, 100)
        PaymentService(db).complete_payment(payment.id)

        with pytest.raises(AlreadyCompleted):
            PaymentService(db).complete_payment(payment.id)
        assert paid_amount(db, order.id) == 100

    def test_cannot_overpay(self, db, order):
        first = new_payment(db, order.id, 300)
        second = new_payment(db, order.id, 100)
        PaymentService(db).complete_payment(first.id)

        with pytest.raises(InvalidAmount):
            PaymentService(db).complete_payment(second.id)
        assert paid_amount(db, order.id) == 300

    def test_cannot_complete_failed(self, db, order):
        payment = new_payment(db, order.id, 100)
        PaymentService(db).fail_payment(payment.id, "card declined")

        with pytest.raises(InvalidState):
            PaymentService(db).complete_payment(payment.id)


class TestFailRetryCancel:
    def test_fail_notifies_with_high_priority(self, db, order, customer):
        payment = new_payment(db, order.id, 100)
        payment = PaymentService(db).fail_payment(payment.id, "card declined")

        assert payment.status == PaymentStatus.FAILED.value
        assert payment.failure_reason == "card declined"
        note = db.query(Notification).filter(Notification.user_id == customer.id).all()[-1]
        assert note.type == NotificationType.PAYMENT_FAILED.value
        assert note.priority == Priority.HIGH.value

    def test_fail_twice(self, db, order):
        payment = new_payment(db, order.id, 100)
        PaymentService(db).fail_payment(payment.id)
        with pytest.raises(InvalidState):
            PaymentService(db).fail_payment(payment.id)

    def test_retry_only_from_failed(self, db, order):
        payment = new_payment(db, order.id, 100)
        with pytest.raises(InvalidState):
            PaymentService(db).retry_payment(payment.id)

        PaymentService(db).fail_payment(payment.id, "timeout")
        payment = PaymentService(db).retry_payment(payment.id)
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.failure_reason is None

    def test_cancel_only_pending(self, db, order):
        payment = new_payment(db, order.id, 100)
        assert PaymentService(db).cancel_payment(payment.id).status == PaymentStatus.CANCELLED.value

        with pytest.raises(InvalidState):
            PaymentService(db).cancel_payment(payment.id)


class TestRefund:
    def test_full_refund_by_default(self, db, order):
        payment = new_payment(db, order.id, 150)
        PaymentService(db).complete_payment(payment.id)

        payment = PaymentService(db).refund_payment(payment.id, RefundRequest(reason="duplicate"))

        assert payment.status == PaymentStatus.REFUNDED.value
        assert payment.refund_amount == 150
        assert payment.refunded_at is not None
        assert paid_amount(db, order.id) == 0

    def test_partial_refund(self, db, order):
        payment = new_payment(db, order.id, 150)
        PaymentService(db).complete_payment(payment.id)

        PaymentService(db).refund_payment(payment.id, RefundRequest(amount=50))
        assert paid_amount(db, order.id) == 100

    def test_refund_above_original_leaves_everything_untouched(self, db, order):
        payment = new_payment(db, order.id, 150)
        PaymentService(db).complete_payment(payment.id)

        with pytest.raises(InvalidAmount):
            PaymentService(db).refund_payment(payment.id, RefundRequest(amount=151))

        db.expire_all()
        payment = PaymentService(db).get_payment(payment.id)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.refund_amount is None
        assert paid_amount(db, order.id) == 150

    def test_explicit_zero_refund_is_rejected(self, db, order):
        payment = new_payment(db, order.id, 150)
        PaymentService(db).complete_payment(payment.id)

        with pytest.raises(InvalidAmount):
            PaymentService(db).refund_payment(payment.id, RefundRequest(amount=0))

        db.expire_all()
        assert PaymentService(db).get_payment(payment.id).status == PaymentStatus.COMPLETED.value
        assert paid_amount(db, order.id) == 150

    def test_refund_requires_completed(self, db, order):
        payment = new_payment(db, order.id, 150)
        with pytest.raises(InvalidState):
            PaymentService(db).refund_payment(payment.id)

    def test_paid_is_floored_at_zero(self, db, order):
        payment = new_payment(db, order.id, 100)
        PaymentService(db).complete_payment(payment.id)
        db.query(Order).filter(Order.id == order.id).update({Order.paid_amount: 40.0})
        db.commit()

        PaymentService(db).refund_payment(payment.id)
        assert paid_amount(db, order.id) == 0


class TestHistory:
    def test_paid_tracks_completed_minus_refunded(self, db, order):
        service = PaymentService(db)
        a = new_payment(db, order.id, 100)
        b = new_payment(db, order.id, 200)
        c = new_payment(db, order.id, 50)
        service.complete_payment(a.id)
        service.complete_payment(b.id)
        service.refund_payment(a.id, RefundRequest(amount=100))
        service.fail_payment(c.id)

        history = service.history(order.id)

        assert paid_amount(db, order.id) == 200
        assert history["total_paid"] == 300
        assert history["total_refunded"] == 100
        assert history["outstanding"] == 150
        assert len(history["payments"]) == 3


class TestReporting:
    @pytest.fixture
    def ledger(self, db, order):
        service = PaymentService(db)
        a = new_payment(db, order.id, 100)
        b = new_payment(db, order.id, 200)
        c = new_payment(db, order.id, 50)
        d = service.create_payment(
            PaymentCreate(orderId=order.id, amount=25, paymentMethod=PaymentMethod.PAYPAL)
        )
        service.complete_payment(a.id, PaymentCompleteRequest(fee=3))
        service.complete_payment(b.id, PaymentCompleteRequest(transactionId="txn_lookup_200"))
        service.fail_payment(c.id, "card declined")
        return {"a": a, "b": b, "c": c, "d": d}

    def test_stats_totals_and_breakdowns(self, db, ledger):
        stats = PaymentService(db).stats()

        assert stats["total_payments"] == 4
        assert stats["total_amount"] == 375
        assert stats["total_fees"] == 3
        assert stats["total_net_amount"] == 297
        assert stats["average_amount"] == pytest.approx(93.75)
        assert stats["by_status"][PaymentStatus.COMPLETED.value] == 2
        assert stats["by_status"][PaymentStatus.FAILED.value] == 1
        assert stats["by_status"][PaymentStatus.PENDING.value] == 1
        assert stats["by_status"][PaymentStatus.REFUNDED.value] == 0
        assert stats["by_method"][PaymentMethod.CREDIT_CARD.value] == 3
        assert stats["by_method"][PaymentMethod.PAYPAL.value] == 1

    def test_stats_for_empty_range(self, db, ledger):
        stats = PaymentService(db).stats(start=utcnow() + timedelta(days=1))
        assert stats["total_payments"] == 0
        assert stats["average_amount"] == 0.0

    def test_stats_rejects_inverted_range(self, db):
        now = utcnow()
        with pytest.raises(InvalidDate):
            PaymentService(db).stats(start=now, end=now - timedelta(days=1))

    def test_status_listings(self, db, ledger):
        service = PaymentService(db)

        successful = service.list_successful()
        assert successful["total"] == 2
        assert {p.id for p in successful["items"]} == {ledger["a"].id, ledger["b"].id}
        assert [p.id for p in service.list_failed()["items"]] == [ledger["c"].id]
        assert [p.id for p in service.list_pending()["items"]] == [ledger["d"].id]

    def test_successful_filters_on_processing_time(self, db, ledger):
        later = PaymentService(db).list_successful(start=utcnow() + timedelta(minutes=5))
        assert later["total"] == 0

    def test_search_by_transaction_reference(self, db, ledger):
        service = PaymentService(db)

        found = service.search("LOOKUP_200")
        assert [p.id for p in found] == [ledger["b"].id]
        assert service.search("lookup", status=PaymentStatus.FAILED.value) == []

    def test_search_requires_term(self, db):
        with pytest.raises(InvalidInput):
            PaymentService(db).search("   ")
