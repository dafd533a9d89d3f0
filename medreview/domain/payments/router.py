"""Payment router - FastAPI endpoints for the payment ledger"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import Payment, PaymentMethod, PaymentStatus, User, UserRole
from ...shared.dates import to_naive_utc
from ...shared.exceptions import Forbidden
from ..orders.service import OrderService
from .schemas import (
    PaymentCompleteRequest,
    PaymentCreate,
    PaymentFailRequest,
    PaymentHistoryResponse,
    PaymentListResponse,
    PaymentResponse,
    PaymentStatsResponse,
    RefundRequest,
)
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


def to_response(p: Payment) -> PaymentResponse:
    return PaymentResponse(
        id=p.id,
        orderId=p.order_id,
        amount=p.amount,
        currency=p.currency,
        status=p.status,
        paymentMethod=p.payment_method,
        paymentProvider=p.payment_provider,
        transactionId=p.transaction_id,
        cardLast4=p.card_last4,
        cardBrand=p.card_brand,
        fee=p.fee,
        netAmount=p.net_amount,
        failureReason=p.failure_reason,
        refundAmount=p.refund_amount,
        refundReason=p.refund_reason,
        refundId=p.refund_id,
        refundedAt=p.refunded_at,
        processedAt=p.processed_at,
        created_at=p.created_at,
    )


def to_list_response(result: dict) -> PaymentListResponse:
    return PaymentListResponse(
        items=[to_response(p) for p in result["items"]],
        total=result["total"],
        page=result["page"],
        pages=result["pages"],
    )


# ============================================================================
# ADMIN REPORTING
# ============================================================================


@router.get("/stats", response_model=PaymentStatsResponse)
async def payment_stats(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    _admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    stats = service.stats(to_naive_utc(start), to_naive_utc(end))
    return PaymentStatsResponse(
        totalPayments=stats["total_payments"],
        totalAmount=stats["total_amount"],
        totalNetAmount=stats["total_net_amount"],
        totalFees=stats["total_fees"],
        averageAmount=stats["average_amount"],
        byStatus=stats["by_status"],
        byMethod=stats["by_method"],
    )


@router.get("/successful", response_model=PaymentListResponse)
async def list_successful_payments(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    """Completed payments, filtered on processing time"""
    return to_list_response(service.list_successful(to_naive_utc(start), to_naive_utc(end), page, limit))


@router.get("/failed", response_model=PaymentListResponse)
async def list_failed_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return to_list_response(service.list_failed(page, limit))


@router.get("/pending", response_model=PaymentListResponse)
async def list_pending_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return to_list_response(service.list_pending(page, limit))


@router.get("/search", response_model=list[PaymentResponse])
async def search_payments(
    q: str = Query(..., min_length=1),
    status: Optional[PaymentStatus] = Query(None),
    method: Optional[PaymentMethod] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    _admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    """Search by transaction or refund reference"""
    payments = service.search(
        q,
        status.value if status else None,
        method.value if method else None,
        to_naive_utc(start),
        to_naive_utc(end),
    )
    return [to_response(p) for p in payments]


@router.post("", response_model=PaymentResponse, status_code=201)
async def create_payment(
    data: PaymentCreate,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
    orders: OrderService = Depends(get_order_service),
):
    """Record a payment attempt for one of the customer's orders"""
    order = orders.get_order(data.orderId)
    if current_user.role != UserRole.ADMIN.value and current_user.id != order.customer_id:
        raise Forbidden("Only the customer can pay for this order")
    return to_response(service.create_payment(data))


@router.get("/order/{order_id}", response_model=list[PaymentResponse])
async def list_order_payments(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
    orders: OrderService = Depends(get_order_service),
):
    orders.get_order_for_user(order_id, current_user)
    return [to_response(p) for p in service.list_by_order(order_id)]


@router.get("/order/{order_id}/history", response_model=PaymentHistoryResponse)
async def payment_history(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
    orders: OrderService = Depends(get_order_service),
):
    orders.get_order_for_user(order_id, current_user)
    history = service.history(order_id)
    return PaymentHistoryResponse(
        orderId=order_id,
        totalAmount=history["order"].total_amount,
        totalPaid=history["total_paid"],
        totalRefunded=history["total_refunded"],
        outstanding=history["outstanding"],
        payments=[to_response(p) for p in history["payments"]],
    )


@router.get("/transaction/{transaction_id}", response_model=PaymentResponse)
async def get_payment_by_transaction(
    transaction_id: str,
    _admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return to_response(service.get_by_transaction_id(transaction_id))


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
    orders: OrderService = Depends(get_order_service),
):
    payment = service.get_payment(payment_id)
    orders.get_order_for_user(payment.order_id, current_user)
    return to_response(payment)


# ============================================================================
# GATEWAY CALLBACKS (admin)
# ============================================================================


@router.post("/{payment_id}/complete", response_model=PaymentResponse)
async def complete_payment(
    payment_id: int,
    data: PaymentCompleteRequest,
    _admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return to_response(service.complete_payment(payment_id, data))


@router.post("/{payment_id}/fail", response_model=PaymentResponse)
async def fail_payment(
    payment_id: int,
    data: PaymentFailRequest,
    _admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return to_response(service.fail_payment(payment_id, data.reason))


@router.post("/{payment_id}/refund", response_model=PaymentResponse)
async def refund_payment(
    payment_id: int,
    data: RefundRequest,
    _admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return to_response(service.refund_payment(payment_id, data))


@router.post("/{payment_id}/retry", response_model=PaymentResponse)
async def retry_payment(
    payment_id: int,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
    orders: OrderService = Depends(get_order_service),
):
    payment = service.get_payment(payment_id)
    order = orders.get_order(payment.order_id)
    if current_user.role != UserRole.ADMIN.value and current_user.id != order.customer_id:
        raise Forbidden("Only the customer can retry this payment")
    return to_response(service.retry_payment(payment_id))


@router.post("/{payment_id}/cancel", response_model=PaymentResponse)
async def cancel_payment(
    payment_id: int,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
    orders: OrderService = Depends(get_order_service),
):
    payment = service.get_payment(payment_id)
    order = orders.get_order(payment.order_id)
    if current_user.role != UserRole.ADMIN.value and current_user.id != order.customer_id:
        raise Forbidden("Only the customer can cancel this payment")
    return to_response(service.cancel_payment(payment_id))


__all__ = ["router"]
