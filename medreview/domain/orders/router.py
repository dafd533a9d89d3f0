"""Order router - FastAPI endpoints for order operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_reviewer
from ...database import get_db
from ...models import Order, OrderStatus, Priority, ProductType, User, UserRole
from ...shared.exceptions import Forbidden
from .schemas import (
    AssignRequest,
    CancelRequest,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatsResponse,
    OrderUpdate,
    StatusUpdateRequest,
    TimelineEvent,
)
from .service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    """Dependency injection for OrderService"""
    return OrderService(db)


def to_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        orderNumber=order.order_number,
        customerId=order.customer_id,
        reviewerId=order.reviewer_id,
        productType=order.product_type,
        title=order.title,
        description=order.description,
        status=order.status,
        priority=order.priority,
        totalAmount=order.total_amount,
        paidAmount=order.paid_amount,
        paymentStatus=order.payment_status,
        isOverdue=order.is_overdue,
        dueDate=order.due_date,
        assignedAt=order.assigned_at,
        completedAt=order.completed_at,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(
    data: OrderCreate,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Create a new order for the current customer (admins may act for a customer)"""
    if current_user.role == UserRole.ADMIN.value and data.customerId:
        customer_id = data.customerId
    elif current_user.role == UserRole.CUSTOMER.value:
        customer_id = current_user.id
    else:
        raise Forbidden("Only customers can create orders")
    return to_response(service.create_order(customer_id, data))


@router.get("", response_model=OrderListResponse)
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Orders visible to the current user"""
    result = service.list_for_user(current_user, status.value if status else None, page, limit)
    return OrderListResponse(
        items=[to_response(o) for o in result["items"]],
        total=result["total"],
        page=result["page"],
        pages=result["pages"],
    )


@router.get("/pending", response_model=list[OrderResponse])
async def list_pending_orders(
    priority: Optional[Priority] = Query(None),
    product_type: Optional[ProductType] = Query(None),
    _user: User = Depends(require_reviewer),
    service: OrderService = Depends(get_order_service),
):
    """Orders waiting for a reviewer, most urgent first"""
    orders = service.list_pending(
        priority.value if priority else None, product_type.value if product_type else None
    )
    return [to_response(o) for o in orders]


@router.get("/overdue", response_model=list[OrderResponse])
async def list_overdue_orders(
    _admin: User = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    return [to_response(o) for o in service.list_overdue()]


@router.get("/search", response_model=list[OrderResponse])
async def search_orders(
    q: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Search by order number, title or description"""
    return [to_response(o) for o in service.search(q, current_user)]


@router.get("/stats", response_model=OrderStatsResponse)
async def order_stats(
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    stats = service.stats(current_user)
    return OrderStatsResponse(
        totalOrders=stats["total_orders"],
        byStatus=stats["by_status"],
        totalAmount=stats["total_amount"],
        paidAmount=stats["paid_amount"],
        averageOrderValue=stats["average_order_value"],
    )


@router.get("/number/{order_number}", response_model=OrderResponse)
async def get_order_by_number(
    order_number: str,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.get_by_number(order_number)
    service.ensure_party(order, current_user)
    return to_response(order)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return to_response(service.get_order_for_user(order_id, current_user))


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: int,
    data: OrderUpdate,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Update title, description, priority or due date"""
    order = service.get_order(order_id)
    if current_user.role != UserRole.ADMIN.value and current_user.id != order.customer_id:
        raise Forbidden("Only the customer can edit this order")
    return to_response(service.update_order(order_id, data))


@router.get("/{order_id}/timeline", response_model=list[TimelineEvent])
async def order_timeline(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    service.get_order_for_user(order_id, current_user)
    return [TimelineEvent(**event) for event in service.timeline(order_id)]


# ============================================================================
# LIFECYCLE
# ============================================================================


@router.post("/{order_id}/assign", response_model=OrderResponse)
async def assign_order(
    order_id: int,
    data: AssignRequest,
    _admin: User = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    return to_response(service.assign(order_id, data.reviewerId))


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    data: StatusUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Move an order through its lifecycle (assigned reviewer or admin)"""
    order = service.get_order(order_id)
    if current_user.role != UserRole.ADMIN.value and current_user.id != order.reviewer_id:
        raise Forbidden("Only the assigned reviewer can update the status")
    return to_response(service.update_status(order_id, data.status))


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    data: CancelRequest,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.get_order(order_id)
    if current_user.role != UserRole.ADMIN.value and current_user.id != order.customer_id:
        raise Forbidden("Only the customer can cancel this order")
    return to_response(service.cancel(order_id, data.reason))


__all__ = ["router"]
