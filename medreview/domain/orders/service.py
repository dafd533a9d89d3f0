"""Order service - Lifecycle rules for second-opinion orders"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...models import NotificationType, Order, OrderStatus, Priority, User, UserRole
from ...shared.dates import utcnow
from ...shared.exceptions import Forbidden, InvalidReviewer, InvalidState, NotFound
from ...shared.pagination import paginate
from ..notifications.emitter import NotificationEmitter
from ..users.repository import UserRepository
from .repository import OrderRepository
from .schemas import OrderCreate, OrderUpdate

logger = logging.getLogger(__name__)

# Lifecycle table applied when ORDER_STRICT_TRANSITIONS is enabled
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING_REVIEW: {OrderStatus.ASSIGNED, OrderStatus.CANCELLED},
    OrderStatus.ASSIGNED: {OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.IN_PROGRESS: {
        OrderStatus.UNDER_REVIEW,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.UNDER_REVIEW: {
        OrderStatus.COMPLETED,
        OrderStatus.IN_PROGRESS,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.COMPLETED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
}


def order_url(order: Order) -> str:
    return f"{config.FRONTEND_URL}/orders/{order.id}"


class OrderService:
    """Service layer for order business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepository()
        self.users = UserRepository()
        self.notifier = NotificationEmitter(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_order(self, order_id: int) -> Order:
        order = self.repo.get_by_id(self.db, order_id)
        if not order:
            raise NotFound("Order not found")
        return order

    def get_by_number(self, order_number: str) -> Order:
        order = self.repo.get_by_number(self.db, order_number)
        if not order:
            raise NotFound("Order not found")
        return order

    def get_order_for_user(self, order_id: int, user: User) -> Order:
        """Get an order the user is a party to (admins see everything)"""
        order = self.get_order(order_id)
        self.ensure_party(order, user)
        return order

    @staticmethod
    def ensure_party(order: Order, user: User) -> None:
        if user.role == UserRole.ADMIN.value:
            return
        if user.id not in (order.customer_id, order.reviewer_id):
            raise Forbidden("Not allowed to access this order")

    def list_for_user(self, user: User, status: Optional[str] = None, page: int = 1, limit: int = 10) -> dict:
        if user.role == UserRole.ADMIN.value:
            query = self.repo.query_orders(self.db, status=status)
        elif user.role == UserRole.REVIEWER.value:
            query = self.repo.query_orders(self.db, reviewer_id=user.id, status=status)
        else:
            query = self.repo.query_orders(self.db, customer_id=user.id, status=status)
        return paginate(query, page, limit)

    def list_pending(self, priority: Optional[str] = None, product_type: Optional[str] = None) -> list[Order]:
        return self.repo.get_pending(self.db, priority, product_type)

    def list_overdue(self) -> list[Order]:
        return self.repo.get_overdue(self.db, utcnow())

    def search(self, term: str, user: User) -> list[Order]:
        if user.role == UserRole.ADMIN.value:
            return self.repo.search(self.db, term)
        if user.role == UserRole.REVIEWER.value:
            return self.repo.search(self.db, term, reviewer_id=user.id)
        return self.repo.search(self.db, term, customer_id=user.id)

    def stats(self, user: User) -> dict:
        if user.role == UserRole.ADMIN.value:
            return self.repo.get_stats(self.db)
        if user.role == UserRole.REVIEWER.value:
            return self.repo.get_stats(self.db, reviewer_id=user.id)
        return self.repo.get_stats(self.db, customer_id=user.id)

    def timeline(self, order_id: int) -> list[dict]:
        """Key lifecycle events in chronological order"""
        order = self.get_order(order_id)
        events = [
            {
                "event": "created",
                "timestamp": order.created_at,
                "description": f"Order {order.order_number} created",
            }
        ]
        if order.assigned_at:
            events.append(
                {
                    "event": "assigned",
                    "timestamp": order.assigned_at,
                    "description": "Order assigned to a reviewer",
                }
            )
        if order.completed_at:
            events.append(
                {
                    "event": "completed",
                    "timestamp": order.completed_at,
                    "description": "Order completed",
                }
            )
        return sorted(events, key=lambda e: e["timestamp"])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_order(self, customer_id: int, data: OrderCreate) -> Order:
        """Open a new order for a customer"""
        customer = self.users.get_by_id(self.db, customer_id)
        if not customer:
            raise NotFound("Customer not found")

        logger.info(f"📥 Creating {data.productType.value} order for customer {customer_id}")
        order = self.repo.create_order(
            self.db,
            customer_id=customer.id,
            product_type=data.productType.value,
            title=data.title,
            description=data.description,
            total_amount=data.totalAmount,
            priority=data.priority.value,
            due_date=data.dueDate,
            status=OrderStatus.PENDING_REVIEW.value,
            paid_amount=0.0,
        )
        logger.info(f"✅ Order {order.order_number} created")

        self.notifier.emit(
            [order.customer_id],
            "Order Created",
            f"Your order {order.order_number} has been created and is awaiting review.",
            NotificationType.ORDER_CREATED,
            order_id=order.id,
            action_url=order_url(order),
        )
        return order

    def update_order(self, order_id: int, data: OrderUpdate) -> Order:
        order = self.get_order(order_id)
        updates = {
            "title": data.title,
            "description": data.description,
            "priority": data.priority.value if data.priority else None,
            "due_date": data.dueDate,
        }
        return self.repo.update_order(self.db, order, **updates)

    def assign(self, order_id: int, reviewer_id: int) -> Order:
        """Hand a pending order to an active reviewer"""
        order = self.get_order(order_id)

        if order.status != OrderStatus.PENDING_REVIEW.value:
            logger.warning(f"⚠️ Cannot assign order {order_id} in status {order.status}")
            raise InvalidState(f"Order cannot be assigned in status {order.status}")

        reviewer = self.users.get_by_id(self.db, reviewer_id)
        if not reviewer or reviewer.role != UserRole.REVIEWER.value or not reviewer.is_active:
            logger.warning(f"⚠️ Cannot assign order {order_id} to invalid reviewer {reviewer_id}")
            raise InvalidReviewer("Invalid or inactive reviewer")

        order.reviewer_id = reviewer.id
        order.status = OrderStatus.ASSIGNED.value
        order.assigned_at = utcnow()
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"✅ Order {order.order_number} assigned to reviewer {reviewer.id}")

        self.notifier.emit(
            [order.customer_id],
            "Order Assigned",
            f"Your order {order.order_number} has been assigned to {reviewer.name}.",
            NotificationType.ORDER_ASSIGNED,
            order_id=order.id,
            action_url=order_url(order),
        )
        self.notifier.emit(
            [reviewer.id],
            "New Order Assigned",
            f"Order {order.order_number} has been assigned to you: {order.title}",
            NotificationType.ORDER_ASSIGNED,
            order_id=order.id,
            priority=Priority(order.priority),
            action_url=order_url(order),
        )
        return order

    def update_status(self, order_id: int, new_status: OrderStatus) -> Order:
        order = self.get_order(order_id)
        previous = order.status

        if config.ORDER_STRICT_TRANSITIONS and previous != new_status.value:
            allowed = ALLOWED_TRANSITIONS.get(OrderStatus(previous), set())
            if new_status not in allowed:
                logger.warning(f"⚠️ Rejected order {order_id} transition {previous} -> {new_status.value}")
                raise InvalidState(f"Cannot move order from {previous} to {new_status.value}")

        order.status = new_status.value
        if new_status == OrderStatus.COMPLETED and not order.completed_at:
            order.completed_at = utcnow()
        self.db.commit()
        self.db.refresh(order)

        if previous != order.status:
            logger.info(f"🔄 Order {order.order_number} status {previous} -> {order.status}")
            self.notifier.emit(
                [order.customer_id],
                "Order Status Updated",
                f"Your order {order.order_number} is now {order.status.replace('_', ' ').lower()}.",
                NotificationType.ORDER_UPDATED,
                order_id=order.id,
                action_url=order_url(order),
            )
        return order

    def cancel(self, order_id: int, reason: Optional[str] = None) -> Order:
        order = self.get_order(order_id)

        if order.status == OrderStatus.COMPLETED.value:
            raise InvalidState("Completed orders cannot be cancelled")

        order.status = OrderStatus.CANCELLED.value
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"🚫 Order {order.order_number} cancelled")

        message = f"Your order {order.order_number} has been cancelled."
        if reason:
            message += f" Reason: {reason}"
        self.notifier.emit(
            [order.customer_id],
            "Order Cancelled",
            message,
            NotificationType.ORDER_UPDATED,
            order_id=order.id,
            action_url=order_url(order),
        )
        return order
