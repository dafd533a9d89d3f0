import enum
import random
import string
import time

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .shared.dates import utcnow

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def _random_base36(length: int) -> str:
    return "".join(random.choice(_BASE36) for _ in range(length))


def generate_order_number() -> str:
    """ORD-<base36 millisecond timestamp>-<6 random base36 chars>, upper-cased"""
    stamp = _to_base36(int(time.time() * 1000))
    return f"ORD-{stamp}-{_random_base36(6)}".upper()


def generate_transaction_id() -> str:
    return f"txn_{int(time.time() * 1000)}_{_random_base36(9)}"


def generate_meeting_suffix() -> str:
    return f"consult_{int(time.time() * 1000)}_{_random_base36(9)}"


class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    REVIEWER = "REVIEWER"
    ADMIN = "ADMIN"


class ProductType(str, enum.Enum):
    SECOND_OPINION = "SECOND_OPINION"
    CONSULTATION = "CONSULTATION"
    DOCUMENT_REVIEW = "DOCUMENT_REVIEW"
    EXPERT_ANALYSIS = "EXPERT_ANALYSIS"


class OrderStatus(str, enum.Enum):
    PENDING_REVIEW = "PENDING_REVIEW"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    UNDER_REVIEW = "UNDER_REVIEW"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class Priority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class Severity(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PAYPAL = "PAYPAL"
    STRIPE = "STRIPE"
    BANK_TRANSFER = "BANK_TRANSFER"


class ConsultationStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"


class NotificationType(str, enum.Enum):
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_ASSIGNED = "ORDER_ASSIGNED"
    ORDER_UPDATED = "ORDER_UPDATED"
    REVIEW_COMPLETED = "REVIEW_COMPLETED"
    CONSULTATION_SCHEDULED = "CONSULTATION_SCHEDULED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    REMINDER = "REMINDER"
    SYSTEM = "SYSTEM"
    GENERAL = "GENERAL"


# Order statuses that no longer count towards overdue work
CLOSED_ORDER_STATUSES = (
    OrderStatus.COMPLETED.value,
    OrderStatus.CANCELLED.value,
    OrderStatus.REFUNDED.value,
)

# Consultation statuses that occupy a reviewer's calendar
BOOKED_CONSULTATION_STATUSES = (
    ConsultationStatus.SCHEDULED.value,
    ConsultationStatus.IN_PROGRESS.value,
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)  # Stored lower-cased
    phone = Column(String(50), nullable=True)
    role = Column(String(20), default=UserRole.CUSTOMER.value, nullable=False)  # CUSTOMER, REVIEWER, ADMIN
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)

    # Reviewer profile
    specialization = Column(String(255), nullable=True)
    license_number = Column(String(100), nullable=True)
    hourly_rate = Column(Float, nullable=True)
    available_slots = Column(
        JSON, nullable=True
    )  # e.g., {"monday": [{"start": "09:00", "end": "12:00"}]}

    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    @property
    def is_reviewer(self) -> bool:
        return self.role == UserRole.REVIEWER.value


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(
        String(50), unique=True, index=True, nullable=False, default=generate_order_number
    )
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    product_type = Column(String(50), default=ProductType.SECOND_OPINION.value, nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(String(2000), nullable=True)
    status = Column(String(50), default=OrderStatus.PENDING_REVIEW.value, nullable=False, index=True)
    priority = Column(String(20), default=Priority.MEDIUM.value, nullable=False)
    total_amount = Column(Float, nullable=False)
    paid_amount = Column(Float, default=0.0, nullable=False)  # Only changed by payment side effects
    due_date = Column(DateTime, nullable=True)
    assigned_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    customer = relationship("User", foreign_keys=[customer_id])
    reviewer = relationship("User", foreign_keys=[reviewer_id])
    documents = relationship("Document", back_populates="order")
    reviews = relationship("Review", back_populates="order")
    payments = relationship("Payment", back_populates="order")
    consultations = relationship("Consultation", back_populates="order")

    @property
    def payment_status(self) -> str:
        paid = self.paid_amount or 0.0
        if paid >= self.total_amount:
            return "PAID"
        if paid > 0:
            return "PARTIAL"
        return "UNPAID"

    @property
    def is_overdue(self) -> bool:
        if not self.due_date:
            return False
        return self.due_date < utcnow() and self.status not in CLOSED_ORDER_STATUSES


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)  # Generated storage name
    original_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)  # Bytes
    file_type = Column(String(150), nullable=False)  # Lower-cased MIME type
    file_path = Column(String(500), nullable=False)  # Storage object key
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    download_count = Column(Integer, default=0, nullable=False)

    # File metadata
    pages = Column(Integer, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    duration = Column(Integer, nullable=True)  # Seconds, for audio/video

    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    order = relationship("Order", back_populates="documents")
    uploader = relationship("User")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    recommendations = Column(Text, nullable=True)
    severity = Column(String(20), default=Severity.MEDIUM.value, nullable=False)
    is_complete = Column(Boolean, default=False, nullable=False)
    review_time = Column(Integer, nullable=True)  # Minutes spent on the review
    tags = Column(JSON, default=list)
    attachments = Column(JSON, default=list)  # Storage locators

    # Ratings (1-5)
    rating_clarity = Column(Float, nullable=True)
    rating_accuracy = Column(Float, nullable=True)
    rating_completeness = Column(Float, nullable=True)
    rating_overall = Column(Float, nullable=True)

    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    order = relationship("Order", back_populates="reviews")
    reviewer = relationship("User")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False, index=True)
    payment_method = Column(String(30), nullable=False)
    payment_provider = Column(String(100), nullable=True)
    transaction_id = Column(String(255), unique=True, nullable=True, index=True)
    card_last4 = Column(String(4), nullable=True)
    card_brand = Column(String(50), nullable=True)
    fee = Column(Float, default=0.0, nullable=False)
    net_amount = Column(Float, nullable=True)  # amount - fee
    failure_reason = Column(String(1000), nullable=True)

    # Refund tracking
    refund_amount = Column(Float, nullable=True)
    refund_reason = Column(String(1000), nullable=True)
    refund_id = Column(String(255), nullable=True)
    refunded_at = Column(DateTime, nullable=True)

    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    order = relationship("Order", back_populates="payments")


class Consultation(Base):
    __tablename__ = "consultations"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    scheduled_date = Column(DateTime, nullable=False, index=True)
    duration = Column(Integer, default=60, nullable=False)  # Minutes, 15-180
    status = Column(String(20), default=ConsultationStatus.SCHEDULED.value, nullable=False)
    meeting_link = Column(String(500), nullable=True)
    meeting_id = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    customer_notes = Column(Text, nullable=True)
    reviewer_notes = Column(Text, nullable=True)
    recording_url = Column(String(500), nullable=True)
    transcript_url = Column(String(500), nullable=True)
    actual_start_time = Column(DateTime, nullable=True)
    actual_end_time = Column(DateTime, nullable=True)

    # Ratings (1-5) and feedback from each side
    customer_rating = Column(Integer, nullable=True)
    reviewer_rating = Column(Integer, nullable=True)
    customer_feedback = Column(Text, nullable=True)
    reviewer_feedback = Column(Text, nullable=True)

    # Reminder tracking
    reminder_24h_sent = Column(Boolean, default=False, nullable=False)
    reminder_1h_sent = Column(Boolean, default=False, nullable=False)
    reminder_15min_sent = Column(Boolean, default=False, nullable=False)

    reschedule_history = Column(
        JSON, default=list
    )  # [{"previous_date", "reason", "rescheduled_by", "rescheduled_at"}]

    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow)

    order = relationship("Order", back_populates="consultations")
    customer = relationship("User", foreign_keys=[customer_id])
    reviewer = relationship("User", foreign_keys=[reviewer_id])

    @property
    def actual_duration(self):
        """Minutes between actual start and end, when both are recorded"""
        if self.actual_start_time and self.actual_end_time:
            return int((self.actual_end_time - self.actual_start_time).total_seconds() // 60)
        return None


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    title = Column(String(200), nullable=False)
    message = Column(String(2000), nullable=False)
    type = Column(String(50), default=NotificationType.GENERAL.value, nullable=False)
    priority = Column(String(20), default=Priority.MEDIUM.value, nullable=False)
    action_url = Column(String(500), nullable=True)

    is_read = Column(Boolean, default=False, nullable=False, index=True)
    read_at = Column(DateTime, nullable=True)

    # Delivery tracking, filled in by the external dispatcher
    is_email_sent = Column(Boolean, default=False, nullable=False)
    email_sent_at = Column(DateTime, nullable=True)
    email_id = Column(String(255), nullable=True)
    is_sms_sent = Column(Boolean, default=False, nullable=False)
    sms_sent_at = Column(DateTime, nullable=True)
    sms_id = Column(String(255), nullable=True)
    is_push_sent = Column(Boolean, default=False, nullable=False)
    push_sent_at = Column(DateTime, nullable=True)
    push_id = Column(String(255), nullable=True)

    expires_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    user = relationship("User")
