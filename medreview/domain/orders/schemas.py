"""Order domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import OrderStatus, Priority, ProductType
from ...shared.dates import to_naive_utc
from ...shared.sanitization import validate_and_sanitize_input


class OrderCreate(BaseModel):
    """Schema for creating a new order"""

    productType: ProductType = ProductType.SECOND_OPINION
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    totalAmount: float = Field(..., ge=0)
    priority: Priority = Priority.MEDIUM
    dueDate: Optional[datetime] = None
    # Admins may open an order on behalf of a customer
    customerId: Optional[int] = None

    @field_validator("title")
    @classmethod
    def clean_title(cls, v):
        return validate_and_sanitize_input(v, max_length=200)

    @field_validator("description")
    @classmethod
    def clean_description(cls, v):
        return validate_and_sanitize_input(v, max_length=2000)

    @field_validator("dueDate")
    @classmethod
    def normalize_due_date(cls, v):
        return to_naive_utc(v)


class OrderUpdate(BaseModel):
    """Editable order fields; number, customer and payments are never changed here"""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    dueDate: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def clean_title(cls, v):
        return validate_and_sanitize_input(v, max_length=200)

    @field_validator("description")
    @classmethod
    def clean_description(cls, v):
        return validate_and_sanitize_input(v, max_length=2000)

    @field_validator("dueDate")
    @classmethod
    def normalize_due_date(cls, v):
        return to_naive_utc(v)


class AssignRequest(BaseModel):
    reviewerId: int


class StatusUpdateRequest(BaseModel):
    status: OrderStatus


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class OrderResponse(BaseModel):
    """Schema for order response"""

    id: int
    orderNumber: str
    customerId: int
    reviewerId: Optional[int] = None
    productType: str
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    totalAmount: float
    paidAmount: float
    paymentStatus: str
    isOverdue: bool
    dueDate: Optional[datetime] = None
    assignedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    pages: int


class TimelineEvent(BaseModel):
    event: str
    timestamp: datetime
    description: str


class OrderStatsResponse(BaseModel):
    totalOrders: int
    byStatus: dict[str, int]
    totalAmount: float
    paidAmount: float
    averageOrderValue: float
