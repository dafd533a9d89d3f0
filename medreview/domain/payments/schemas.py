"""Payment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import PaymentMethod


class PaymentCreate(BaseModel):
    """Schema for recording a payment attempt against an order"""

    orderId: int
    # Positivity is enforced by the ledger so it surfaces as InvalidAmount
    amount: float
    paymentMethod: PaymentMethod
    currency: str = Field("USD", min_length=3, max_length=3)
    paymentProvider: Optional[str] = Field(None, max_length=100)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v):
        return v.upper()


class PaymentCompleteRequest(BaseModel):
    transactionId: Optional[str] = Field(None, max_length=255)
    fee: Optional[float] = Field(None, ge=0)
    cardLast4: Optional[str] = Field(None, pattern=r"^\d{4}$")
    cardBrand: Optional[str] = Field(None, max_length=50)


class PaymentFailRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class RefundRequest(BaseModel):
    amount: Optional[float] = None
    reason: Optional[str] = Field(None, max_length=1000)
    refundId: Optional[str] = Field(None, max_length=255)


class PaymentResponse(BaseModel):
    """Schema for payment response"""

    id: int
    orderId: int
    amount: float
    currency: str
    status: str
    paymentMethod: str
    paymentProvider: Optional[str] = None
    transactionId: Optional[str] = None
    cardLast4: Optional[str] = None
    cardBrand: Optional[str] = None
    fee: float
    netAmount: Optional[float] = None
    failureReason: Optional[str] = None
    refundAmount: Optional[float] = None
    refundReason: Optional[str] = None
    refundId: Optional[str] = None
    refundedAt: Optional[datetime] = None
    processedAt: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentHistoryResponse(BaseModel):
    orderId: int
    totalAmount: float
    totalPaid: float
    totalRefunded: float
    outstanding: float
    payments: list[PaymentResponse]


class PaymentListResponse(BaseModel):
    items: list[PaymentResponse]
    total: int
    page: int
    pages: int


class PaymentStatsResponse(BaseModel):
    totalPayments: int
    totalAmount: float
    totalNetAmount: float
    totalFees: float
    averageAmount: float
    byStatus: dict[str, int]
    byMethod: dict[str, int]
