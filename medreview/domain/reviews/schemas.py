"""Review domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Severity
from ...shared.sanitization import validate_and_sanitize_input
from ...shared.validators import normalize_tags


class RatingsInput(BaseModel):
    """Scores are checked by the service so out-of-range values map to InvalidInput"""

    clarity: Optional[float] = None
    accuracy: Optional[float] = None
    completeness: Optional[float] = None
    overall: Optional[float] = None


class ReviewCreate(BaseModel):
    """Schema for creating a review on an assigned order"""

    orderId: int
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    recommendations: Optional[str] = None
    severity: Severity = Severity.MEDIUM
    reviewTime: Optional[int] = Field(None, ge=0)
    tags: list[str] = []
    ratings: Optional[RatingsInput] = None
    attachments: list[str] = []
    isComplete: bool = False

    @field_validator("title")
    @classmethod
    def clean_title(cls, v):
        return validate_and_sanitize_input(v, max_length=200)

    @field_validator("content", "recommendations")
    @classmethod
    def clean_body(cls, v):
        return validate_and_sanitize_input(v, max_length=20000)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v):
        return normalize_tags(v)


class ReviewUpdate(BaseModel):
    """Editable review fields while the review is still a draft"""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = None
    recommendations: Optional[str] = None
    severity: Optional[Severity] = None
    reviewTime: Optional[int] = Field(None, ge=0)

    @field_validator("title")
    @classmethod
    def clean_title(cls, v):
        return validate_and_sanitize_input(v, max_length=200)

    @field_validator("content", "recommendations")
    @classmethod
    def clean_body(cls, v):
        return validate_and_sanitize_input(v, max_length=20000)


class ReviewComplete(BaseModel):
    recommendations: Optional[str] = None
    attachments: Optional[list[str]] = None
    ratings: Optional[RatingsInput] = None

    @field_validator("recommendations")
    @classmethod
    def clean_body(cls, v):
        return validate_and_sanitize_input(v, max_length=20000)


class TagsRequest(BaseModel):
    tags: list[str]


class AttachmentRequest(BaseModel):
    locator: str = Field(..., min_length=1, max_length=500)


class ReviewResponse(BaseModel):
    """Schema for review response"""

    id: int
    orderId: int
    reviewerId: int
    title: str
    content: str
    recommendations: Optional[str] = None
    severity: str
    isComplete: bool
    reviewTime: Optional[int] = None
    tags: list[str] = []
    attachments: list[str] = []
    ratings: RatingsInput
    completedAt: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
    total: int
    page: int
    pages: int


class ReviewStatsResponse(BaseModel):
    totalReviews: int
    completedReviews: int
    averageReviewTime: Optional[float] = None
    averageRating: Optional[float] = None
    severityDistribution: dict[str, int]
