"""Document domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class DocumentMeta(BaseModel):
    """Metadata describing a file that has already been stored"""

    originalName: str = Field(..., min_length=1, max_length=255)
    fileSize: int = Field(..., ge=0)
    fileType: str
    filePath: str = Field(..., min_length=1, max_length=500)
    fileName: Optional[str] = Field(None, max_length=255)
    pages: Optional[int] = Field(None, ge=0)
    width: Optional[int] = Field(None, ge=0)
    height: Optional[int] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=0)

    @field_validator("fileType")
    @classmethod
    def lower_type(cls, v):
        return v.strip().lower()


class DocumentRegister(DocumentMeta):
    orderId: int


class DocumentResponse(BaseModel):
    """Schema for document response"""

    id: int
    orderId: int
    fileName: str
    originalName: str
    fileSize: int
    fileType: str
    uploadedBy: int
    isActive: bool
    downloadCount: int
    pages: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    duration: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DownloadResponse(BaseModel):
    url: str
    fileName: str
    downloadCount: int


class DocumentListResponse(BaseModel):
    items: list[DocumentResponse]
    total: int
    page: int
    pages: int


class DocumentStatsResponse(BaseModel):
    totalDocuments: int
    totalSize: int
    totalDownloads: int
    averageSize: float
    byFileType: dict[str, int]
    largest: Optional[DocumentResponse] = None
    smallest: Optional[DocumentResponse] = None
