"""Document router - FastAPI endpoints for order documents"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import Document, User, UserRole
from ...shared.dates import to_naive_utc
from ...shared.exceptions import Forbidden
from ...storage import generate_presigned_url
from ..orders.service import OrderService
from .schemas import (
    DocumentListResponse,
    DocumentRegister,
    DocumentResponse,
    DocumentStatsResponse,
    DownloadResponse,
)
from .service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


def get_document_service(db: Session = Depends(get_db)) -> DocumentService:
    """Dependency injection for DocumentService"""
    return DocumentService(db)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


def to_response(d: Document) -> DocumentResponse:
    return DocumentResponse(
        id=d.id,
        orderId=d.order_id,
        fileName=d.file_name,
        originalName=d.original_name,
        fileSize=d.file_size,
        fileType=d.file_type,
        uploadedBy=d.uploaded_by,
        isActive=d.is_active,
        downloadCount=d.download_count,
        pages=d.pages,
        width=d.width,
        height=d.height,
        duration=d.duration,
        created_at=d.created_at,
    )


def ensure_uploader_allowed(order_id: int, user: User, orders: OrderService) -> None:
    order = orders.get_order(order_id)
    if user.role != UserRole.ADMIN.value and user.id not in (order.customer_id, order.reviewer_id):
        raise Forbidden("Only parties to the order can upload documents")


@router.post("/upload", response_model=DocumentResponse, status_code=201)
async def upload_document(
    order_id: int = Form(...),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    orders: OrderService = Depends(get_order_service),
):
    """Upload a file to storage and attach it to an order"""
    ensure_uploader_allowed(order_id, current_user, orders)

    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")
    if len(file.filename) > 255:
        raise HTTPException(status_code=400, detail="Filename too long - maximum 255 characters")

    contents = await file.read()
    document = service.upload_content(
        order_id, current_user.id, file.filename, file.content_type or "", contents
    )
    return to_response(document)


@router.post("", response_model=DocumentResponse, status_code=201)
async def register_document(
    data: DocumentRegister,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    orders: OrderService = Depends(get_order_service),
):
    """Register a file that was stored out of band (e.g. direct-to-bucket upload)"""
    ensure_uploader_allowed(data.orderId, current_user, orders)
    return to_response(service.upload(data.orderId, data, current_user.id))


@router.get("/order/{order_id}", response_model=list[DocumentResponse])
async def list_order_documents(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    orders: OrderService = Depends(get_order_service),
):
    orders.get_order_for_user(order_id, current_user)
    return [to_response(d) for d in service.list_by_order(order_id)]


@router.get("/mine", response_model=DocumentListResponse)
async def list_my_documents(
    file_type: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Active documents the current user uploaded"""
    result = service.list_by_uploader(
        current_user.id, file_type.strip().lower() if file_type else None, page, limit
    )
    return DocumentListResponse(
        items=[to_response(d) for d in result["items"]],
        total=result["total"],
        page=result["page"],
        pages=result["pages"],
    )


@router.get("/search", response_model=list[DocumentResponse])
async def search_documents(
    q: str = Query(..., min_length=1),
    order_id: Optional[int] = Query(None),
    uploaded_by: Optional[int] = Query(None),
    file_type: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    _admin: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
):
    documents = service.search(
        q,
        order_id,
        uploaded_by,
        file_type.strip().lower() if file_type else None,
        to_naive_utc(start),
        to_naive_utc(end),
    )
    return [to_response(d) for d in documents]


@router.get("/stats", response_model=DocumentStatsResponse)
async def document_stats(
    order_id: Optional[int] = Query(None),
    uploaded_by: Optional[int] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    _admin: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
):
    stats = service.stats(order_id, uploaded_by, to_naive_utc(start), to_naive_utc(end))
    return DocumentStatsResponse(
        totalDocuments=stats["total_documents"],
        totalSize=stats["total_size"],
        totalDownloads=stats["total_downloads"],
        averageSize=stats["average_size"],
        byFileType=stats["by_file_type"],
        largest=to_response(stats["largest"]) if stats["largest"] else None,
        smallest=to_response(stats["smallest"]) if stats["smallest"] else None,
    )


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    orders: OrderService = Depends(get_order_service),
):
    document = service.get_document(document_id)
    orders.get_order_for_user(document.order_id, current_user)
    return to_response(document)


@router.get("/{document_id}/download", response_model=DownloadResponse)
async def download_document(
    document_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Count the download and hand back a short-lived URL"""
    document = service.download(document_id, current_user.id)
    try:
        url = generate_presigned_url(document.file_path, download_name=document.original_name)
    except Exception as e:
        logger.error(f"❌ Could not sign download for document {document_id}: {e}")
        raise HTTPException(status_code=502, detail="Storage unavailable") from e
    return DownloadResponse(
        url=url, fileName=document.original_name, downloadCount=document.download_count
    )


@router.delete("/{document_id}", response_model=DocumentResponse)
async def delete_document(
    document_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return to_response(service.soft_delete(document_id, current_user))


@router.post("/{document_id}/restore", response_model=DocumentResponse)
async def restore_document(
    document_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return to_response(service.restore(document_id, current_user))


__all__ = ["router"]
