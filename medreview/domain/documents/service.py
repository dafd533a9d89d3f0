"""Document service - Registry of files attached to orders"""

import logging
import os
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...models import Document, NotificationType, Order, User, UserRole
from ...shared.dates import utcnow
from ...shared.exceptions import Forbidden, InvalidDate, InvalidFile, InvalidInput, NotFound
from ...shared.pagination import paginate
from ...storage import build_document_key, delete_object, upload_bytes
from ..notifications.emitter import NotificationEmitter
from ..orders.repository import OrderRepository
from ..orders.service import order_url
from ..users.repository import UserRepository
from .repository import DocumentRepository
from .schemas import DocumentMeta

logger = logging.getLogger(__name__)

ALLOWED_FILE_TYPES = frozenset(
    {
        "application/pdf",
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/bmp",
        "image/tiff",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "application/rtf",
    }
)


def validate_file(file_size: int, file_type: str) -> str:
    """Check size and MIME type; returns the normalized type"""
    normalized = (file_type or "").strip().lower()
    if file_size > config.MAX_DOCUMENT_SIZE:
        raise InvalidFile(
            f"File size exceeds {config.MAX_DOCUMENT_SIZE // (1024 * 1024)}MB limit. "
            f"Your file is {file_size / (1024 * 1024):.2f}MB."
        )
    if normalized not in ALLOWED_FILE_TYPES:
        raise InvalidFile(f"File type {normalized or 'unknown'} is not allowed")
    return normalized


def order_parties(order: Order) -> set[int]:
    return {uid for uid in (order.customer_id, order.reviewer_id) if uid is not None}


class DocumentService:
    """Service layer for document business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DocumentRepository()
        self.orders = OrderRepository()
        self.users = UserRepository()
        self.notifier = NotificationEmitter(db)

    def get_document(self, document_id: int) -> Document:
        document = self.repo.get_by_id(self.db, document_id)
        if not document:
            raise NotFound("Document not found")
        return document

    def list_by_order(self, order_id: int) -> list[Document]:
        return self.repo.get_active_by_order(self.db, order_id)

    def list_by_uploader(
        self, uploader_id: int, file_type: Optional[str] = None, page: int = 1, limit: int = 20
    ) -> dict:
        return paginate(self.repo.query_by_uploader(self.db, uploader_id, file_type), page, limit)

    def search(
        self,
        term: str,
        order_id: Optional[int] = None,
        uploader_id: Optional[int] = None,
        file_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Document]:
        if not term or not term.strip():
            raise InvalidInput("Search term is required")
        return self.repo.search(self.db, term, order_id, uploader_id, file_type, start, end)

    def stats(
        self,
        order_id: Optional[int] = None,
        uploader_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict:
        if start and end and start > end:
            raise InvalidDate("Start date must be before end date")
        return self.repo.get_stats(self.db, order_id, uploader_id, start, end)

    def upload(self, order_id: int, meta: DocumentMeta, uploader_id: int) -> Document:
        """Register a stored file against an order"""
        file_type = validate_file(meta.fileSize, meta.fileType)

        order = self.orders.get_by_id(self.db, order_id)
        if not order:
            raise NotFound("Order not found")
        uploader = self.users.get_by_id(self.db, uploader_id)
        if not uploader:
            raise NotFound("Uploader not found")

        document = self.repo.create_document(
            self.db,
            order_id=order.id,
            file_name=meta.fileName or os.path.basename(meta.filePath),
            original_name=meta.originalName,
            file_size=meta.fileSize,
            file_type=file_type,
            file_path=meta.filePath,
            uploaded_by=uploader.id,
            is_active=True,
            download_count=0,
            pages=meta.pages,
            width=meta.width,
            height=meta.height,
            duration=meta.duration,
        )
        logger.info(f"📎 Document {document.id} ({document.original_name}) uploaded to order {order.id}")

        recipients = order_parties(order) - {uploader.id}
        self.notifier.emit(
            sorted(recipients),
            "New Document Uploaded",
            f"{uploader.name} uploaded {document.original_name} to order {order.order_number}.",
            NotificationType.DOCUMENT_UPLOADED,
            order_id=order.id,
            action_url=order_url(order),
        )
        return document

    def upload_content(
        self, order_id: int, uploader_id: int, original_name: str, content_type: str, contents: bytes
    ) -> Document:
        """Validate, store the bytes, then register the document"""
        file_type = validate_file(len(contents), content_type)
        if not self.orders.get_by_id(self.db, order_id):
            raise NotFound("Order not found")

        key = build_document_key(order_id, original_name)
        upload_bytes(key, contents, file_type)

        meta = DocumentMeta(
            originalName=original_name,
            fileSize=len(contents),
            fileType=file_type,
            filePath=key,
        )
        return self.upload(order_id, meta, uploader_id)

    def download(self, document_id: int, requester_id: int) -> Document:
        """Authorize a download and count it; returns the document with its locator"""
        document = self.repo.get_by_id(self.db, document_id)
        if not document or not document.is_active:
            raise NotFound("Document not found")

        order = self.orders.get_by_id(self.db, document.order_id)
        if requester_id not in order_parties(order):
            logger.warning(f"⚠️ User {requester_id} denied download of document {document_id}")
            raise Forbidden("Not allowed to download this document")

        self.repo.increment_download_count(self.db, document.id)
        self.db.refresh(document)
        logger.info(f"⬇️ Document {document.id} downloaded by user {requester_id}")
        return document

    def soft_delete(self, document_id: int, user: User) -> Document:
        document = self.get_document(document_id)
        order = self.orders.get_by_id(self.db, document.order_id)
        if user.id not in order_parties(order) | {document.uploaded_by}:
            raise Forbidden("Not allowed to delete this document")

        document = self.repo.set_active(self.db, document, False)
        logger.info(f"🗑️ Document {document.id} deactivated by user {user.id}")
        return document

    def restore(self, document_id: int, user: User) -> Document:
        document = self.get_document(document_id)
        order = self.orders.get_by_id(self.db, document.order_id)
        allowed = user.id in order_parties(order) | {document.uploaded_by}
        if not allowed and user.role != UserRole.ADMIN.value:
            raise Forbidden("Not allowed to restore this document")

        document = self.repo.set_active(self.db, document, True)
        logger.info(f"♻️ Document {document.id} restored by user {user.id}")
        return document

    def cleanup_inactive(self, days_old: int = config.DOCUMENT_RETENTION_DAYS) -> int:
        """Purge documents deactivated more than days_old ago, stored objects first"""
        cutoff = utcnow() - timedelta(days=days_old)
        documents = self.repo.get_inactive_before(self.db, cutoff)

        for document in documents:
            try:
                delete_object(document.file_path)
            except Exception as e:
                # Rows are removed even when the object delete fails
                logger.warning(f"⚠️ Could not delete object for document {document.id}: {e}")

        deleted = self.repo.delete_many(self.db, [d.id for d in documents])
        logger.info(f"🧹 Removed {deleted} inactive documents older than {days_old} days")
        return deleted
