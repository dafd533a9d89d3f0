"""Document repository - Database operations for order documents"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from ...models import Document


def _active(db: Session) -> Query:
    return db.query(Document).filter(Document.is_active.is_(True))


class DocumentRepository:
    """Repository for document database operations"""

    @staticmethod
    def get_by_id(db: Session, document_id: int) -> Optional[Document]:
        return db.query(Document).filter(Document.id == document_id).first()

    @staticmethod
    def get_active_by_order(db: Session, order_id: int) -> list[Document]:
        return (
            _active(db)
            .filter(Document.order_id == order_id)
            .order_by(Document.created_at.desc(), Document.id.desc())
            .all()
        )

    @staticmethod
    def query_by_uploader(db: Session, uploader_id: int, file_type: Optional[str] = None) -> Query:
        query = _active(db).filter(Document.uploaded_by == uploader_id)
        if file_type:
            query = query.filter(Document.file_type == file_type)
        return query.order_by(Document.created_at.desc(), Document.id.desc())

    @staticmethod
    def search(
        db: Session,
        term: str,
        order_id: Optional[int] = None,
        uploader_id: Optional[int] = None,
        file_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 20,
    ) -> list[Document]:
        """Active documents whose original or stored name contains the term"""
        pattern = f"%{term.strip()}%"
        query = _active(db).filter(
            or_(Document.original_name.ilike(pattern), Document.file_name.ilike(pattern))
        )
        if order_id is not None:
            query = query.filter(Document.order_id == order_id)
        if uploader_id is not None:
            query = query.filter(Document.uploaded_by == uploader_id)
        if file_type:
            query = query.filter(Document.file_type == file_type)
        if start is not None:
            query = query.filter(Document.created_at >= start)
        if end is not None:
            query = query.filter(Document.created_at <= end)
        return query.order_by(Document.created_at.desc(), Document.id.desc()).limit(limit).all()

    @staticmethod
    def get_stats(
        db: Session,
        order_id: Optional[int] = None,
        uploader_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict:
        base = _active(db)
        if order_id is not None:
            base = base.filter(Document.order_id == order_id)
        if uploader_id is not None:
            base = base.filter(Document.uploaded_by == uploader_id)
        if start is not None:
            base = base.filter(Document.created_at >= start)
        if end is not None:
            base = base.filter(Document.created_at <= end)

        by_type = dict(
            base.with_entities(Document.file_type, func.count(Document.id))
            .group_by(Document.file_type)
            .all()
        )
        total, total_size, total_downloads, average_size = base.with_entities(
            func.count(Document.id),
            func.coalesce(func.sum(Document.file_size), 0),
            func.coalesce(func.sum(Document.download_count), 0),
            func.avg(Document.file_size),
        ).one()

        return {
            "total_documents": total,
            "total_size": int(total_size),
            "total_downloads": int(total_downloads),
            "average_size": float(average_size) if average_size is not None else 0.0,
            "by_file_type": by_type,
            "largest": base.order_by(Document.file_size.desc(), Document.id.asc()).first(),
            "smallest": base.order_by(Document.file_size.asc(), Document.id.asc()).first(),
        }

    @staticmethod
    def get_inactive_before(db: Session, cutoff: datetime) -> list[Document]:
        """Deactivated documents last touched before the cutoff"""
        return (
            db.query(Document)
            .filter(Document.is_active.is_(False), Document.updated_at < cutoff)
            .order_by(Document.id.asc())
            .all()
        )

    @staticmethod
    def delete_many(db: Session, document_ids: list[int]) -> int:
        if not document_ids:
            return 0
        deleted = (
            db.query(Document)
            .filter(Document.id.in_(document_ids))
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def create_document(db: Session, **document_data) -> Document:
        document = Document(**document_data)
        db.add(document)
        db.commit()
        db.refresh(document)
        return document

    @staticmethod
    def increment_download_count(db: Session, document_id: int) -> None:
        db.query(Document).filter(Document.id == document_id).update(
            {Document.download_count: Document.download_count + 1}, synchronize_session=False
        )
        db.commit()

    @staticmethod
    def set_active(db: Session, document: Document, active: bool) -> Document:
        document.is_active = active
        db.commit()
        db.refresh(document)
        return document
