"""Background worker job tests"""

from datetime import timedelta

import pytest

from medreview import worker
from medreview.domain.consultations.schemas import ConsultationCreate
from medreview.domain.consultations.service import ConsultationService
from medreview.domain.documents import service as document_service
from medreview.domain.documents.schemas import DocumentMeta
from medreview.domain.documents.service import DocumentService
from medreview.domain.notifications.emitter import NotificationEmitter
from medreview.models import Consultation, Document, Notification, NotificationType
from medreview.shared.dates import utcnow


@pytest.fixture
def worker_sessions(monkeypatch, session_factory):
    monkeypatch.setattr(worker, "SessionLocal", session_factory)


class TestConsultationReminders:
    @pytest.mark.asyncio
    async def test_reminders_sent_once(self, db, worker_sessions, assigned_order, customer, reviewer):
        consultation = ConsultationService(db).schedule(
            customer.id,
            ConsultationCreate(
                orderId=assigned_order.id,
                reviewerId=reviewer.id,
                scheduledDate=utcnow() + timedelta(minutes=60),
            ),
        )

        first = await worker.consultation_reminders_task({})
        second = await worker.consultation_reminders_task({})

        assert first == {"24h": 0, "1h": 1, "15min": 0}
        assert second == {"24h": 0, "1h": 0, "15min": 0}

        db.expire_all()
        assert db.get(Consultation, consultation.id).reminder_1h_sent is True
        reminders = db.query(Notification).filter(Notification.type == NotificationType.REMINDER.value)
        assert reminders.count() == 2


class TestNotificationCleanup:
    @pytest.mark.asyncio
    async def test_cleanup_removes_expired_and_old_read(self, db, worker_sessions, customer):
        emitter = NotificationEmitter(db)
        [expired] = emitter.emit([customer.id], "Expired", "Body")
        [old_read] = emitter.emit([customer.id], "Old read", "Body")
        emitter.emit([customer.id], "Fresh", "Body")

        expired.expires_at = utcnow() - timedelta(hours=1)
        old_read.is_read = True
        old_read.created_at = utcnow() - timedelta(days=365)
        db.commit()

        summary = await worker.notification_cleanup_task({})

        assert summary == {"expired": 1, "read": 1}
        db.expire_all()
        assert [n.title for n in db.query(Notification).all()] == ["Fresh"]


class TestDocumentCleanup:
    @pytest.mark.asyncio
    async def test_purges_stale_inactive_documents(
        self, db, worker_sessions, monkeypatch, assigned_order, customer
    ):
        deleted_keys = []
        monkeypatch.setattr(document_service, "delete_object", deleted_keys.append)
        service = DocumentService(db)
        stale, recent, active = [
            service.upload(
                assigned_order.id,
                DocumentMeta(
                    originalName=f"{name}.pdf",
                    fileSize=10,
                    fileType="application/pdf",
                    filePath=f"documents/{name}.pdf",
                ),
                customer.id,
            )
            for name in ("stale", "recent", "active")
        ]
        stale.is_active = False
        stale.updated_at = utcnow() - timedelta(days=60)
        recent.is_active = False
        db.commit()

        summary = await worker.document_cleanup_task({})

        assert summary == {"documents": 1}
        assert deleted_keys == ["documents/stale.pdf"]
        db.expire_all()
        assert {d.original_name for d in db.query(Document).all()} == {"recent.pdf", "active.pdf"}


def test_worker_settings_register_cron_jobs():
    assert worker.consultation_reminders_task in worker.WorkerSettings.functions
    assert worker.document_cleanup_task in worker.WorkerSettings.functions
    assert len(worker.WorkerSettings.cron_jobs) == 3
