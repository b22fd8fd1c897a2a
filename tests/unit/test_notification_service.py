"""
Unit tests for notification email dispatch and recipient inbox operations.

Covers:
- format_answer display rules
- Payload composition and fallbacks
- Batch dispatch: ordering, exactly-once processing, partial failures
- Read-state updates staying out of the dispatcher's column
"""
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.config import settings
from app.models import Notification
from app.services.errors import ConfigurationError, InvalidInputError
from app.services.notification_service import (
    DispatchResult,
    NotificationDispatcher,
    NotificationService,
    format_answer,
)
from tests.conftest import NOTIFICATION_WEBHOOK
from tests.factories import (
    create_form,
    create_form_response,
    create_notification,
    create_profile,
    create_user,
)


@pytest.fixture
def dispatcher(db: Session, email_sender) -> NotificationDispatcher:
    return NotificationDispatcher(db, email_sender)


class TestFormatAnswer:
    def test_list_joined(self):
        assert format_answer(["a", "b", "c"]) == "a, b, c"

    def test_list_with_none(self):
        assert format_answer(["a", None, 3]) == "a, , 3"

    def test_dict_compact_json(self):
        assert format_answer({"k": 1}) == '{"k":1}'

    def test_dict_keeps_non_ascii_text(self):
        assert format_answer({"city": "Zürich", "note": "café ✓"}) == '{"city":"Zürich","note":"café ✓"}'

    @pytest.mark.parametrize("value", ["plain", 42, None, True])
    def test_scalars_pass_through(self, value):
        assert format_answer(value) == value


class TestDispatchResult:
    def test_empty_message(self):
        assert DispatchResult().message == "No notifications to process"

    def test_counts_message(self):
        assert DispatchResult(2, 1).message == "Processed 2 notifications with 1 errors"


class TestBuildPayload:
    def test_full_context(self, db: Session, dispatcher, admin_profile, admin_user,
                          employee_profile, employee_user):
        form = create_form(db, admin_user, title="Site Audit", questions=["Hazards seen?"])
        response = create_form_response(db, form, employee_user)
        notification = create_notification(
            db, admin_profile, answer=["ladder", "wiring"], form=form, response=response
        )

        payload = dispatcher.build_payload(notification, admin_profile)

        assert payload == {
            "recipientEmail": "admin@example.com",
            "questionText": "Hazards seen?",
            "formattedAnswer": "ladder, wiring",
            "formTitle": "Site Audit",
            "submitterName": "Eve Employee",
            "responseId": response.id,
            "questionId": form.questions[0].id,
        }

    def test_fallbacks(self, db: Session, dispatcher, admin_profile):
        notification = create_notification(db, admin_profile, answer={"x": 1})

        payload = dispatcher.build_payload(notification, admin_profile)

        assert payload["formTitle"] == "Unknown Form"
        assert payload["submitterName"] == "Unknown User"
        assert payload["formattedAnswer"] == '{"x":1}'

    def test_submitter_without_name_uses_email(self, db: Session, dispatcher, admin_profile, admin_user):
        nameless = create_user(db, email="nameless@example.com")
        create_profile(db, nameless)
        form = create_form(db, admin_user)
        response = create_form_response(db, form, nameless)
        notification = create_notification(db, admin_profile, form=form, response=response)

        payload = dispatcher.build_payload(notification, admin_profile)

        assert payload["submitterName"] == "nameless@example.com"


class TestDispatchPending:
    @pytest.mark.asyncio
    async def test_success_marks_processed(self, db: Session, dispatcher, admin_profile, email_sender):
        notification = create_notification(db, admin_profile)

        result = await dispatcher.dispatch_pending()

        assert (result.processed, result.errors) == (1, 0)
        db.refresh(notification)
        assert notification.processed_at is not None
        assert notification.read is False
        assert len(email_sender.payloads_for(NOTIFICATION_WEBHOOK)) == 1

    @pytest.mark.asyncio
    async def test_nothing_pending(self, dispatcher, email_sender):
        result = await dispatcher.dispatch_pending()

        assert result.message == "No notifications to process"
        assert email_sender.attempts == []

    @pytest.mark.asyncio
    async def test_processed_rows_are_not_resent(self, db: Session, dispatcher, admin_profile, email_sender):
        create_notification(db, admin_profile)

        await dispatcher.dispatch_pending()
        second = await dispatcher.dispatch_pending()

        assert second.processed == 0
        assert len(email_sender.sent) == 1

    @pytest.mark.asyncio
    async def test_failure_left_for_next_run(self, db: Session, dispatcher, admin_profile, email_sender):
        good = create_notification(db, admin_profile, answer="good")
        bad = create_notification(db, admin_profile, answer="bad")
        email_sender.fail_when(lambda payload: payload["formattedAnswer"] == "bad", status=503)

        result = await dispatcher.dispatch_pending()

        assert (result.processed, result.errors) == (1, 1)
        db.refresh(good)
        db.refresh(bad)
        assert good.processed_at is not None
        assert bad.processed_at is None

        # Webhook recovers; the failed row is picked up on the next run
        email_sender.reset()
        retry = await dispatcher.dispatch_pending()

        assert (retry.processed, retry.errors) == (1, 0)
        db.refresh(bad)
        assert bad.processed_at is not None

    @pytest.mark.asyncio
    async def test_batch_takes_oldest_first(self, db: Session, dispatcher, admin_profile):
        base = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
        newest = create_notification(db, admin_profile, created_at=base + timedelta(minutes=2))
        oldest = create_notification(db, admin_profile, created_at=base)
        middle = create_notification(db, admin_profile, created_at=base + timedelta(minutes=1))

        result = await dispatcher.dispatch_pending(batch_size=2)

        assert result.processed == 2
        for n in (oldest, middle, newest):
            db.refresh(n)
        assert oldest.processed_at is not None
        assert middle.processed_at is not None
        assert newest.processed_at is None

    @pytest.mark.asyncio
    async def test_default_batch_size_from_settings(self, db: Session, dispatcher, admin_profile, monkeypatch):
        monkeypatch.setattr(settings, "notification_batch_size", 3)
        for _ in range(5):
            create_notification(db, admin_profile)

        result = await dispatcher.dispatch_pending()

        assert result.processed == 3

    @pytest.mark.asyncio
    async def test_missing_recipient_email_counts_error(
        self, db: Session, dispatcher, admin_profile, email_sender
    ):
        notification = create_notification(db, admin_profile)
        admin_profile.email = ""
        db.flush()

        result = await dispatcher.dispatch_pending()

        assert (result.processed, result.errors) == (0, 1)
        assert email_sender.attempts == []
        db.refresh(notification)
        assert notification.processed_at is None

    @pytest.mark.asyncio
    async def test_other_types_ignored(self, db: Session, dispatcher, admin_profile):
        create_notification(db, admin_profile, type="system")

        result = await dispatcher.dispatch_pending()

        assert result.processed == 0

    @pytest.mark.asyncio
    async def test_missing_webhook(self, db: Session, dispatcher, admin_profile, monkeypatch):
        notification = create_notification(db, admin_profile)
        monkeypatch.setattr(settings, "notification_webhook_url", "")

        with pytest.raises(ConfigurationError):
            await dispatcher.dispatch_pending()

        db.refresh(notification)
        assert notification.processed_at is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("batch_size", [0, -1])
    async def test_rejects_non_positive_batch_size(
        self, db: Session, dispatcher, admin_profile, email_sender, batch_size
    ):
        create_notification(db, admin_profile)

        with pytest.raises(InvalidInputError):
            await dispatcher.dispatch_pending(batch_size)

        assert email_sender.attempts == []

    @pytest.mark.asyncio
    async def test_database_error_composing_does_not_abort_batch(
        self, db: Session, dispatcher, admin_profile, email_sender
    ):
        base = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
        broken = create_notification(db, admin_profile, created_at=base)
        healthy = create_notification(db, admin_profile, created_at=base + timedelta(minutes=1))
        db.commit()

        original = dispatcher.build_payload

        def build_payload(notification, recipient):
            if notification.id == broken.id:
                raise OperationalError("SELECT forms", {}, Exception("connection reset"))
            return original(notification, recipient)

        with patch.object(dispatcher, "build_payload", side_effect=build_payload), \
             patch.object(db, "rollback", wraps=db.rollback) as mock_rollback:
            result = await dispatcher.dispatch_pending()

        assert (result.processed, result.errors) == (1, 1)
        mock_rollback.assert_called_once()
        db.refresh(broken)
        db.refresh(healthy)
        assert broken.processed_at is None
        assert healthy.processed_at is not None

    @pytest.mark.asyncio
    async def test_mark_processed_failure_does_not_abort_batch(
        self, db: Session, dispatcher, admin_profile, email_sender
    ):
        base = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
        first = create_notification(db, admin_profile, created_at=base)
        second = create_notification(db, admin_profile, created_at=base + timedelta(minutes=1))
        db.commit()

        original = dispatcher.notifications.mark_processed

        def mark_processed(notification_id, processed_at):
            if notification_id == first.id:
                raise OperationalError("UPDATE notifications", {}, Exception("database is locked"))
            return original(notification_id, processed_at)

        with patch.object(dispatcher.notifications, "mark_processed", side_effect=mark_processed):
            result = await dispatcher.dispatch_pending()

        assert (result.processed, result.errors) == (1, 1)
        assert len(email_sender.sent) == 2
        db.refresh(first)
        db.refresh(second)
        assert first.processed_at is None
        assert second.processed_at is not None


class TestSendDirect:
    @pytest.mark.asyncio
    async def test_sends_formatted_payload(self, dispatcher, email_sender):
        await dispatcher.send_direct({
            "questionText": "Which days?",
            "answer": ["Mon", "Tue"],
            "formTitle": "Roster",
            "recipientEmail": "boss@example.com",
        })

        payload = email_sender.payloads_for(NOTIFICATION_WEBHOOK)[0]
        assert payload["formattedAnswer"] == "Mon, Tue"
        assert payload["submitterName"] == "Unknown User"

    @pytest.mark.asyncio
    async def test_missing_fields(self, dispatcher):
        with pytest.raises(InvalidInputError) as exc_info:
            await dispatcher.send_direct({"questionText": "Which days?"})
        assert exc_info.value.message == "Missing required fields"


class TestNotificationService:
    def test_list_scoped_and_newest_first(self, db: Session, admin_profile, employee_profile):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        older = create_notification(db, admin_profile, created_at=base)
        newer = create_notification(db, admin_profile, created_at=base + timedelta(hours=1))
        create_notification(db, employee_profile)

        notifications, unread = NotificationService(db).list(admin_profile)

        assert [n.id for n in notifications] == [newer.id, older.id]
        assert unread == 2

    def test_list_unread_only_and_paging(self, db: Session, admin_profile):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        read = create_notification(db, admin_profile, created_at=base, read=True)
        items = [
            create_notification(db, admin_profile, created_at=base + timedelta(minutes=i + 1))
            for i in range(3)
        ]
        service = NotificationService(db)

        unread_only, unread_count = service.list(admin_profile, unread_only=True)
        page_two, _ = service.list(admin_profile, limit=2, page=2)

        assert read.id not in [n.id for n in unread_only]
        assert unread_count == 3
        assert [n.id for n in page_two] == [items[0].id, read.id]

    @pytest.mark.parametrize("limit,page", [(0, 1), (101, 1), (10, 0)])
    def test_list_rejects_bad_paging(self, db: Session, admin_profile, limit, page):
        with pytest.raises(InvalidInputError):
            NotificationService(db).list(admin_profile, limit=limit, page=page)

    def test_mark_read_leaves_processed_at(self, db: Session, admin_profile, employee_profile):
        processed_at = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        mine = create_notification(db, admin_profile, processed_at=processed_at)
        untouched = create_notification(db, admin_profile)
        theirs = create_notification(db, employee_profile)

        updated = NotificationService(db).mark_read(admin_profile, [mine.id, theirs.id])

        assert updated == 1
        for n in (mine, untouched, theirs):
            db.refresh(n)
        assert mine.read is True
        assert mine.processed_at.replace(tzinfo=timezone.utc) == processed_at
        assert untouched.read is False
        assert theirs.read is False

    def test_mark_all_read(self, db: Session, admin_profile, employee_profile):
        create_notification(db, admin_profile)
        create_notification(db, admin_profile)
        theirs = create_notification(db, employee_profile)

        updated = NotificationService(db).mark_all_read(admin_profile)

        assert updated == 2
        assert db.query(Notification).filter_by(recipient_id=admin_profile.id, read=False).count() == 0
        db.refresh(theirs)
        assert theirs.read is False
