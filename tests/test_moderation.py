"""
Tests for the moderation state machine
"""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from src.alerts.messages import MessageService
from src.core.config import Settings
from src.core.errors import (
    AuthorizationError,
    InvalidTransitionError,
    ReportNotFoundError,
    StorageError,
)
from src.database.models import Message, MessageType, Report, ReportStatus
from src.moderation.state_machine import ModerationService, ProcessingGuard


def _messages(session, user_id="user-1"):
    return list(session.scalars(select(Message).where(Message.user_id == user_id)))


class TestModerationService:
    """Transitions and the messages they emit."""

    @pytest.fixture(autouse=True)
    def _service(self, db_session):
        self.db = db_session
        self.guard = ProcessingGuard()
        self.service = ModerationService(db_session, guard=self.guard)

    def test_approve_sends_one_approval_message(self, admin_ctx, make_report):
        report = make_report(category="Pothole")

        result = self.service.approve(admin_ctx, report.doc_id)

        assert self.db.get(Report, report.doc_id).status == ReportStatus.APPROVED
        assert result.from_status == "pending"
        assert result.to_status == "approved"
        assert result.message_delivered

        messages = _messages(self.db)
        assert len(messages) == 1
        message = messages[0]
        assert message.type == MessageType.APPROVAL
        assert message.title == "Report Approved"
        assert message.content == 'Your report about "Pothole" has been approved.'
        assert message.report_id == report.id
        assert message.read is False
        assert message.expires_at - message.created_at == timedelta(hours=2)

    def test_decline_deletes_report_and_sends_message(self, admin_ctx, make_report):
        report = make_report(category="Water Leak")

        result = self.service.decline(admin_ctx, report.doc_id)

        assert self.db.get(Report, report.doc_id) is None
        assert result.to_status == "deleted"

        messages = _messages(self.db)
        assert len(messages) == 1
        assert messages[0].type == MessageType.DECLINE
        assert messages[0].title == "Report Declined"
        assert messages[0].content == (
            'Your report about "Water Leak" has been declined. Please review and submit again.'
        )
        assert messages[0].report_id == report.id

    def test_decline_can_retain_record(self, db_session, admin_ctx, make_report):
        service = ModerationService(
            db_session,
            guard=ProcessingGuard(),
            settings=Settings(retain_declined_reports=True),
        )
        report = make_report()

        result = service.decline(admin_ctx, report.doc_id, reason="Blurry photo")

        stored = self.db.get(Report, report.doc_id)
        assert result.to_status == "declined"
        assert stored.status == ReportStatus.DECLINED
        assert stored.decline_reason == "Blurry photo"
        assert stored.declined_at is not None

    def test_assign_then_complete(self, admin_ctx, make_report):
        report = make_report(status=ReportStatus.APPROVED, category="Graffiti/Vandalism")

        self.service.assign(admin_ctx, report.doc_id)
        assert [r.id for r in self.service.list_assigned(admin_ctx)] == [report.id]

        result = self.service.complete(admin_ctx, report.doc_id)

        assert self.db.get(Report, report.doc_id).status == ReportStatus.COMPLETED
        assert result.to_status == "completed"
        messages = _messages(self.db)
        assert [m.type for m in messages] == [MessageType.GENERAL]
        assert messages[0].title == "Report Completed"
        assert messages[0].content == (
            'Your report about "Graffiti/Vandalism" has been marked as completed.'
        )

    def test_complete_by_other_admin_is_rejected(self, admin_ctx, other_admin_ctx, make_report):
        report = make_report(status=ReportStatus.APPROVED, assigned=admin_ctx.user_id)

        with pytest.raises(AuthorizationError):
            self.service.complete(other_admin_ctx, report.doc_id)

        assert self.db.get(Report, report.doc_id).status == ReportStatus.APPROVED
        assert _messages(self.db) == []

    def test_complete_unassigned_is_rejected(self, admin_ctx, make_report):
        report = make_report(status=ReportStatus.APPROVED)

        with pytest.raises(AuthorizationError):
            self.service.complete(admin_ctx, report.doc_id)

    def test_assign_someone_elses_report(self, admin_ctx, other_admin_ctx, make_report):
        report = make_report(status=ReportStatus.APPROVED, assigned=admin_ctx.user_id)

        with pytest.raises(InvalidTransitionError):
            self.service.assign(other_admin_ctx, report.doc_id)

    def test_non_admin_is_rejected_before_any_read(self, user_ctx):
        db = MagicMock()
        service = ModerationService(db, messages=MagicMock(), guard=ProcessingGuard())

        for action in (service.approve, service.decline, service.assign, service.complete):
            with pytest.raises(AuthorizationError):
                action(user_ctx, "any-doc")

        assert db.method_calls == []

    def test_wrong_source_state(self, admin_ctx, make_report):
        approved = make_report(status=ReportStatus.APPROVED)
        pending = make_report(user_id="user-2")

        with pytest.raises(InvalidTransitionError):
            self.service.approve(admin_ctx, approved.doc_id)
        with pytest.raises(InvalidTransitionError):
            self.service.decline(admin_ctx, approved.doc_id)
        with pytest.raises(InvalidTransitionError):
            self.service.complete(admin_ctx, pending.doc_id)

    def test_completed_is_terminal(self, admin_ctx, make_report):
        report = make_report(status=ReportStatus.COMPLETED, assigned=admin_ctx.user_id)

        for action in (self.service.approve, self.service.decline, self.service.complete):
            with pytest.raises(InvalidTransitionError):
                action(admin_ctx, report.doc_id)

    def test_missing_report(self, admin_ctx):
        with pytest.raises(ReportNotFoundError):
            self.service.approve(admin_ctx, "gone")

    def test_report_in_flight_is_not_reentered(self, admin_ctx, make_report):
        report = make_report()

        with self.guard.hold(report.doc_id):
            with pytest.raises(InvalidTransitionError, match="already being processed"):
                self.service.approve(admin_ctx, report.doc_id)

        assert not self.guard.is_processing(report.doc_id)
        self.service.approve(admin_ctx, report.doc_id)

    def test_guard_released_after_failure(self, admin_ctx):
        with pytest.raises(ReportNotFoundError):
            self.service.approve(admin_ctx, "gone")
        assert not self.guard.is_processing("gone")

    def test_message_failure_keeps_status_change(self, db_session, admin_ctx, make_report):
        messages = MagicMock(spec=MessageService)
        messages.create.side_effect = StorageError("Failed to create message")
        service = ModerationService(db_session, messages=messages, guard=ProcessingGuard())
        report = make_report()

        result = service.approve(admin_ctx, report.doc_id)

        assert result.message_delivered is False
        assert result.message is None
        assert self.db.get(Report, report.doc_id).status == ReportStatus.APPROVED

    def test_pending_queue_oldest_first(self, admin_ctx, user_ctx, make_report):
        first = make_report(user_id="a")
        second = make_report(user_id="b")
        make_report(user_id="c", status=ReportStatus.APPROVED)

        assert [r.id for r in self.service.list_pending(admin_ctx)] == [first.id, second.id]
        with pytest.raises(AuthorizationError):
            self.service.list_pending(user_ctx)
