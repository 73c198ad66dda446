"""Tests for the candidate progression transitions.

Covers role gating, payload validation, stage ordering, idempotent
re-submission, optimistic concurrency, and all-or-nothing uploads.
"""

import asyncio
import uuid
from datetime import date, time
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from talent_pipeline.core.errors import (
    AuthorizationError,
    ConflictError,
    DependencyUnavailableError,
    DuplicateScheduleError,
    IncompleteFeedbackError,
    InvalidStateError,
    NotFoundError,
    StaleStateError,
    UnsupportedFileTypeError,
    ValidationError,
)
from talent_pipeline.core.file_validation import Attachment
from talent_pipeline.models.interview import ClientInterview, MockInterview
from talent_pipeline.repositories.interview_repository import (
    ClientInterviewRepository,
)
from talent_pipeline.services import transition_engine
from talent_pipeline.services.handoff_dispatcher import HandoffChange, PipelineView
from talent_pipeline.services.pipeline_queries import get_candidate
from talent_pipeline.services.pipeline_types import CandidateStage
from tests.conftest import (
    PDF_BYTES,
    TEXT_BYTES,
    FailingObjectStore,
    jpeg_attachment,
    pdf_attachment,
    png_attachment,
)

_DOCX = Attachment(
    filename="offer.docx",
    content_type=(
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    ),
    content=b"PK\x03\x04 not really a docx",
)


async def _count(db, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


# =============================================================================
# Registration and resumes
# =============================================================================


class TestRegisterCandidate:
    """Tests for register_candidate."""

    async def test_registers_with_normalized_enums(
        self, db_session, employee, dispatcher
    ) -> None:
        result = await transition_engine.register_candidate(
            db_session,
            employee,
            emp_id=" E100 ",
            full_name="Asha Rao",
            technology="python",
            resource_type="tct1",
            dispatcher=dispatcher,
        )

        assert result.stage is CandidateStage.REGISTERED
        assert result.candidate.emp_id == "E100"
        assert result.candidate.technology == "Python"
        assert result.candidate.resource_type == "TCT1"
        assert result.candidate.user_id == employee.user_id
        assert result.candidate.version == 1
        assert result.handoffs == ()

    async def test_duplicate_emp_id_conflicts(self, driver) -> None:
        await driver.register("E100")

        with pytest.raises(ConflictError) as exc_info:
            await driver.register("E100")

        assert exc_info.value.code == "DUPLICATE_EMP_ID"

    async def test_unknown_technology_rejected(self, db_session, employee) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await transition_engine.register_candidate(
                db_session,
                employee,
                emp_id="E100",
                full_name="Asha Rao",
                technology="Cobol",
                resource_type="OM",
            )

        assert exc_info.value.details[0]["field"] == "technology"

    async def test_sales_cannot_register(self, db_session, sales) -> None:
        with pytest.raises(AuthorizationError):
            await transition_engine.register_candidate(
                db_session,
                sales,
                emp_id="E100",
                full_name="Asha Rao",
                technology="Java",
                resource_type="OM",
            )


class TestSubmitResume:
    """Tests for submit_resume."""

    async def test_resume_moves_to_resume_submitted(self, driver) -> None:
        registered = await driver.register()

        result = await driver.submit_resume(registered.record_id)

        assert result.stage is CandidateStage.RESUME_SUBMITTED
        assert result.candidate.resume_count == 1
        assert len(driver.store) == 1

    async def test_only_owner_may_submit(
        self, driver, other_employee, store, dispatcher
    ) -> None:
        registered = await driver.register()

        with pytest.raises(AuthorizationError):
            await transition_engine.submit_resume(
                driver.db,
                other_employee,
                candidate_id=registered.record_id,
                resume=pdf_attachment(),
                store=store,
                dispatcher=dispatcher,
            )
        assert len(store) == 0

    async def test_admin_may_submit_for_anyone(
        self, driver, admin, store, dispatcher
    ) -> None:
        registered = await driver.register()

        result = await transition_engine.submit_resume(
            driver.db,
            admin,
            candidate_id=registered.record_id,
            resume=pdf_attachment(),
            store=store,
            dispatcher=dispatcher,
        )

        assert result.stage is CandidateStage.RESUME_SUBMITTED

    async def test_image_resume_rejected(self, driver, employee, store) -> None:
        registered = await driver.register()

        with pytest.raises(UnsupportedFileTypeError):
            await transition_engine.submit_resume(
                driver.db,
                employee,
                candidate_id=registered.record_id,
                resume=png_attachment(),
                store=store,
            )

    async def test_content_must_match_declared_type(
        self, driver, employee, store
    ) -> None:
        registered = await driver.register()
        disguised = Attachment(
            filename="resume.pdf", content_type="application/pdf", content=TEXT_BYTES
        )

        with pytest.raises(UnsupportedFileTypeError):
            await transition_engine.submit_resume(
                driver.db,
                employee,
                candidate_id=registered.record_id,
                resume=disguised,
                store=store,
            )
        assert len(store) == 0

    async def test_unknown_candidate(self, db_session, employee, store) -> None:
        with pytest.raises(NotFoundError):
            await transition_engine.submit_resume(
                db_session,
                employee,
                candidate_id=uuid.uuid4(),
                resume=pdf_attachment(),
                store=store,
            )


# =============================================================================
# Mock interviews
# =============================================================================


class TestScheduleMock:
    """Tests for schedule_mock."""

    async def test_schedule_with_attachments(self, driver) -> None:
        registered = await driver.register()

        result = await driver.schedule_mock(
            registered.record_id,
            attachments=(pdf_attachment("brief.pdf"), png_attachment()),
        )

        assert result.stage is CandidateStage.MOCK_SCHEDULED
        (mock,) = result.candidate.mock_interviews
        assert mock.status == "scheduled"
        assert len(mock.attachment_refs) == 2
        assert all(ref in driver.store for ref in mock.attachment_refs)

    async def test_second_open_mock_is_duplicate(self, driver) -> None:
        registered = await driver.register()
        first = await driver.schedule_mock(registered.record_id)

        with pytest.raises(DuplicateScheduleError) as exc_info:
            await driver.schedule_mock(
                registered.record_id, interview_date=date(2026, 3, 9)
            )

        assert exc_info.value.details[0]["existing_id"] == str(first.record_id)

    async def test_reschedule_after_completion_is_allowed(self, driver) -> None:
        registered = await driver.register()
        first = await driver.schedule_mock(registered.record_id)
        completed = await driver.complete_mock(first.record_id, technical_score=3)
        assert completed.stage is CandidateStage.MOCK_COMPLETED

        result = await driver.schedule_mock(
            registered.record_id, interview_date=date(2026, 3, 16)
        )

        assert result.stage is CandidateStage.MOCK_SCHEDULED
        assert len(result.candidate.mock_interviews) == 2

    async def test_missing_interviewer_rejected(self, driver, delivery) -> None:
        registered = await driver.register()

        with pytest.raises(ValidationError):
            await transition_engine.schedule_mock(
                driver.db,
                delivery,
                candidate_id=registered.record_id,
                interview_date=date(2026, 3, 2),
                interview_time=time(10, 0),
                interviewer_id="  ",
            )

    async def test_employee_cannot_schedule(self, driver, employee) -> None:
        registered = await driver.register()

        with pytest.raises(AuthorizationError):
            await transition_engine.schedule_mock(
                driver.db,
                employee,
                candidate_id=registered.record_id,
                interview_date=date(2026, 3, 2),
                interview_time=time(10, 0),
                interviewer_id="INT-7",
            )

    async def test_store_failure_cleans_up_earlier_uploads(
        self, driver, delivery, dispatcher
    ) -> None:
        registered = await driver.register()
        store = FailingObjectStore(fail_after=1)

        with pytest.raises(DependencyUnavailableError) as exc_info:
            await transition_engine.schedule_mock(
                driver.db,
                delivery,
                candidate_id=registered.record_id,
                interview_date=date(2026, 3, 2),
                interview_time=time(10, 0),
                interviewer_id="INT-7",
                attachments=[pdf_attachment("a.pdf"), pdf_attachment("b.pdf")],
                store=store,
                dispatcher=dispatcher,
            )

        assert exc_info.value.status_code == 503
        assert store.puts == 1
        assert len(store) == 0
        assert await _count(driver.db, MockInterview) == 0

    async def test_stale_candidate_version(self, driver) -> None:
        registered = await driver.register()

        with pytest.raises(StaleStateError) as exc_info:
            await transition_engine.schedule_mock(
                driver.db,
                driver.delivery,
                candidate_id=registered.record_id,
                interview_date=date(2026, 3, 2),
                interview_time=time(10, 0),
                interviewer_id="INT-7",
                expected_version=7,
                store=driver.store,
                dispatcher=driver.dispatcher,
            )

        assert exc_info.value.details == [
            {"field": "expected_version", "expected": 7, "current": 1}
        ]


class TestSubmitMockFeedback:
    """Tests for submit_mock_feedback."""

    async def test_scenario_feedback_with_sent_to_sales(
        self, driver, delivery, store, dispatcher
    ) -> None:
        registered = await driver.register("E100")
        scheduled = await transition_engine.schedule_mock(
            driver.db,
            delivery,
            candidate_id=registered.record_id,
            interview_date=date(2024, 1, 10),
            interview_time=time(10, 0),
            interviewer_id="I5",
            store=store,
            dispatcher=dispatcher,
        )
        assert scheduled.candidate.mock_interviews[0].status == "scheduled"

        result = await transition_engine.submit_mock_feedback(
            driver.db,
            delivery,
            mock_id=scheduled.record_id,
            technical_feedback="Strong on data structures",
            communication_feedback="Explains trade-offs well",
            technical_score=8,
            communication_score=7,
            sent_to_sales=True,
            store=store,
            dispatcher=dispatcher,
        )

        assert result.stage is CandidateStage.SALES_QUEUE
        assert result.candidate.mock_interviews[0].status == "completed"
        assert [s.emp_id for s in dispatcher.sales_queue()] == ["E100"]
        assert (PipelineView.SALES_QUEUE, HandoffChange.ENTERED) in {
            (h.view, h.change) for h in result.handoffs
        }

    async def test_identical_resubmission_is_idempotent(self, driver) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)
        first = await driver.complete_mock(scheduled.record_id)

        second = await driver.complete_mock(scheduled.record_id)

        assert await _count(driver.db, MockInterview) == 1
        assert second.candidate.mock_interviews == first.candidate.mock_interviews
        assert second.stage is first.stage

    async def test_feedback_can_be_revised(self, driver) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)
        await driver.complete_mock(scheduled.record_id, technical_score=5)

        revised = await driver.complete_mock(scheduled.record_id, technical_score=9)

        (mock,) = revised.candidate.mock_interviews
        assert mock.technical_score == 9
        assert mock.version == 3

    async def test_sent_to_sales_is_sticky(self, driver) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)
        await driver.complete_mock(scheduled.record_id, sent_to_sales=True)

        result = await driver.complete_mock(scheduled.record_id, sent_to_sales=False)

        assert result.candidate.mock_interviews[0].sent_to_sales is True
        assert result.stage is CandidateStage.SALES_QUEUE

    @pytest.mark.parametrize("score", [-1, 11, 7.5, True, None])
    async def test_invalid_score_rejected(self, driver, score) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)

        with pytest.raises(ValidationError):
            await driver.complete_mock(scheduled.record_id, technical_score=score)

        stored = await driver.db.get(MockInterview, scheduled.record_id)
        await driver.db.refresh(stored)
        assert stored.status == "scheduled"

    @pytest.mark.parametrize("score", [0, 10])
    async def test_boundary_scores_accepted(self, driver, score: int) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)

        result = await driver.complete_mock(
            scheduled.record_id, technical_score=score, communication_score=score
        )

        assert result.candidate.mock_interviews[0].technical_score == score

    async def test_replaced_feedback_file_is_discarded(
        self, driver, delivery, store, dispatcher
    ) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)

        async def submit(file: Attachment):
            return await transition_engine.submit_mock_feedback(
                driver.db,
                delivery,
                mock_id=scheduled.record_id,
                technical_feedback="ok",
                communication_feedback="ok",
                technical_score=6,
                communication_score=6,
                feedback_file=file,
                store=store,
                dispatcher=dispatcher,
            )

        first = await submit(png_attachment())
        old_ref = first.candidate.mock_interviews[0].feedback_file_ref
        second = await submit(jpeg_attachment())
        new_ref = second.candidate.mock_interviews[0].feedback_file_ref

        assert old_ref not in store
        assert new_ref in store
        assert new_ref != old_ref

    async def test_stale_mock_version(self, driver) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)
        await driver.complete_mock(scheduled.record_id)

        with pytest.raises(StaleStateError):
            await transition_engine.submit_mock_feedback(
                driver.db,
                driver.delivery,
                mock_id=scheduled.record_id,
                technical_feedback="late edit",
                communication_feedback="late edit",
                technical_score=1,
                communication_score=1,
                expected_version=1,
                store=driver.store,
                dispatcher=driver.dispatcher,
            )

    async def test_concurrent_submissions_never_merge(
        self, driver, session_factory, delivery, store, dispatcher
    ) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)
        payloads = [
            ("first technical", "first communication", 8, 7),
            ("second technical", "second communication", 3, 4),
        ]

        async def submit(payload):
            technical_feedback, communication_feedback, technical, communication = (
                payload
            )
            async with session_factory() as session:
                return await transition_engine.submit_mock_feedback(
                    session,
                    delivery,
                    mock_id=scheduled.record_id,
                    technical_feedback=technical_feedback,
                    communication_feedback=communication_feedback,
                    technical_score=technical,
                    communication_score=communication,
                    store=store,
                    dispatcher=dispatcher,
                )

        await asyncio.gather(*(submit(p) for p in payloads))

        async with session_factory() as session:
            stored = await session.get(MockInterview, scheduled.record_id)
            final = (
                stored.technical_feedback,
                stored.communication_feedback,
                stored.technical_score,
                stored.communication_score,
            )
        assert final in payloads
        assert stored.version == 3


class TestSendToSales:
    """Tests for send_to_sales."""

    async def test_sends_completed_mock(self, driver) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)
        await driver.complete_mock(scheduled.record_id)

        result = await driver.send_to_sales(scheduled.record_id)

        assert result.changed is True
        assert result.stage is CandidateStage.SALES_QUEUE
        assert driver.dispatcher.counters().sent_to_sales == 1

    async def test_second_send_is_noop(self, driver) -> None:
        sent = await driver.to_sales_queue()

        again = await driver.send_to_sales(sent.record_id)

        assert again.changed is False
        assert again.handoffs == ()
        assert again.candidate.mock_interviews[0].version == (
            sent.candidate.mock_interviews[0].version
        )

    async def test_incomplete_feedback_lists_missing_fields(self, driver) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)

        with pytest.raises(IncompleteFeedbackError) as exc_info:
            await driver.send_to_sales(scheduled.record_id)

        missing = {d["field"] for d in exc_info.value.details}
        assert missing == {
            "technical_feedback",
            "communication_feedback",
            "technical_score",
            "communication_score",
        }
        assert exc_info.value.status_code == 422

    async def test_unknown_mock(self, driver) -> None:
        with pytest.raises(NotFoundError):
            await driver.send_to_sales(uuid.uuid4())


class TestUpdateInterviewStatus:
    """Tests for update_interview_status."""

    async def test_marks_held_once(self, driver) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)

        first = await transition_engine.update_interview_status(
            driver.db,
            driver.delivery,
            mock_id=scheduled.record_id,
            dispatcher=driver.dispatcher,
        )
        second = await transition_engine.update_interview_status(
            driver.db,
            driver.delivery,
            mock_id=scheduled.record_id,
            dispatcher=driver.dispatcher,
        )

        assert first.changed is True
        assert first.candidate.mock_interviews[0].held_at is not None
        assert first.candidate.mock_interviews[0].status == "scheduled"
        assert first.stage is CandidateStage.MOCK_SCHEDULED
        assert second.changed is False

    async def test_noop_when_completed(self, driver) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)
        await driver.complete_mock(scheduled.record_id)

        result = await transition_engine.update_interview_status(
            driver.db,
            driver.delivery,
            mock_id=scheduled.record_id,
            dispatcher=driver.dispatcher,
        )

        assert result.changed is False
        assert result.candidate.mock_interviews[0].held_at is None


# =============================================================================
# Client interviews
# =============================================================================


class TestScheduleClientInterview:
    """Tests for schedule_client_interview."""

    async def test_schedules_level_one(self, driver) -> None:
        sent = await driver.to_sales_queue()

        result = await driver.schedule_client(sent.candidate.id)

        assert result.stage is CandidateStage.CLIENT_SCHEDULED
        (interview,) = result.candidate.client_interviews
        assert interview.level == 1
        assert interview.status == "scheduled"
        assert interview.attachment_ref in driver.store

    async def test_requires_sent_to_sales(self, driver) -> None:
        registered = await driver.register()
        scheduled = await driver.schedule_mock(registered.record_id)
        await driver.complete_mock(scheduled.record_id)

        with pytest.raises(InvalidStateError):
            await driver.schedule_client(registered.record_id)
        assert len(driver.store) == 0

    async def test_docx_attachment_rejected(self, driver) -> None:
        sent = await driver.to_sales_queue()

        with pytest.raises(UnsupportedFileTypeError):
            await transition_engine.schedule_client_interview(
                driver.db,
                driver.sales,
                candidate_id=sent.candidate.id,
                client="Acme",
                interview_date=date(2026, 3, 10),
                interview_time=time(14, 0),
                level=1,
                job_description_title="Backend Engineer",
                meeting_link="https://meet.example.com/abc",
                interviewer_email="panel@acme.example.com",
                attachment=_DOCX,
                store=driver.store,
                dispatcher=driver.dispatcher,
            )

        assert await _count(driver.db, ClientInterview) == 0

    async def test_attachment_is_required(self, driver) -> None:
        sent = await driver.to_sales_queue()

        with pytest.raises(ValidationError):
            await transition_engine.schedule_client_interview(
                driver.db,
                driver.sales,
                candidate_id=sent.candidate.id,
                client="Acme",
                interview_date=date(2026, 3, 10),
                interview_time=time(14, 0),
                level=1,
                job_description_title="Backend Engineer",
                meeting_link="https://meet.example.com/abc",
                interviewer_email="panel@acme.example.com",
                attachment=None,
            )

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("meeting_link", "meet.example.com/abc"),
            ("interviewer_email", "not-an-email"),
            ("level", 0),
        ],
    )
    async def test_malformed_fields_rejected(self, driver, field, value) -> None:
        sent = await driver.to_sales_queue()
        payload = {
            "client": "Acme",
            "interview_date": date(2026, 3, 10),
            "interview_time": time(14, 0),
            "level": 1,
            "job_description_title": "Backend Engineer",
            "meeting_link": "https://meet.example.com/abc",
            "interviewer_email": "panel@acme.example.com",
        }
        payload[field] = value

        with pytest.raises(ValidationError) as exc_info:
            await transition_engine.schedule_client_interview(
                driver.db,
                driver.sales,
                candidate_id=sent.candidate.id,
                attachment=pdf_attachment(),
                store=driver.store,
                **payload,
            )

        assert exc_info.value.details[0]["field"] == field

    async def test_same_level_is_duplicate(self, driver) -> None:
        sent = await driver.to_sales_queue()
        await driver.schedule_client(sent.candidate.id, level=1)

        with pytest.raises(DuplicateScheduleError):
            await driver.schedule_client(sent.candidate.id, level=1, client="Globex")

    async def test_next_level_waits_for_open_interview(self, driver) -> None:
        sent = await driver.to_sales_queue()
        level_one = await driver.schedule_client(sent.candidate.id, level=1)

        with pytest.raises(DuplicateScheduleError) as exc_info:
            await driver.schedule_client(sent.candidate.id, level=2)

        assert exc_info.value.details[0]["existing_id"] == str(level_one.record_id)
        assert await _count(driver.db, ClientInterview) == 1

    async def test_re_interview_after_outcome(self, driver) -> None:
        sent = await driver.to_sales_queue()
        level_one = await driver.schedule_client(sent.candidate.id, level=1)
        await driver.record_client_result(level_one.record_id, result="rejected")

        level_two = await driver.schedule_client(sent.candidate.id, level=2)

        assert level_two.stage is CandidateStage.CLIENT_SCHEDULED
        assert await _count(driver.db, ClientInterview) == 2

    @pytest.mark.parametrize("level", [1, 2])
    async def test_level_must_increase(self, driver, level) -> None:
        sent = await driver.to_sales_queue()
        level_three = await driver.schedule_client(sent.candidate.id, level=3)
        await driver.record_client_result(level_three.record_id, result="rejected")

        with pytest.raises(ValidationError) as exc_info:
            await driver.schedule_client(sent.candidate.id, level=level)

        assert exc_info.value.details[0]["field"] == "level"
        view = await get_candidate(driver.db, sent.candidate.id)
        assert view.stage is CandidateStage.CLIENT_COMPLETED
        assert await _count(driver.db, ClientInterview) == 1

    async def test_skipping_levels_is_allowed(self, driver) -> None:
        sent = await driver.to_sales_queue()
        level_one = await driver.schedule_client(sent.candidate.id, level=1)
        await driver.record_client_result(level_one.record_id, result="selected")

        result = await driver.schedule_client(sent.candidate.id, level=3)

        assert {ci.level for ci in result.candidate.client_interviews} == {1, 3}

    async def test_employee_always_forbidden(self, driver, employee) -> None:
        """Role is checked before anything else, even an invalid payload."""
        with pytest.raises(AuthorizationError):
            await transition_engine.schedule_client_interview(
                driver.db,
                employee,
                candidate_id=uuid.uuid4(),
                client="",
                interview_date=None,
                interview_time=None,
                level=-5,
                job_description_title="",
                meeting_link="",
                interviewer_email="",
                attachment=None,
            )

    async def test_db_failure_after_upload_discards_file(
        self, driver, monkeypatch
    ) -> None:
        sent = await driver.to_sales_queue()
        stored_before = len(driver.store)

        async def broken_create(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(ClientInterviewRepository, "create", broken_create)

        with pytest.raises(RuntimeError):
            await driver.schedule_client(sent.candidate.id)

        assert len(driver.store) == stored_before
        assert await _count(driver.db, ClientInterview) == 0


class TestUpdateClientInterview:
    """Tests for update_client_interview."""

    async def test_rejection_allows_next_level(self, driver) -> None:
        sent = await driver.to_sales_queue("E100")
        level_one = await driver.schedule_client(sent.candidate.id, client="Acme")

        rejected = await driver.record_client_result(
            level_one.record_id, result="rejected"
        )
        assert rejected.stage is CandidateStage.CLIENT_COMPLETED
        assert driver.dispatcher.deployed_roster() == ()

        level_two = await driver.schedule_client(
            sent.candidate.id, level=2, interview_date=date(2026, 3, 20)
        )
        assert level_two.stage is CandidateStage.CLIENT_SCHEDULED
        assert {ci.level for ci in level_two.candidate.client_interviews} == {1, 2}

    async def test_selected_and_deployed(self, driver) -> None:
        sent = await driver.to_sales_queue(
            "E100", technical_score=8, communication_score=7
        )
        assert [s.emp_id for s in driver.dispatcher.ready_for_deployment()] == ["E100"]
        scheduled = await driver.schedule_client(sent.candidate.id)

        result = await driver.record_client_result(
            scheduled.record_id, result="selected", deployed_status=True
        )

        assert result.stage is CandidateStage.DEPLOYED
        assert [s.emp_id for s in driver.dispatcher.deployed_roster()] == ["E100"]
        assert driver.dispatcher.ready_for_deployment() == ()
        assert driver.dispatcher.sales_queue() == ()
        (interview,) = result.candidate.client_interviews
        assert interview.technical_score == Decimal("8.5")
        assert interview.communication_score == Decimal("7.0")

    async def test_deploy_requires_selected(self, driver) -> None:
        sent = await driver.to_sales_queue()
        scheduled = await driver.schedule_client(sent.candidate.id)

        with pytest.raises(ValidationError) as exc_info:
            await driver.record_client_result(
                scheduled.record_id, result="rejected", deployed_status=True
            )

        assert exc_info.value.details[0]["field"] == "deployed_status"

    async def test_deployment_cannot_be_reverted(self, driver) -> None:
        sent = await driver.to_sales_queue()
        scheduled = await driver.schedule_client(sent.candidate.id)
        await driver.record_client_result(scheduled.record_id, deployed_status=True)

        with pytest.raises(InvalidStateError):
            await driver.record_client_result(
                scheduled.record_id, deployed_status=False
            )

    @pytest.mark.parametrize("score", ["8.55", "10.1", "-0.5", "abc", "NaN", None])
    async def test_invalid_client_score(self, driver, score) -> None:
        sent = await driver.to_sales_queue()
        scheduled = await driver.schedule_client(sent.candidate.id)

        with pytest.raises(ValidationError):
            await transition_engine.update_client_interview(
                driver.db,
                driver.sales,
                interview_id=scheduled.record_id,
                result="selected",
                feedback="ok",
                technical_score=score,
                communication_score="5",
                store=driver.store,
                dispatcher=driver.dispatcher,
            )

    async def test_whole_number_score_quantized(self, driver) -> None:
        sent = await driver.to_sales_queue()
        scheduled = await driver.schedule_client(sent.candidate.id)

        result = await transition_engine.update_client_interview(
            driver.db,
            driver.sales,
            interview_id=scheduled.record_id,
            result="Selected",
            feedback="ok",
            technical_score=7,
            communication_score="10",
            store=driver.store,
            dispatcher=driver.dispatcher,
        )

        (interview,) = result.candidate.client_interviews
        assert interview.result == "selected"
        assert interview.technical_score == Decimal("7.0")
        assert interview.communication_score == Decimal("10.0")


# =============================================================================
# Closing
# =============================================================================


class TestCloseCandidate:
    """Tests for close_candidate and terminal-stage guards."""

    async def test_close_withdraws_from_views(self, driver) -> None:
        sent = await driver.to_sales_queue()

        result = await transition_engine.close_candidate(
            driver.db,
            driver.sales,
            candidate_id=sent.candidate.id,
            outcome="withdrawn",
            expected_version=sent.candidate.version,
            dispatcher=driver.dispatcher,
        )

        assert result.stage is CandidateStage.WITHDRAWN
        assert result.candidate.version == sent.candidate.version + 1
        assert driver.dispatcher.sales_queue() == ()
        assert driver.dispatcher.counters().sent_to_sales == 1

    async def test_closed_candidate_refuses_transitions(self, driver) -> None:
        registered = await driver.register()
        await transition_engine.close_candidate(
            driver.db,
            driver.sales,
            candidate_id=registered.record_id,
            outcome="rejected",
            dispatcher=driver.dispatcher,
        )

        with pytest.raises(InvalidStateError):
            await driver.schedule_mock(registered.record_id)
        with pytest.raises(InvalidStateError):
            await driver.submit_resume(registered.record_id)
        with pytest.raises(InvalidStateError):
            await transition_engine.close_candidate(
                driver.db,
                driver.sales,
                candidate_id=registered.record_id,
                outcome="withdrawn",
                dispatcher=driver.dispatcher,
            )
        assert len(driver.store) == 0

    async def test_unknown_outcome(self, driver) -> None:
        registered = await driver.register()

        with pytest.raises(ValidationError):
            await transition_engine.close_candidate(
                driver.db,
                driver.sales,
                candidate_id=registered.record_id,
                outcome="deployed",
            )

    async def test_delivery_cannot_close(self, driver, delivery) -> None:
        registered = await driver.register()

        with pytest.raises(AuthorizationError):
            await transition_engine.close_candidate(
                driver.db,
                delivery,
                candidate_id=registered.record_id,
                outcome="rejected",
            )

    async def test_stale_version(self, driver) -> None:
        registered = await driver.register()

        with pytest.raises(StaleStateError):
            await transition_engine.close_candidate(
                driver.db,
                driver.sales,
                candidate_id=registered.record_id,
                outcome="rejected",
                expected_version=2,
            )


# =============================================================================
# Concurrency plumbing
# =============================================================================


class TestConcurrency:
    """Tests for per-candidate serialization and lost-race mapping."""

    async def test_concurrent_schedules_yield_one_mock(
        self, driver, session_factory, delivery, store, dispatcher
    ) -> None:
        registered = await driver.register()

        async def schedule(day: int):
            async with session_factory() as session:
                return await transition_engine.schedule_mock(
                    session,
                    delivery,
                    candidate_id=registered.record_id,
                    interview_date=date(2026, 3, day),
                    interview_time=time(10, 0),
                    interviewer_id="INT-7",
                    store=store,
                    dispatcher=dispatcher,
                )

        outcomes = await asyncio.gather(
            schedule(2), schedule(3), return_exceptions=True
        )

        errors = [o for o in outcomes if isinstance(o, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], DuplicateScheduleError)
        async with session_factory() as session:
            assert await _count(session, MockInterview) == 1

    async def test_lost_race_maps_to_stale_state(self, db_session, store) -> None:
        uploaded = [await store.put(PDF_BYTES, "application/pdf", "x.pdf")]

        with pytest.raises(StaleStateError):
            async with transition_engine._all_or_nothing(
                db_session,
                resource="Candidate",
                resource_id=uuid.uuid4(),
                store=store,
                uploaded=uploaded,
            ):
                raise StaleDataError("row version changed")

        assert len(store) == 0

    async def test_views_reflect_committed_state(self, driver) -> None:
        sent = await driver.to_sales_queue()

        view = await get_candidate(driver.db, sent.candidate.id)

        assert view.stage is CandidateStage.SALES_QUEUE
        assert driver.dispatcher.sales_queue()[0].id == view.snapshot.id
