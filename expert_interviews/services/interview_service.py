"""
Interview flow: starting or resuming a session from a link, serving the next
question, recording answers and completing the session.
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.core.exceptions import BadRequestException, ResourceNotFoundError
from expert_interviews.crud.crud_interview_link import interview_link_crud
from expert_interviews.crud.crud_question_pair import question_pair_crud
from expert_interviews.crud.crud_session import session_crud
from expert_interviews.crud.crud_step_record import step_record_crud
from expert_interviews.db.transaction import transaction
from expert_interviews.models.models import (
    InterviewLink, InterviewLinkStatus, InterviewSession, SessionStatus, StepRecord
)
from expert_interviews.schemas.interview import (
    AnswerSubmit, InterviewSessionOut, InterviewStartResponse, NextQuestionResponse
)
from expert_interviews.schemas.interview_link import InterviewLinkOut
from expert_interviews.schemas.project import QuestionPairOut
from expert_interviews.services.transcript_service import parse_transcript

LINK_EXPIRED_MESSAGE = "This interview link has expired"


def is_link_expired(link: InterviewLink, now: Optional[datetime] = None) -> bool:
    """Whether the link's expiry date has passed; naive dates are taken as UTC"""
    if link.expiry_date is None:
        return False

    expiry = link.expiry_date
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry < (now or datetime.now(timezone.utc))


async def get_active_link(db: AsyncSession, link_id: str) -> InterviewLink:
    """
    Get a link an expert may still use

    Raises:
        ResourceNotFoundError: If the link doesn't exist
        BadRequestException: If the link has expired
    """
    link = await interview_link_crud.get_or_404(db, id=link_id)
    if is_link_expired(link):
        raise BadRequestException(LINK_EXPIRED_MESSAGE, code="link_expired")
    return link


async def start_session(db: AsyncSession, link_id: str) -> InterviewStartResponse:
    """
    Resume the link's open session or start a new one

    The link moves from unused to in-progress when its first session starts.
    """
    link = await get_active_link(db, link_id)

    async with transaction(db):
        session = await session_crud.get_in_progress_for_link(db, link_id=link.id)
        if session is None:
            session = await session_crud.create_for_link(db, link_id=link.id)
            logger.info(f"Started session {session.id} on link {link.id}")
        interview_link_crud.advance_status(link, InterviewLinkStatus.IN_PROGRESS)

    questions = await question_pair_crud.get_by_project(db, project_id=link.project_id, limit=link.row_quota)

    return InterviewStartResponse(
        session=InterviewSessionOut.model_validate(session),
        link=InterviewLinkOut.model_validate(link),
        questions=[QuestionPairOut.model_validate(q) for q in questions],
    )


async def get_next_question(db: AsyncSession, session_id: UUID) -> NextQuestionResponse:
    """First question within the link's quota not yet answered in the session"""
    session = await session_crud.get_with_link(db, session_id=session_id)
    if session is None:
        raise ResourceNotFoundError("Session", str(session_id))

    link = session.interview_link
    questions = await question_pair_crud.get_by_project(db, project_id=link.project_id, limit=link.row_quota)
    answered = await step_record_crud.get_answered_question_ids(db, session_id=session_id)

    next_question = next((q for q in questions if q.id not in answered), None)
    answered_count = sum(1 for q in questions if q.id in answered)

    return NextQuestionResponse(
        completed=next_question is None,
        question=QuestionPairOut.model_validate(next_question) if next_question else None,
        answered_count=answered_count,
        total_count=len(questions),
    )


async def submit_answer(db: AsyncSession, session_id: UUID, answer: AnswerSubmit) -> StepRecord:
    """
    Record the expert's pick and transcript for one question

    Raises:
        ResourceNotFoundError: If the session or question doesn't exist
        BadRequestException: If the session is completed or the question
            was already answered
    """
    session = await session_crud.get_with_link(db, session_id=session_id)
    if session is None:
        raise ResourceNotFoundError("Session", str(session_id))
    if session.status == SessionStatus.COMPLETED:
        raise BadRequestException("Interview session is already completed")

    question_pair = await question_pair_crud.get_by_external_id(
        db, project_id=session.interview_link.project_id, question_id=answer.question_id
    )
    if question_pair is None:
        raise ResourceNotFoundError("Question", answer.question_id)

    if await step_record_crud.exists(db, session_id=session_id, question_pair_id=question_pair.id):
        raise BadRequestException("Question has already been answered in this session")

    transcript = parse_transcript(answer.transcript)

    async with transaction(db):
        try:
            record = await step_record_crud.create_for_question(
                db,
                session_id=session_id,
                question_pair=question_pair,
                preferred_answer=answer.preferred_answer,
                transcript=transcript,
            )
        except IntegrityError as e:
            # Concurrent submission of the same question
            raise BadRequestException("Question has already been answered in this session") from e

    logger.info(f"Recorded answer {answer.preferred_answer.value} for question {answer.question_id} in session {session_id}")
    return record


async def complete_session(db: AsyncSession, session_id: UUID) -> InterviewSession:
    """
    Close the session and its link

    The caller schedules the analysis trigger once this returns.
    """
    session = await session_crud.get_with_link(db, session_id=session_id)
    if session is None:
        raise ResourceNotFoundError("Session", str(session_id))
    if session.status == SessionStatus.COMPLETED:
        raise BadRequestException("Interview session is already completed")

    async with transaction(db):
        await session_crud.mark_completed(db, session=session)
        interview_link_crud.advance_status(session.interview_link, InterviewLinkStatus.COMPLETED)

    logger.info(f"Completed session {session_id}")
    return session
