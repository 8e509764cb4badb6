import uuid
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.api.deps import get_db
from expert_interviews.schemas.interview import (
    AnswerSubmit,
    AnswerSubmitResponse,
    InterviewSessionOut,
    InterviewStartResponse,
    NextQuestionResponse,
    StepRecordOut,
)
from expert_interviews.services import interview_service
from expert_interviews.services.analysis_trigger import trigger_analysis

router = APIRouter()


@router.post("/{link_id}/start", response_model=InterviewStartResponse)
async def start_interview(
        link_id: str,
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Start or resume the interview session of a link.
    """
    return await interview_service.start_session(db, link_id)


@router.get("/sessions/{session_id}/next-question", response_model=NextQuestionResponse)
async def get_next_question(
        session_id: uuid.UUID,
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Get the next unanswered question of a session.
    """
    return await interview_service.get_next_question(db, session_id)


@router.post("/sessions/{session_id}/answers", response_model=AnswerSubmitResponse)
async def submit_answer(
        session_id: uuid.UUID,
        answer_in: AnswerSubmit,
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Record the expert's preferred answer and the conversation transcript.
    """
    record = await interview_service.submit_answer(db, session_id, answer_in)
    return AnswerSubmitResponse(step_record=StepRecordOut.model_validate(record))


@router.post("/sessions/{session_id}/complete", response_model=InterviewSessionOut)
async def complete_interview(
        session_id: uuid.UUID,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Complete a session and ask the analysis server to analyze it.
    """
    session = await interview_service.complete_session(db, session_id)

    # Runs after the response is sent; failures are only logged
    background_tasks.add_task(trigger_analysis, session.id)

    return session
