from typing import Any, List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.api.deps import get_db, get_link_or_404, get_session_or_404
from expert_interviews.core.exceptions import NotFoundException
from expert_interviews.crud.crud_analysis import analysis_artifact_crud, session_summary_crud
from expert_interviews.crud.crud_session import session_crud
from expert_interviews.crud.crud_step_record import step_record_crud
from expert_interviews.models.models import InterviewLink, InterviewSession
from expert_interviews.schemas.analysis import (
    AnalysisArtifactOut, SessionDetailOut, SessionSummaryOut, StepRecordDetail
)
from expert_interviews.schemas.interview import InterviewSessionOut, StepRecordOut
from expert_interviews.schemas.project import QuestionPairOut

router = APIRouter()


@router.get("/links/{link_id}/sessions", response_model=List[InterviewSessionOut])
async def list_link_sessions(
        link: InterviewLink = Depends(get_link_or_404),
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    List the sessions run on a link, most recent first.
    """
    return await session_crud.get_by_link(db, link_id=link.id)


@router.get("/links/{link_id}/sessions/latest-completed", response_model=InterviewSessionOut)
async def get_latest_completed_session(
        link: InterviewLink = Depends(get_link_or_404),
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Get the most recently completed session of a link.
    """
    session = await session_crud.get_latest_completed_for_link(db, link_id=link.id)
    if session is None:
        raise NotFoundException("No completed session found for this link")
    return session


@router.get("/sessions/{session_id}", response_model=SessionDetailOut)
async def get_session_detail(
        session: InterviewSession = Depends(get_session_or_404),
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Get a session with its answers, analysis and summary.
    """
    records = await step_record_crud.get_by_session_with_questions(db, session_id=session.id)
    artifacts = {
        a.question_pair_id: a
        for a in await analysis_artifact_crud.get_by_session(db, session_id=session.id)
    }
    summary = await session_summary_crud.get_by_session(db, session_id=session.id)

    step_records = []
    for record in records:
        artifact = artifacts.get(record.question_pair_id)
        step_records.append(
            StepRecordDetail(
                **StepRecordOut.model_validate(record).model_dump(),
                question_pair=QuestionPairOut.model_validate(record.question_pair),
                analysis_artifact=AnalysisArtifactOut.model_validate(artifact) if artifact else None,
            )
        )

    return SessionDetailOut(
        session=InterviewSessionOut.model_validate(session),
        summary=SessionSummaryOut.model_validate(summary) if summary else None,
        step_records=step_records,
    )
