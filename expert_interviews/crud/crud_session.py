from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from expert_interviews.crud.base import CRUDBase
from expert_interviews.models.models import (
    InterviewLink, InterviewSession, SessionStatus, StepRecord, utcnow
)


class CRUDInterviewSession(CRUDBase[InterviewSession, BaseModel]):
    """CRUD operations for InterviewSession model"""

    def _resource_name(self) -> str:
        return "Session"

    async def get_in_progress_for_link(
            self, db: AsyncSession, *, link_id: str
    ) -> Optional[InterviewSession]:
        """Get the open session of a link, if any"""
        result = await db.execute(
            select(InterviewSession)
            .where(
                InterviewSession.interview_link_id == link_id,
                InterviewSession.status == SessionStatus.IN_PROGRESS,
            )
            .order_by(InterviewSession.started_at.desc())
        )
        return result.scalars().first()

    async def create_for_link(self, db: AsyncSession, *, link_id: str) -> InterviewSession:
        """Open a new session on a link"""
        session = InterviewSession(
            interview_link_id=link_id,
            started_at=utcnow(),
            status=SessionStatus.IN_PROGRESS,
            processed=False,
        )
        db.add(session)
        await db.flush()
        await db.refresh(session)
        return session

    async def get_by_link(self, db: AsyncSession, *, link_id: str) -> List[InterviewSession]:
        """Get a link's sessions, most recently started first"""
        result = await db.execute(
            select(InterviewSession)
            .where(InterviewSession.interview_link_id == link_id)
            .order_by(InterviewSession.started_at.desc())
        )
        return list(result.scalars().all())

    async def get_latest_completed_for_link(
            self, db: AsyncSession, *, link_id: str
    ) -> Optional[InterviewSession]:
        """Get the most recently completed session of a link"""
        result = await db.execute(
            select(InterviewSession)
            .where(
                InterviewSession.interview_link_id == link_id,
                InterviewSession.status == SessionStatus.COMPLETED,
            )
            .order_by(InterviewSession.completed_at.desc())
        )
        return result.scalars().first()

    async def get_with_link(self, db: AsyncSession, *, session_id: UUID) -> Optional[InterviewSession]:
        """Get a session with its interview link loaded"""
        result = await db.execute(
            select(InterviewSession)
            .options(selectinload(InterviewSession.interview_link))
            .where(InterviewSession.id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get_by_project_for_export(self, db: AsyncSession, *, project_id: UUID) -> List[InterviewSession]:
        """Get a project's sessions with everything the export needs"""
        result = await db.execute(
            select(InterviewSession)
            .join(InterviewLink, InterviewSession.interview_link_id == InterviewLink.id)
            .where(InterviewLink.project_id == project_id)
            .options(
                selectinload(InterviewSession.interview_link),
                selectinload(InterviewSession.step_records).selectinload(StepRecord.question_pair),
                selectinload(InterviewSession.analysis_artifacts),
                selectinload(InterviewSession.summary),
            )
            .order_by(InterviewSession.started_at.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().unique().all())

    async def get_unprocessed_completed_ids(self, db: AsyncSession, *, limit: int = 100) -> List[UUID]:
        """Get ids of completed sessions the analysis job hasn't processed yet"""
        result = await db.execute(
            select(InterviewSession.id)
            .where(
                InterviewSession.status == SessionStatus.COMPLETED,
                InterviewSession.processed.is_(False),
            )
            .order_by(InterviewSession.completed_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def mark_completed(
            self, db: AsyncSession, *, session: InterviewSession, completed_at: Optional[datetime] = None
    ) -> InterviewSession:
        """Close a session"""
        session.status = SessionStatus.COMPLETED
        session.completed_at = completed_at or utcnow()
        await db.flush()
        return session

    async def claim_for_analysis(self, db: AsyncSession, *, session_id: UUID) -> bool:
        """
        Check-and-set the processed flag inside the caller's transaction

        The row stays locked until the transaction ends, so a concurrent
        claim waits and then sees the flag set. A rollback releases the claim.

        Only completed sessions can be claimed; an in-progress one may still
        receive answers.

        Returns:
            True if this transaction claimed the session, False if it is
            already processed, not completed or doesn't exist
        """
        result = await db.execute(
            update(InterviewSession)
            .where(
                InterviewSession.id == session_id,
                InterviewSession.status == SessionStatus.COMPLETED,
                InterviewSession.processed.is_(False),
            )
            .values(processed=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


session_crud = CRUDInterviewSession(InterviewSession)
