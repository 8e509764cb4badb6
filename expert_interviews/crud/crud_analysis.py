from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.crud.base import CRUDBase
from expert_interviews.models.models import AnalysisArtifact, SessionSummary
from expert_interviews.schemas.analysis import AnalysisResult, SessionSummaryResult


class CRUDAnalysisArtifact(CRUDBase[AnalysisArtifact, AnalysisResult]):
    """CRUD operations for AnalysisArtifact model"""

    async def create_for_question(
            self,
            db: AsyncSession,
            *,
            session_id: UUID,
            question_pair_id: UUID,
            result: AnalysisResult,
    ) -> AnalysisArtifact:
        """Persist the analysis of one step record"""
        artifact = AnalysisArtifact(
            session_id=session_id,
            question_pair_id=question_pair_id,
            winner_flag=result.winner_flag,
            severity_score=result.severity_score,
            rationale_digest=result.rationale_digest,
            knowledge_gaps=list(result.knowledge_gaps),
            prompt_suggestions=list(result.prompt_suggestions),
        )
        db.add(artifact)
        await db.flush()
        return artifact

    async def get_by_session(self, db: AsyncSession, *, session_id: UUID) -> List[AnalysisArtifact]:
        result = await db.execute(
            select(AnalysisArtifact).where(AnalysisArtifact.session_id == session_id)
        )
        return list(result.scalars().all())


class CRUDSessionSummary(CRUDBase[SessionSummary, SessionSummaryResult]):
    """CRUD operations for SessionSummary model"""

    async def create_for_session(
            self, db: AsyncSession, *, session_id: UUID, summary: SessionSummaryResult
    ) -> SessionSummary:
        """Persist the summary of a session"""
        db_obj = SessionSummary(
            session_id=session_id,
            aggregated_insights=summary.aggregated_insights.model_dump(),
            overall_feedback=summary.overall_feedback,
        )
        db.add(db_obj)
        await db.flush()
        return db_obj

    async def get_by_session(self, db: AsyncSession, *, session_id: UUID) -> Optional[SessionSummary]:
        result = await db.execute(
            select(SessionSummary).where(SessionSummary.session_id == session_id)
        )
        return result.scalars().first()


analysis_artifact_crud = CRUDAnalysisArtifact(AnalysisArtifact)
session_summary_crud = CRUDSessionSummary(SessionSummary)
