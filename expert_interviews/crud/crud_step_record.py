from typing import List, Set, Union
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from expert_interviews.crud.base import CRUDBase
from expert_interviews.models.models import PreferredAnswer, QuestionPair, StepRecord
from expert_interviews.schemas.transcript import PlainTranscript, StructuredTranscript


class CRUDStepRecord(CRUDBase[StepRecord, BaseModel]):
    """CRUD operations for StepRecord model"""

    async def create_for_question(
            self,
            db: AsyncSession,
            *,
            session_id: UUID,
            question_pair: QuestionPair,
            preferred_answer: PreferredAnswer,
            transcript: Union[PlainTranscript, StructuredTranscript],
    ) -> StepRecord:
        """Record the expert's answer to one question"""
        record = StepRecord(
            session_id=session_id,
            project_id=question_pair.project_id,
            question_pair_id=question_pair.id,
            preferred_answer=preferred_answer,
            transcript=transcript.model_dump(),
        )
        db.add(record)
        await db.flush()
        return record

    async def exists(self, db: AsyncSession, *, session_id: UUID, question_pair_id: UUID) -> bool:
        """Whether the question was already answered in the session"""
        result = await db.execute(
            select(StepRecord.id).where(
                StepRecord.session_id == session_id,
                StepRecord.question_pair_id == question_pair_id,
            )
        )
        return result.first() is not None

    async def get_answered_question_ids(self, db: AsyncSession, *, session_id: UUID) -> Set[UUID]:
        """Ids of the question pairs answered in a session"""
        result = await db.execute(
            select(StepRecord.question_pair_id).where(StepRecord.session_id == session_id)
        )
        return set(result.scalars().all())

    async def get_by_session_with_questions(self, db: AsyncSession, *, session_id: UUID) -> List[StepRecord]:
        """Get a session's step records joined with their question pairs, in question order"""
        result = await db.execute(
            select(StepRecord)
            .join(QuestionPair, StepRecord.question_pair_id == QuestionPair.id)
            .options(selectinload(StepRecord.question_pair))
            .where(StepRecord.session_id == session_id)
            .order_by(QuestionPair.order.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


step_record_crud = CRUDStepRecord(StepRecord)
