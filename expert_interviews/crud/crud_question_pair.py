from typing import List, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.crud.base import CRUDBase
from expert_interviews.models.models import CSVFile, QuestionPair


class QuestionPairRow(BaseModel):
    """One validated data row of a question CSV"""
    question_id: str
    question_text: str
    answer_a: str
    answer_b: str


class CRUDQuestionPair(CRUDBase[QuestionPair, QuestionPairRow]):
    """CRUD operations for QuestionPair model"""

    async def get_by_project(
            self, db: AsyncSession, *, project_id: UUID, limit: Optional[int] = None
    ) -> List[QuestionPair]:
        """Get a project's question pairs in CSV order"""
        query = (
            select(QuestionPair)
            .where(QuestionPair.project_id == project_id)
            .order_by(QuestionPair.order.asc())
        )
        if limit is not None:
            query = query.limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_by_external_id(
            self, db: AsyncSession, *, project_id: UUID, question_id: str
    ) -> Optional[QuestionPair]:
        """Get a question pair by the questionId column of the CSV"""
        result = await db.execute(
            select(QuestionPair)
            .where(QuestionPair.project_id == project_id, QuestionPair.question_id == question_id)
            .order_by(QuestionPair.order.asc())
        )
        return result.scalars().first()

    async def replace_for_project(
            self,
            db: AsyncSession,
            *,
            project_id: UUID,
            csv_file_id: UUID,
            rows: Sequence[QuestionPairRow],
    ) -> List[QuestionPair]:
        """Delete a project's question pairs and insert the given rows in order"""
        await self.remove_by_condition(db, condition=QuestionPair.project_id == project_id)

        pairs = [
            QuestionPair(
                project_id=project_id,
                csv_file_id=csv_file_id,
                question_id=row.question_id,
                question_text=row.question_text,
                answer_a=row.answer_a,
                answer_b=row.answer_b,
                order=index,
                extra_metadata={},
            )
            for index, row in enumerate(rows)
        ]
        db.add_all(pairs)
        await db.flush()
        return pairs


class CRUDCSVFile(CRUDBase[CSVFile, BaseModel]):
    """CRUD operations for CSVFile model"""

    async def create_active(
            self, db: AsyncSession, *, project_id: UUID, filename: str, row_count: int
    ) -> CSVFile:
        """Deactivate the project's current file and record a new active one"""
        await db.execute(
            update(CSVFile)
            .where(CSVFile.project_id == project_id, CSVFile.is_active.is_(True))
            .values(is_active=False)
        )

        csv_file = CSVFile(
            project_id=project_id,
            filename=filename,
            row_count=row_count,
            is_active=True,
        )
        db.add(csv_file)
        await db.flush()
        await db.refresh(csv_file)
        return csv_file

    async def get_by_project(self, db: AsyncSession, *, project_id: UUID) -> List[CSVFile]:
        """Get a project's uploads, newest first"""
        return await self.get_by_condition(db, condition=CSVFile.project_id == project_id, limit=None)


question_pair_crud = CRUDQuestionPair(QuestionPair)
csv_file_crud = CRUDCSVFile(CSVFile)
