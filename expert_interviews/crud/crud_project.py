from uuid import UUID

from sqlalchemy import Select, select, func
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.crud.base import CRUDBase
from expert_interviews.models.models import (
    InterviewLink, InterviewSession, Project, ProjectStatus, QuestionPair, SessionStatus
)
from expert_interviews.schemas.project import ProjectCreate, ProjectStats


class CRUDProject(CRUDBase[Project, ProjectCreate]):
    """CRUD operations for Project model"""

    async def create(self, db: AsyncSession, *, obj_in: ProjectCreate, **kwargs) -> Project:
        """Create a new, active project"""
        return await super().create(db, obj_in=obj_in, status=ProjectStatus.ACTIVE)

    def get_multi_query(self) -> Select:
        """Get query for all projects, newest first"""
        return select(Project).order_by(Project.created_at.desc())

    async def get_stats(self, db: AsyncSession, *, project_id: UUID) -> ProjectStats:
        """Count questions, links and sessions of a project"""
        question_count = await db.scalar(
            select(func.count()).select_from(QuestionPair).where(QuestionPair.project_id == project_id)
        )
        link_count = await db.scalar(
            select(func.count()).select_from(InterviewLink).where(InterviewLink.project_id == project_id)
        )

        sessions_query = (
            select(
                func.count(InterviewSession.id),
                func.count(InterviewSession.id).filter(InterviewSession.status == SessionStatus.COMPLETED),
                func.count(InterviewSession.id).filter(InterviewSession.processed.is_(True)),
            )
            .join(InterviewLink, InterviewSession.interview_link_id == InterviewLink.id)
            .where(InterviewLink.project_id == project_id)
        )
        session_count, completed_count, processed_count = (await db.execute(sessions_query)).one()

        return ProjectStats(
            project_id=project_id,
            question_count=question_count or 0,
            link_count=link_count or 0,
            session_count=session_count or 0,
            completed_session_count=completed_count or 0,
            processed_session_count=processed_count or 0,
        )


project_crud = CRUDProject(Project)
