import uuid

from fastapi import Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.crud.crud_interview_link import interview_link_crud
from expert_interviews.crud.crud_project import project_crud
from expert_interviews.crud.crud_session import session_crud
from expert_interviews.db.session import get_db
from expert_interviews.models.models import InterviewLink, InterviewSession, Project

__all__ = ["get_db", "get_project_or_404", "get_link_or_404", "get_session_or_404"]


async def get_project_or_404(
        project_id: uuid.UUID = Path(..., description="Project ID"),
        db: AsyncSession = Depends(get_db),
) -> Project:
    """
    Dependency resolving the project of the path.

    Raises:
        ResourceNotFoundError: If the project doesn't exist
    """
    return await project_crud.get_or_404(db, id=project_id)


async def get_link_or_404(
        link_id: str = Path(..., description="Interview link ID"),
        db: AsyncSession = Depends(get_db),
) -> InterviewLink:
    """
    Dependency resolving the interview link of the path, expired or not.
    """
    return await interview_link_crud.get_or_404(db, id=link_id)


async def get_session_or_404(
        session_id: uuid.UUID = Path(..., description="Interview session ID"),
        db: AsyncSession = Depends(get_db),
) -> InterviewSession:
    return await session_crud.get_or_404(db, id=session_id)
