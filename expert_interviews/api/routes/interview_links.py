from typing import Any, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from expert_interviews.api.deps import get_db, get_project_or_404
from expert_interviews.crud.crud_interview_link import interview_link_crud
from expert_interviews.models.models import Project
from expert_interviews.schemas.interview_link import (
    InterviewLinkCreate, InterviewLinkOut, InterviewLinkWithProject
)
from expert_interviews.services.interview_service import get_active_link

router = APIRouter()


@router.post(
    "/projects/{project_id}/links",
    response_model=InterviewLinkOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_link(
        link_in: InterviewLinkCreate,
        project: Project = Depends(get_project_or_404),
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Create a shareable interview link for a project.
    """
    link = await interview_link_crud.create(db, obj_in=link_in, project_id=project.id)
    await db.commit()
    logger.info(f"Created interview link {link.id} for project {project.id}")
    return link


@router.get("/projects/{project_id}/links", response_model=List[InterviewLinkOut])
async def list_links(
        project: Project = Depends(get_project_or_404),
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    List a project's interview links, newest first.
    """
    return await interview_link_crud.get_by_project(db, project_id=project.id)


@router.get("/links/{link_id}", response_model=InterviewLinkWithProject)
async def get_link(
        link_id: str,
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Get an interview link with its project, as opened by the expert.
    """
    link = await get_active_link(db, link_id)
    return await interview_link_crud.get_with_project(db, link_id=link.id)
