from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from expert_interviews.models.models import InterviewLinkStatus
from expert_interviews.schemas.project import ProjectOut


class InterviewLinkCreate(BaseModel):
    """Interview link creation schema"""
    name: str = Field(..., min_length=1)
    interview_name: str = Field(..., min_length=1)
    expiry_date: Optional[datetime] = None
    row_quota: Optional[int] = Field(None, gt=0)


class InterviewLinkOut(BaseModel):
    """Interview link output schema"""
    id: str
    project_id: UUID
    name: str
    interview_name: str
    url: str
    expiry_date: Optional[datetime] = None
    row_quota: int
    status: InterviewLinkStatus
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class InterviewLinkWithProject(InterviewLinkOut):
    """Interview link with its project, as shown on the interview page"""
    project: ProjectOut
