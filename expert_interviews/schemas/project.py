from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from expert_interviews.models.models import ProjectStatus
from expert_interviews.schemas.base import IdentifiedBase


class ProjectCreate(BaseModel):
    """Project creation schema"""
    name: str = Field(..., min_length=1)


class ProjectOut(IdentifiedBase):
    """Project output schema"""
    name: str
    status: ProjectStatus


class ProjectStats(BaseModel):
    """Counts shown on the project dashboard"""
    project_id: UUID
    question_count: int
    link_count: int
    session_count: int
    completed_session_count: int
    processed_session_count: int


class CSVFileOut(IdentifiedBase):
    """Uploaded CSV file output schema"""
    project_id: UUID
    filename: str
    row_count: int
    is_active: bool


class CSVUploadRequest(BaseModel):
    """Raw CSV upload, for clients that read the file themselves"""
    csv_content: str
    filename: Optional[str] = "upload.csv"


class CSVUploadResponse(BaseModel):
    """Result of a successful CSV import"""
    success: bool = True
    records_created: int
    csv_file_id: UUID


class QuestionPairOut(IdentifiedBase):
    """Question pair output schema"""
    project_id: UUID
    csv_file_id: Optional[UUID] = None
    question_id: str
    question_text: str
    answer_a: str
    answer_b: str
    order: int

    model_config = ConfigDict(from_attributes=True)
