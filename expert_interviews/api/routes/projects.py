from typing import Any, List

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import Response
from fastapi_pagination import Page, Params
from fastapi_pagination.ext.sqlalchemy import apaginate
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.api.deps import get_db, get_project_or_404
from expert_interviews.crud.crud_project import project_crud
from expert_interviews.crud.crud_question_pair import csv_file_crud, question_pair_crud
from expert_interviews.models.models import Project
from expert_interviews.schemas.project import (
    CSVFileOut,
    CSVUploadRequest,
    CSVUploadResponse,
    ProjectCreate,
    ProjectOut,
    ProjectStats,
    QuestionPairOut,
)
from expert_interviews.services.csv_service import import_questions_csv, read_upload
from expert_interviews.services.export_service import generate_project_export
from expert_interviews.utils.pagination import get_pagination_params

router = APIRouter()


@router.post("/", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
async def create_project(
        project_in: ProjectCreate,
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Create a new project.
    """
    project = await project_crud.create(db, obj_in=project_in)
    await db.commit()
    return project


@router.get("/", response_model=Page[ProjectOut])
async def list_projects(
        params: Params = Depends(get_pagination_params),
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    List projects, newest first.
    """
    return await apaginate(db, project_crud.get_multi_query(), params)


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(project: Project = Depends(get_project_or_404)) -> Any:
    """
    Get a project by ID.
    """
    return project


@router.get("/{project_id}/stats", response_model=ProjectStats)
async def get_project_stats(
        project: Project = Depends(get_project_or_404),
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Get question, link and session counts of a project.
    """
    return await project_crud.get_stats(db, project_id=project.id)


@router.post("/{project_id}/csv", response_model=CSVUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_csv(
        file: UploadFile = File(..., description="CSV file with questionId, questionText, answerA, answerB columns"),
        project: Project = Depends(get_project_or_404),
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Replace the project's questions with an uploaded CSV file.
    """
    csv_content = await read_upload(file)
    return await import_questions_csv(
        db, project_id=project.id, csv_content=csv_content, filename=file.filename
    )


@router.post("/{project_id}/csv/raw", response_model=CSVUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_csv_content(
        upload_in: CSVUploadRequest,
        project: Project = Depends(get_project_or_404),
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Replace the project's questions with CSV text read by the client.
    """
    return await import_questions_csv(
        db, project_id=project.id, csv_content=upload_in.csv_content, filename=upload_in.filename
    )


@router.get("/{project_id}/questions", response_model=List[QuestionPairOut])
async def list_questions(
        project: Project = Depends(get_project_or_404),
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    List the project's question pairs in CSV order.
    """
    return await question_pair_crud.get_by_project(db, project_id=project.id)


@router.get("/{project_id}/csv-files", response_model=List[CSVFileOut])
async def list_csv_files(
        project: Project = Depends(get_project_or_404),
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    List the CSV files uploaded to the project.
    """
    return await csv_file_crud.get_by_project(db, project_id=project.id)


@router.get("/{project_id}/export")
async def export_project(
        project: Project = Depends(get_project_or_404),
        db: AsyncSession = Depends(get_db),
) -> Response:
    """
    Download sessions, answers and analysis of the project as CSV.
    """
    content = await generate_project_export(db, project.id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="project-{project.id}-export.csv"'},
    )
