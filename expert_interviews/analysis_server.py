"""
Analysis server: accepts analysis triggers for completed sessions and runs
them in the background, plus a periodic sweep for sessions whose trigger was
lost or whose job failed.
"""
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, status
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.api.deps import get_db
from expert_interviews.core.config import settings
from expert_interviews.core.exceptions import BadRequestException
from expert_interviews.core.logging import setup_logging
from expert_interviews.core.middleware import RequestLoggingMiddleware, register_exception_handlers
from expert_interviews.crud.crud_session import session_crud
from expert_interviews.db.init_db import close_db, init_db
from expert_interviews.models.models import SessionStatus
from expert_interviews.schemas.analysis import AnalysisTriggerResponse
from expert_interviews.services.analysis_service import run_session_analysis
from expert_interviews.services.analysis_sweeper import AnalysisSweeper
from expert_interviews.services.task_manager import task_manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_db()

    sweeper = AnalysisSweeper(tasks=task_manager)
    if settings.ANALYSIS_SWEEP_ENABLED:
        sweeper.start()

    logger.info(f"Analysis server ready on port {settings.ANALYSIS_SERVER_PORT}")
    yield

    await sweeper.stop()
    await task_manager.shutdown()
    await close_db()
    logger.info("Analysis server shutdown")


app = FastAPI(
    title=f"{settings.PROJECT_NAME} Analysis Server",
    version=settings.VERSION,
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}


@app.post(
    "/analyze/{session_id}",
    response_model=AnalysisTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={200: {"model": AnalysisTriggerResponse}},
)
async def analyze_session(
        session_id: uuid.UUID,
        db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Queue the analysis of a session.

    The job claims the session itself, so duplicate triggers are harmless.
    """
    session = await session_crud.get_or_404(db, id=session_id)
    if session.status != SessionStatus.COMPLETED:
        raise BadRequestException("Session is not completed yet", code="session_not_completed")
    if session.processed:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"message": "Session already processed"},
        )

    task_id = await task_manager.add_task(run_session_analysis, session.id, key=str(session.id))
    logger.info(f"Queued analysis of session {session_id} as task {task_id}")
    return AnalysisTriggerResponse(message="Analysis job queued", task_id=task_id)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("expert_interviews.analysis_server:app", host="0.0.0.0", port=settings.ANALYSIS_SERVER_PORT)
