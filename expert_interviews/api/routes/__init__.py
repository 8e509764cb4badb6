from fastapi import APIRouter

from expert_interviews.api.routes import (
    interview_links, interviews, projects, sessions
)

# Create main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(interview_links.router, tags=["links"])
api_router.include_router(sessions.router, tags=["sessions"])
api_router.include_router(interviews.router, prefix="/interviews", tags=["interviews"])
