import secrets
import string
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from expert_interviews.core.config import settings
from expert_interviews.crud.base import CRUDBase
from expert_interviews.models.models import InterviewLink, InterviewLinkStatus
from expert_interviews.schemas.interview_link import InterviewLinkCreate

TOKEN_ALPHABET = string.ascii_lowercase + string.digits
TOKEN_LENGTH = 10

# Allowed forward moves; status never goes back
LINK_STATUS_ORDER = [
    InterviewLinkStatus.UNUSED,
    InterviewLinkStatus.IN_PROGRESS,
    InterviewLinkStatus.COMPLETED,
]


def generate_link_token() -> str:
    """Generate the short random id embedded in an interview url"""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


class CRUDInterviewLink(CRUDBase[InterviewLink, InterviewLinkCreate]):
    """CRUD operations for InterviewLink model"""

    def _resource_name(self) -> str:
        return "Interview link"

    async def create(
            self,
            db: AsyncSession,
            *,
            obj_in: InterviewLinkCreate,
            project_id: UUID,
    ) -> InterviewLink:
        """Create a new interview link with a fresh token and url"""
        token = generate_link_token()
        while await self.get(db, id=token) is not None:
            token = generate_link_token()

        link = InterviewLink(
            id=token,
            project_id=project_id,
            name=obj_in.name,
            interview_name=obj_in.interview_name,
            url=f"{settings.APP_URL.rstrip('/')}/interview/{token}",
            expiry_date=obj_in.expiry_date,
            row_quota=obj_in.row_quota or settings.DEFAULT_ROW_QUOTA,
            status=InterviewLinkStatus.UNUSED,
        )
        db.add(link)
        await db.flush()
        await db.refresh(link)
        return link

    async def get_by_project(self, db: AsyncSession, *, project_id: UUID) -> List[InterviewLink]:
        """Get a project's interview links, newest first"""
        return await self.get_by_condition(db, condition=InterviewLink.project_id == project_id, limit=None)

    async def get_with_project(self, db: AsyncSession, *, link_id: str) -> Optional[InterviewLink]:
        """Get a link with its project loaded"""
        result = await db.execute(
            select(InterviewLink)
            .options(selectinload(InterviewLink.project))
            .where(InterviewLink.id == link_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    def advance_status(self, link: InterviewLink, status: InterviewLinkStatus) -> bool:
        """
        Move the link forward to `status`

        Returns:
            True if the status changed, False if the link is already there or beyond
        """
        current = InterviewLinkStatus(link.status)
        if LINK_STATUS_ORDER.index(status) <= LINK_STATUS_ORDER.index(current):
            return False
        link.status = status
        return True


interview_link_crud = CRUDInterviewLink(InterviewLink)
