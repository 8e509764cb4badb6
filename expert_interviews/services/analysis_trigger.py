from typing import Optional
from uuid import UUID

import httpx
from loguru import logger

from expert_interviews.core.config import settings

TRIGGER_TIMEOUT = 10.0


async def trigger_analysis(session_id: UUID, client: Optional[httpx.AsyncClient] = None) -> bool:
    """
    Ask the analysis server to analyze a completed session.

    Failures are logged and swallowed: the session stays unprocessed and the
    analysis server's sweep picks it up later.

    Returns:
        True if the analysis server accepted the request
    """
    url = f"{settings.ANALYSIS_SERVER_URL.rstrip('/')}/analyze/{session_id}"

    try:
        if client is not None:
            response = await client.post(url)
        else:
            async with httpx.AsyncClient(timeout=TRIGGER_TIMEOUT) as new_client:
                response = await new_client.post(url)
    except httpx.HTTPError as e:
        logger.error(f"Failed to trigger analysis for session {session_id}: {e}")
        return False

    if response.status_code >= 400:
        logger.error(
            f"Analysis server rejected session {session_id}: "
            f"status {response.status_code}, {response.text}"
        )
        return False

    logger.info(f"Analysis triggered for session {session_id}: {response.status_code}")
    return True
