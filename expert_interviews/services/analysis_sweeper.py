import asyncio
from typing import Callable, List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.core.config import settings
from expert_interviews.crud.crud_session import session_crud
from expert_interviews.services.analysis_service import run_session_analysis
from expert_interviews.services.task_manager import TaskManager, task_manager as default_task_manager


class AnalysisSweeper:
    """
    Periodically queues completed sessions that were never analyzed

    Covers triggers lost while the analysis server was down and jobs that
    failed and rolled back.
    """

    def __init__(
            self,
            session_factory: Optional[Callable[[], AsyncSession]] = None,
            tasks: TaskManager = default_task_manager,
            interval: float = settings.ANALYSIS_SWEEP_INTERVAL,
            batch_size: int = 100,
    ):
        if session_factory is None:
            from expert_interviews.db.session import AsyncSessionLocal
            session_factory = AsyncSessionLocal

        self.session_factory = session_factory
        self.tasks = tasks
        self.interval = interval
        self.batch_size = batch_size
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> List[str]:
        """
        Queue analysis for every completed, unprocessed session

        Returns:
            Task ids of the queued jobs
        """
        async with self.session_factory() as db:
            session_ids = await session_crud.get_unprocessed_completed_ids(db, limit=self.batch_size)

        task_ids = []
        for session_id in session_ids:
            task_id = await self.tasks.add_task(
                run_session_analysis,
                session_id,
                self.session_factory,
                key=str(session_id),
            )
            task_ids.append(task_id)

        if session_ids:
            logger.info(f"Sweep queued analysis for {len(session_ids)} unprocessed sessions")
        return task_ids

    async def _run(self) -> None:
        while True:
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Analysis sweep failed: {e}")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        logger.info(f"Starting analysis sweep every {self.interval}s")
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Analysis sweep stopped")
