"""
Unit tests for the reconciliation sweep.
"""
import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from expert_interviews.services import interview_service
from expert_interviews.services.analysis_sweeper import AnalysisSweeper
from expert_interviews.services.task_manager import TaskManager


class TestAnalysisSweeper:
    """Test cases for AnalysisSweeper."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sweep_queues_unprocessed_completed_sessions(self, session_factory, link, completed_session):
        tasks = TaskManager()
        job = AsyncMock(return_value=True)

        with patch("expert_interviews.services.analysis_sweeper.run_session_analysis", job):
            sweeper = AnalysisSweeper(session_factory=session_factory, tasks=tasks)
            task_ids = await sweeper.sweep_once()
            await tasks.wait_all()

        assert len(task_ids) == 1
        job.assert_awaited_once_with(completed_session.id, session_factory)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_in_progress_sessions_are_ignored(self, db, session_factory, link):
        await interview_service.start_session(db, link.id)

        sweeper = AnalysisSweeper(session_factory=session_factory, tasks=TaskManager())
        assert await sweeper.sweep_once() == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_start_and_stop(self, session_factory):
        sweeper = AnalysisSweeper(session_factory=session_factory, tasks=TaskManager(), interval=0.01)

        sweeper.start()
        assert sweeper.running
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert not sweeper.running
