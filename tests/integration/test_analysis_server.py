"""
Integration tests for the analysis server endpoints.
"""
import uuid
from unittest.mock import AsyncMock, patch

import pytest

from expert_interviews.services.analysis_service import AnalysisService
from expert_interviews.services.task_manager import TaskManager
from tests.factories import make_llm


class TestAnalysisServer:
    """Test cases for the analysis trigger endpoint."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_health(self, analysis_client):
        response = await analysis_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_trigger_queues_job(self, analysis_client, completed_session):
        tasks = TaskManager()
        job = AsyncMock(return_value=True)

        with patch("expert_interviews.analysis_server.task_manager", tasks), \
                patch("expert_interviews.analysis_server.run_session_analysis", job):
            response = await analysis_client.post(f"/analyze/{completed_session.id}")
            await tasks.wait_all()

        assert response.status_code == 202
        assert response.json()["message"] == "Analysis job queued"
        job.assert_awaited_once_with(completed_session.id)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unknown_session(self, analysis_client):
        response = await analysis_client.post(f"/analyze/{uuid.uuid4()}")
        assert response.status_code == 404

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_processed_session(self, analysis_client, session_factory, completed_session):
        async with session_factory() as db:
            await AnalysisService(llm=make_llm()).analyze_session(db, completed_session.id)

        response = await analysis_client.post(f"/analyze/{completed_session.id}")
        assert response.status_code == 200
        assert response.json() == {"message": "Session already processed"}

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_detail_after_analysis(self, client, session_factory, completed_session):
        async with session_factory() as db:
            await AnalysisService(llm=make_llm()).analyze_session(db, completed_session.id)

        body = (await client.get(f"/api/v1/sessions/{completed_session.id}")).json()
        assert body["session"]["processed"] is True
        assert body["summary"]["aggregated_insights"]["questionCount"] == 2
        artifact = body["step_records"][0]["analysis_artifact"]
        assert artifact["winner_flag"] == "B"
        assert artifact["knowledge_gaps"] == ["shared state", "definitions"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_in_progress_session_is_rejected(self, client, analysis_client, session_factory, link):
        started = await client.post(f"/api/v1/interviews/{link.id}/start")
        session_id = started.json()["session"]["id"]

        async def answer(question_id):
            response = await client.post(
                f"/api/v1/interviews/sessions/{session_id}/answers",
                json={"question_id": question_id, "preferred_answer": "A", "transcript": "user: A"},
            )
            assert response.status_code == 200

        await answer("q1")
        response = await analysis_client.post(f"/analyze/{session_id}")
        assert response.status_code == 400
        assert response.json()["code"] == "session_not_completed"

        await answer("q2")
        await client.post(f"/api/v1/interviews/sessions/{session_id}/complete")

        async with session_factory() as db:
            assert await AnalysisService(llm=make_llm()).analyze_session(db, uuid.UUID(session_id)) is True

        body = (await client.get(f"/api/v1/sessions/{session_id}")).json()
        assert body["session"]["processed"] is True
        assert all(r["analysis_artifact"] is not None for r in body["step_records"])
        assert len(body["step_records"]) == 2
