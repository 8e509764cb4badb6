"""
Integration tests for the interview flow and session browsing endpoints.
"""
import pytest

API = "/api/v1"


class TestInterviewFlow:
    """Test cases for an expert running through an interview link."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_full_interview(self, client, link):
        started = await client.post(f"{API}/interviews/{link.id}/start")
        assert started.status_code == 200
        body = started.json()
        session_id = body["session"]["id"]
        assert body["link"]["status"] == "in-progress"
        assert len(body["questions"]) == 2

        for question_id in ("q1", "q2"):
            next_question = (await client.get(f"{API}/interviews/sessions/{session_id}/next-question")).json()
            assert next_question["question"]["question_id"] == question_id

            answered = await client.post(
                f"{API}/interviews/sessions/{session_id}/answers",
                json={
                    "question_id": question_id,
                    "preferred_answer": "A",
                    "transcript": [{"role": "user", "content": f"A wins {question_id}"}],
                },
            )
            assert answered.status_code == 200
            assert answered.json()["step_record"]["transcript"]["kind"] == "structured"

        done = (await client.get(f"{API}/interviews/sessions/{session_id}/next-question")).json()
        assert done["completed"] is True

        completed = await client.post(f"{API}/interviews/sessions/{session_id}/complete")
        assert completed.status_code == 200
        assert completed.json()["status"] == "COMPLETED"
        assert completed.json()["processed"] is False
        client.trigger_analysis.assert_awaited_once()

        latest = await client.get(f"{API}/links/{link.id}/sessions/latest-completed")
        assert latest.json()["id"] == session_id

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_duplicate_answer_is_bad_request(self, client, link):
        session_id = (await client.post(f"{API}/interviews/{link.id}/start")).json()["session"]["id"]
        payload = {"question_id": "q1", "preferred_answer": "B", "transcript": "user: B"}

        first = await client.post(f"{API}/interviews/sessions/{session_id}/answers", json=payload)
        second = await client.post(f"{API}/interviews/sessions/{session_id}/answers", json=payload)

        assert first.status_code == 200
        assert second.status_code == 400

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_expired_link_cannot_start(self, client, expired_link):
        response = await client.post(f"{API}/interviews/{expired_link.id}/start")
        assert response.status_code == 400

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_invalid_preferred_answer(self, client, link):
        session_id = (await client.post(f"{API}/interviews/{link.id}/start")).json()["session"]["id"]
        response = await client.post(
            f"{API}/interviews/sessions/{session_id}/answers",
            json={"question_id": "q1", "preferred_answer": "C"},
        )
        assert response.status_code == 422


class TestSessionEndpoints:
    """Test cases for browsing sessions and their analysis."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_list_link_sessions(self, client, link, completed_session):
        response = await client.get(f"{API}/links/{link.id}/sessions")
        assert response.status_code == 200
        assert [s["id"] for s in response.json()] == [str(completed_session.id)]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_no_completed_session(self, client, link):
        response = await client.get(f"{API}/links/{link.id}/sessions/latest-completed")
        assert response.status_code == 404

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_session_detail_before_analysis(self, client, completed_session):
        response = await client.get(f"{API}/sessions/{completed_session.id}")
        assert response.status_code == 200
        body = response.json()
        assert body["summary"] is None
        assert [r["question_pair"]["question_id"] for r in body["step_records"]] == ["q1", "q2"]
        assert all(r["analysis_artifact"] is None for r in body["step_records"])
