"""
Integration tests for project, CSV, link and export endpoints.
"""
import pytest

from tests.conftest import SAMPLE_CSV

API = "/api/v1"


async def create_project(client, name="Evaluation"):
    response = await client.post(f"{API}/projects/", json={"name": name})
    assert response.status_code == 201
    return response.json()


class TestProjectEndpoints:
    """Test cases for project endpoints."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_and_get_project(self, client):
        project = await create_project(client)
        assert project["status"] == "ACTIVE"

        response = await client.get(f"{API}/projects/{project['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Evaluation"
        assert "X-Request-ID" in response.headers

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_list_projects_is_paginated(self, client):
        for name in ("one", "two", "three"):
            await create_project(client, name)

        response = await client.get(f"{API}/projects/", params={"page": 1, "size": 2})
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert len(body["items"]) == 2

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_missing_project(self, client):
        response = await client.get(f"{API}/projects/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404
        assert response.json() == {"detail": "Project not found", "code": "not_found"}

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_empty_name_is_rejected(self, client):
        response = await client.post(f"{API}/projects/", json={"name": ""})
        assert response.status_code == 422


class TestCSVEndpoints:
    """Test cases for question CSV uploads."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_multipart_upload(self, client):
        project = await create_project(client)

        response = await client.post(
            f"{API}/projects/{project['id']}/csv",
            files={"file": ("questions.csv", SAMPLE_CSV.encode(), "text/csv")},
        )
        assert response.status_code == 201
        assert response.json()["records_created"] == 3

        questions = (await client.get(f"{API}/projects/{project['id']}/questions")).json()
        assert [q["question_id"] for q in questions] == ["q1", "q2", "q3"]

        files = (await client.get(f"{API}/projects/{project['id']}/csv-files")).json()
        assert files[0]["filename"] == "questions.csv"
        assert files[0]["is_active"] is True

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_raw_upload_with_missing_columns(self, client):
        project = await create_project(client)

        response = await client.post(
            f"{API}/projects/{project['id']}/csv/raw",
            json={"csv_content": "questionId,questionText\nq1,Q"},
        )
        assert response.status_code == 400
        assert response.json() == {
            "detail": "Missing required columns: answerA, answerB",
            "code": "invalid_csv",
        }

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_stats(self, client, project, completed_session):
        response = await client.get(f"{API}/projects/{project.id}/stats")
        assert response.status_code == 200
        assert response.json() == {
            "project_id": str(project.id),
            "question_count": 3,
            "link_count": 1,
            "session_count": 1,
            "completed_session_count": 1,
            "processed_session_count": 0,
        }


class TestLinkEndpoints:
    """Test cases for interview link endpoints."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_link(self, client, project):
        response = await client.post(
            f"{API}/projects/{project.id}/links",
            json={"name": "Panel", "interview_name": "Dr. Grace"},
        )
        assert response.status_code == 201
        link = response.json()
        assert len(link["id"]) == 10
        assert link["url"] == f"http://testserver/interview/{link['id']}"
        assert link["row_quota"] == 10
        assert link["status"] == "unused"

        listed = (await client.get(f"{API}/projects/{project.id}/links")).json()
        assert [item["id"] for item in listed] == [link["id"]]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_get_link_with_project(self, client, project, link):
        response = await client.get(f"{API}/links/{link.id}")
        assert response.status_code == 200
        assert response.json()["project"]["id"] == str(project.id)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_expired_and_missing_links(self, client, expired_link):
        expired = await client.get(f"{API}/links/{expired_link.id}")
        assert expired.status_code == 400
        assert expired.json()["detail"] == "This interview link has expired"

        missing = await client.get(f"{API}/links/doesnotexist")
        assert missing.status_code == 404


class TestExportEndpoint:
    """Test cases for the CSV export download."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_export_download(self, client, project, completed_session):
        response = await client.get(f"{API}/projects/{project.id}/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        lines = response.text.split("\n")
        assert lines[0].startswith("SessionID,IntervieweeName,StartTime")
        assert str(completed_session.id) in lines[1]
