"""
Unit tests for the project CSV export.
"""
import json
from datetime import datetime, timezone

import pytest

from expert_interviews.models.models import SessionStatus
from expert_interviews.services.analysis_service import AnalysisService
from expert_interviews.services.csv_service import parse_csv
from expert_interviews.services.export_service import (
    EXPORT_COLUMNS, format_cell, generate_project_export, render_csv
)
from tests.factories import make_llm


class TestFormatCell:
    """Test cases for rendering single values."""

    @pytest.mark.unit
    @pytest.mark.parametrize("value, expected", [
        (None, ""),
        (True, "true"),
        (False, "false"),
        (0.25, "0.25"),
        ("plain", "plain"),
        ("a,b", '"a,b"'),
        ('say "hi"', '"say ""hi"""'),
        ("two\nlines", '"two\nlines"'),
        (SessionStatus.COMPLETED, "COMPLETED"),
    ])
    def test_values(self, value, expected):
        assert format_cell(value) == expected

    @pytest.mark.unit
    def test_datetime_is_iso(self):
        value = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        assert format_cell(value) == "2024-05-01T12:30:00+00:00"


class TestProjectExport:
    """Test cases for generating the export of a project."""

    @pytest.mark.unit
    def test_header_written_without_rows(self):
        assert render_csv([]) == ",".join(EXPORT_COLUMNS)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_export_before_analysis(self, db, project, completed_session):
        content = await generate_project_export(db, project.id)
        rows = parse_csv(content)

        assert rows[0] == EXPORT_COLUMNS
        assert len(rows) == 3
        first = dict(zip(EXPORT_COLUMNS, rows[1]))
        assert first["SessionID"] == str(completed_session.id)
        assert first["IntervieweeName"] == "Dr. Ada"
        assert first["Status"] == "COMPLETED"
        assert first["Processed"] == "false"
        assert first["QuestionID"] == "q1"
        assert first["PreferredAnswer"] == "B"
        assert first["WinnerFlag"] == ""
        assert first["SessionSummaryFeedback"] == ""

        second = dict(zip(EXPORT_COLUMNS, rows[2]))
        assert second["QuestionText"] == 'What does "idempotent" mean?'
        assert second["AnswerA"] == "Same result, every time"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_export_after_analysis(self, session_factory, project, completed_session):
        async with session_factory() as db:
            await AnalysisService(llm=make_llm()).analyze_session(db, completed_session.id)

        async with session_factory() as db:
            rows = parse_csv(await generate_project_export(db, project.id))

        first = dict(zip(EXPORT_COLUMNS, rows[1]))
        assert first["Processed"] == "true"
        assert first["WinnerFlag"] == "B"
        assert first["SeverityScore"] == "0.6"
        assert json.loads(first["KnowledgeGaps"]) == ["shared state", "definitions"]
        assert json.loads(first["SessionSummaryInsights"])["questionCount"] == 2
        assert first["SessionSummaryFeedback"] == "The expert consistently preferred precise answers."

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_project_without_sessions_exports_header(self, db, project):
        assert await generate_project_export(db, project.id) == ",".join(EXPORT_COLUMNS)
