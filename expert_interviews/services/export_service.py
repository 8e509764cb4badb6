import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List
from uuid import UUID

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.crud.crud_session import session_crud
from expert_interviews.models.models import InterviewSession

EXPORT_COLUMNS = [
    "SessionID",
    "IntervieweeName",
    "StartTime",
    "CompletionTime",
    "Status",
    "Processed",
    "QuestionID",
    "QuestionText",
    "AnswerA",
    "AnswerB",
    "PreferredAnswer",
    "WinnerFlag",
    "SeverityScore",
    "RationaleDigest",
    "KnowledgeGaps",
    "PromptSuggestions",
    "SessionSummaryInsights",
    "SessionSummaryFeedback",
]

_NEEDS_QUOTING = (",", '"', "\n", "\r")


def format_cell(value: Any) -> str:
    """
    Render one export value

    None is empty, booleans are lowercase, datetimes ISO-8601. Strings holding
    a delimiter, quote or line break are quoted with quotes doubled.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        value = value.value

    text = str(value)
    if isinstance(value, str) and any(c in text for c in _NEEDS_QUOTING):
        return '"' + text.replace('"', '""') + '"'
    return text


def session_rows(session: InterviewSession) -> List[Dict[str, Any]]:
    """One export row per step record of the session, in question order"""
    summary = session.summary
    summary_insights = json.dumps(summary.aggregated_insights) if summary else None
    summary_feedback = summary.overall_feedback if summary else None

    artifacts = {a.question_pair_id: a for a in session.analysis_artifacts}
    records = sorted(session.step_records, key=lambda r: r.question_pair.order)

    rows = []
    for record in records:
        question = record.question_pair
        artifact = artifacts.get(record.question_pair_id)

        rows.append({
            "SessionID": str(session.id),
            "IntervieweeName": session.interview_link.interview_name,
            "StartTime": session.started_at,
            "CompletionTime": session.completed_at,
            "Status": session.status,
            "Processed": session.processed,
            "QuestionID": question.question_id,
            "QuestionText": question.question_text,
            "AnswerA": question.answer_a,
            "AnswerB": question.answer_b,
            "PreferredAnswer": record.preferred_answer,
            "WinnerFlag": artifact.winner_flag if artifact else None,
            "SeverityScore": artifact.severity_score if artifact else None,
            "RationaleDigest": artifact.rationale_digest if artifact else None,
            "KnowledgeGaps": json.dumps(artifact.knowledge_gaps) if artifact else None,
            "PromptSuggestions": json.dumps(artifact.prompt_suggestions) if artifact else None,
            "SessionSummaryInsights": summary_insights,
            "SessionSummaryFeedback": summary_feedback,
        })

    return rows


def render_csv(rows: List[Dict[str, Any]]) -> str:
    """Header line followed by one line per row"""
    lines = [",".join(EXPORT_COLUMNS)]
    lines.extend(
        ",".join(format_cell(row.get(column)) for column in EXPORT_COLUMNS)
        for row in rows
    )
    return "\n".join(lines)


async def generate_project_export(db: AsyncSession, project_id: UUID) -> str:
    """
    Flatten a project's sessions, answers and analysis into CSV text
    """
    sessions = await session_crud.get_by_project_for_export(db, project_id=project_id)

    rows = []
    for session in sessions:
        rows.extend(session_rows(session))

    logger.info(f"Exporting {len(rows)} rows from {len(sessions)} sessions of project {project_id}")
    return render_csv(rows)
