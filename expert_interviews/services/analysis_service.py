"""
Analysis job for completed interview sessions.

For one session the job asks the chat model to judge every step record,
stores one analysis artifact per record, synthesizes a session summary and
flags the session as processed. Everything is written in a single
transaction; model failures are replaced by deterministic fallbacks so only
database errors abort the job.
"""
from collections import Counter
from typing import Callable, List, Optional
from uuid import UUID

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.core.exceptions import ResourceNotFoundError
from expert_interviews.crud.crud_analysis import analysis_artifact_crud, session_summary_crud
from expert_interviews.crud.crud_session import session_crud
from expert_interviews.crud.crud_step_record import step_record_crud
from expert_interviews.db.transaction import transaction
from expert_interviews.models.models import SessionStatus, StepRecord, WinnerFlag
from expert_interviews.schemas.analysis import (
    AggregatedInsights,
    AnalysisResult,
    GapCount,
    SessionSummaryResult,
    SessionSynthesisOutput,
    StepAnalysisOutput,
    SuggestionCount,
)
from expert_interviews.services.openai_service import OpenAIService, openai_service
from expert_interviews.services.prompt_templates import (
    SESSION_SYNTHESIS_PROMPT, STEP_ANALYSIS_PROMPT
)
from expert_interviews.services.transcript_service import (
    format_conversation, load_transcript, to_messages
)

FALLBACK_SEVERITY = 0.5
FALLBACK_RATIONALE = "Analysis failed due to an error."
FALLBACK_KNOWLEDGE_GAPS = ["Analysis error"]
FALLBACK_PROMPT_SUGGESTIONS = ["Retry analysis"]
NO_RESULTS_FEEDBACK = "No analysis results available."
TOP_ITEMS = 5


def fallback_result(preferred_answer: Optional[str]) -> AnalysisResult:
    """Result stored when the model call or its parsing fails"""
    return AnalysisResult(
        winner_flag=WinnerFlag(preferred_answer) if preferred_answer else WinnerFlag.TIED,
        severity_score=FALLBACK_SEVERITY,
        rationale_digest=FALLBACK_RATIONALE,
        knowledge_gaps=list(FALLBACK_KNOWLEDGE_GAPS),
        prompt_suggestions=list(FALLBACK_PROMPT_SUGGESTIONS),
    )


def rank_by_frequency(items: List[str], limit: int = TOP_ITEMS) -> List[tuple]:
    """Most frequent items first; ties keep first-seen order"""
    return Counter(items).most_common(limit)


def statistical_summary(results: List[AnalysisResult]) -> SessionSummaryResult:
    """Summary built from the per-record results alone"""
    question_count = len(results)
    if question_count == 0:
        return SessionSummaryResult(
            aggregated_insights=AggregatedInsights(questionCount=0, averageSeverityScore=0),
            overall_feedback=NO_RESULTS_FEEDBACK,
        )

    average_severity = sum(r.severity_score for r in results) / question_count
    gaps = rank_by_frequency([gap for r in results for gap in r.knowledge_gaps])
    suggestions = rank_by_frequency([s for r in results for s in r.prompt_suggestions])

    feedback = (
        "Interview session analysis summary (statistical aggregation):\n"
        f"- Total questions analyzed: {question_count}\n"
        f"- Average severity score: {average_severity:.2f}\n"
        "- Top knowledge gaps identified across questions\n"
        "- Top prompt improvement suggestions identified across questions"
    )

    return SessionSummaryResult(
        aggregated_insights=AggregatedInsights(
            questionCount=question_count,
            averageSeverityScore=average_severity,
            topKnowledgeGaps=[GapCount(gap=gap, count=count) for gap, count in gaps],
            topPromptSuggestions=[SuggestionCount(suggestion=s, count=count) for s, count in suggestions],
        ),
        overall_feedback=feedback,
    )


class AnalysisService:
    """
    Runs the LLM analysis of interview sessions
    """

    def __init__(self, llm: OpenAIService = openai_service):
        self.llm = llm

    async def analyze_step_record(self, record: StepRecord) -> AnalysisResult:
        """
        Judge one step record

        Never raises for model problems; returns the fallback result instead.
        """
        question = record.question_pair
        preferred = record.preferred_answer.value if record.preferred_answer else None

        conversation = format_conversation(to_messages(load_transcript(record.transcript)))
        prompt = STEP_ANALYSIS_PROMPT.format(
            question_text=question.question_text,
            answer_a=question.answer_a,
            answer_b=question.answer_b,
            preferred_answer=preferred or "None selected yet",
            conversation=conversation,
        )

        try:
            parsed = await self.llm.create_structured_completion(prompt, StepAnalysisOutput)
        except Exception as e:
            # Any failure of the call or of parsing its reply
            logger.error(f"Error analyzing step record {record.id}: {e}")
            return fallback_result(preferred)

        return AnalysisResult(
            winner_flag=parsed.WINNER_FLAG,
            severity_score=parsed.SEVERITY_SCORE,
            rationale_digest=parsed.RATIONALE_DIGEST,
            knowledge_gaps=parsed.KNOWLEDGE_GAPS,
            prompt_suggestions=parsed.PROMPT_SUGGESTIONS,
        )

    async def generate_session_summary(self, results: List[AnalysisResult]) -> SessionSummaryResult:
        """
        Synthesize the session summary with the model

        Falls back to frequency ranking of the per-record gaps and
        suggestions when the model call fails.
        """
        if not results:
            return statistical_summary(results)

        analysis_input = "\n".join(
            f"Question {index}:\n"
            f"Winner: {result.winner_flag.value}\n"
            f"Severity: {result.severity_score}\n"
            f"Rationale: {result.rationale_digest}\n"
            f"Knowledge Gaps: {', '.join(result.knowledge_gaps)}\n"
            f"Prompt Suggestions: {', '.join(result.prompt_suggestions)}\n"
            for index, result in enumerate(results, start=1)
        )
        prompt = SESSION_SYNTHESIS_PROMPT.format(
            question_count=len(results),
            analysis_input=analysis_input,
        )

        try:
            parsed = await self.llm.create_structured_completion(prompt, SessionSynthesisOutput)
        except Exception as e:
            logger.warning(f"Session synthesis failed, using statistical summary: {e}")
            return statistical_summary(results)

        return SessionSummaryResult(
            aggregated_insights=AggregatedInsights(
                questionCount=len(results),
                averageSeverityScore=sum(r.severity_score for r in results) / len(results),
                topKnowledgeGaps=[GapCount(gap=gap, count=1) for gap in parsed.TOP_KNOWLEDGE_GAPS],
                topPromptSuggestions=[
                    SuggestionCount(suggestion=s, count=1) for s in parsed.CROSS_QUESTION_PROMPT_SUGGESTIONS
                ],
            ),
            overall_feedback=parsed.SUMMARY,
        )

    async def analyze_session(self, db: AsyncSession, session_id: UUID) -> bool:
        """
        Analyze one session and mark it processed, atomically

        Args:
            db: Database session owned by the caller
            session_id: Interview session to analyze

        Returns:
            True if the session was analyzed, False if it is already processed
            or not completed yet

        Raises:
            ResourceNotFoundError: If the session doesn't exist
            DatabaseError: If anything fails while writing; nothing is kept
        """
        async with transaction(db):
            if not await session_crud.claim_for_analysis(db, session_id=session_id):
                session = await session_crud.get(db, id=session_id)
                if session is None:
                    raise ResourceNotFoundError("Session", str(session_id))
                if session.status != SessionStatus.COMPLETED:
                    logger.warning(f"Session {session_id} is not completed, skipping analysis")
                else:
                    logger.info(f"Session {session_id} already processed, skipping")
                return False

            records = await step_record_crud.get_by_session_with_questions(db, session_id=session_id)

            results = []
            for record in records:
                logger.debug(f"Analyzing step record {record.id} of session {session_id}")
                result = await self.analyze_step_record(record)
                await analysis_artifact_crud.create_for_question(
                    db,
                    session_id=session_id,
                    question_pair_id=record.question_pair_id,
                    result=result,
                )
                results.append(result)

            summary = await self.generate_session_summary(results)
            await session_summary_crud.create_for_session(db, session_id=session_id, summary=summary)

        logger.info(f"Analysis completed for session {session_id}: {len(results)} step records")
        return True


analysis_service = AnalysisService()


async def run_session_analysis(
        session_id: UUID,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        service: Optional[AnalysisService] = None,
) -> bool:
    """
    Entrypoint for background execution: opens and releases its own DB session.
    """
    if session_factory is None:
        from expert_interviews.db.session import AsyncSessionLocal
        session_factory = AsyncSessionLocal

    async with session_factory() as db:
        return await (service or analysis_service).analyze_session(db, session_id)
