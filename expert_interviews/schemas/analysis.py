import json
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from expert_interviews.models.models import WinnerFlag
from expert_interviews.schemas.interview import InterviewSessionOut, StepRecordOut
from expert_interviews.schemas.project import QuestionPairOut


class StepAnalysisOutput(BaseModel):
    """Structured reply expected from the model for one question"""
    WINNER_FLAG: WinnerFlag = Field(
        ..., description="The expert's selection (A or B) based on their explicit choice, or TIED"
    )
    SEVERITY_SCORE: float = Field(
        ..., description="How much better the chosen answer is, from 0.0 (equally valid) to 1.0 (other answer has critical errors)"
    )
    RATIONALE_DIGEST: str = Field(..., description="The expert's reasoning in 1-2 sentences")
    KNOWLEDGE_GAPS: List[str] = Field(..., description="2-3 knowledge areas where improvement would lead to better answers")
    PROMPT_SUGGESTIONS: List[str] = Field(
        ..., description="2-3 structural or methodological principles for improving prompts for this type of question"
    )

    @field_validator("SEVERITY_SCORE")
    def clip_severity(cls, v: float) -> float:
        return min(1.0, max(0.0, v))


class SessionSynthesisOutput(BaseModel):
    """Structured reply expected from the model for a whole session"""
    TOP_KNOWLEDGE_GAPS: List[str] = Field(..., description="The top 3-5 knowledge gaps identified across all questions")
    CROSS_QUESTION_PROMPT_SUGGESTIONS: List[str] = Field(
        ..., description="General prompt improvement suggestions that apply across all questions"
    )
    SUMMARY: str = Field(..., description="A brief overall assessment of the interview session")


class AnalysisResult(BaseModel):
    """Judgment for one step record, as persisted in an analysis artifact"""
    winner_flag: WinnerFlag
    severity_score: float
    rationale_digest: str
    knowledge_gaps: List[str]
    prompt_suggestions: List[str]


class GapCount(BaseModel):
    gap: str
    count: int


class SuggestionCount(BaseModel):
    suggestion: str
    count: int


class AggregatedInsights(BaseModel):
    """Aggregate statistics stored on a session summary"""
    questionCount: int
    averageSeverityScore: float
    topKnowledgeGaps: List[GapCount] = []
    topPromptSuggestions: List[SuggestionCount] = []


class SessionSummaryResult(BaseModel):
    """Session summary produced by the analysis job"""
    aggregated_insights: AggregatedInsights
    overall_feedback: str


class AnalysisArtifactOut(BaseModel):
    """Analysis artifact output schema"""
    id: UUID
    session_id: UUID
    question_pair_id: UUID
    winner_flag: WinnerFlag
    severity_score: float
    rationale_digest: str
    knowledge_gaps: List[str]
    prompt_suggestions: List[str]
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("knowledge_gaps", "prompt_suggestions", mode="before")
    def parse_json_list(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [v]
        return v


class SessionSummaryOut(BaseModel):
    """Session summary output schema"""
    id: UUID
    session_id: UUID
    aggregated_insights: AggregatedInsights
    overall_feedback: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StepRecordDetail(StepRecordOut):
    """Step record with its question and analysis"""
    question_pair: QuestionPairOut
    analysis_artifact: Optional[AnalysisArtifactOut] = None


class SessionDetailOut(BaseModel):
    """Everything shown on the session detail page"""
    session: InterviewSessionOut
    summary: Optional[SessionSummaryOut] = None
    step_records: List[StepRecordDetail]


class AnalysisTriggerResponse(BaseModel):
    """Response of the analysis trigger endpoint"""
    message: str
    task_id: Optional[str] = None
