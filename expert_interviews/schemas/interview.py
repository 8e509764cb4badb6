from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from expert_interviews.models.models import PreferredAnswer, SessionStatus
from expert_interviews.schemas.interview_link import InterviewLinkOut
from expert_interviews.schemas.project import QuestionPairOut
from expert_interviews.schemas.transcript import Message


class InterviewSessionOut(BaseModel):
    """Interview session output schema"""
    id: UUID
    interview_link_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    status: SessionStatus
    processed: bool

    model_config = ConfigDict(from_attributes=True)


class InterviewStartResponse(BaseModel):
    """Session and questions handed to the interview page"""
    session: InterviewSessionOut
    link: InterviewLinkOut
    questions: List[QuestionPairOut]


class NextQuestionResponse(BaseModel):
    """Next unanswered question of a session"""
    completed: bool
    question: Optional[QuestionPairOut] = None
    answered_count: int
    total_count: int


class AnswerSubmit(BaseModel):
    """
    Expert's answer to one question.

    `question_id` is the external id from the CSV. `transcript` is either the
    raw text of the conversation or the list of messages.
    """
    question_id: str
    preferred_answer: PreferredAnswer
    transcript: Union[str, List[Message]] = ""


class StepRecordOut(BaseModel):
    """Step record output schema"""
    id: UUID
    session_id: UUID
    project_id: UUID
    question_pair_id: UUID
    preferred_answer: Optional[PreferredAnswer] = None
    transcript: Dict[str, Any]
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AnswerSubmitResponse(BaseModel):
    """Result of an answer submission"""
    success: bool = True
    step_record: StepRecordOut
