import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON,
    String, Text, UniqueConstraint, Uuid, func, Enum as SQLAEnum
)
from sqlalchemy.orm import relationship

from expert_interviews.db.base_class import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enum_column(enum_cls, **kwargs) -> Column:
    """String-backed enum column storing member values rather than names"""
    return Column(
        SQLAEnum(
            enum_cls,
            native_enum=False,
            length=32,
            values_callable=lambda members: [m.value for m in members],
        ),
        **kwargs,
    )


class ProjectStatus(str, Enum):
    """Project status enum"""
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class InterviewLinkStatus(str, Enum):
    """Interview link status enum, progresses one way"""
    UNUSED = "unused"
    IN_PROGRESS = "in-progress"
    COMPLETED = "COMPLETED"


class SessionStatus(str, Enum):
    """Interview session status enum"""
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class PreferredAnswer(str, Enum):
    """Answer option picked by the expert"""
    A = "A"
    B = "B"


class WinnerFlag(str, Enum):
    """Answer option judged preferable by the analysis"""
    A = "A"
    B = "B"
    TIED = "TIED"


class Project(Base):
    """Project model"""
    __tablename__ = "projects"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    status = enum_column(ProjectStatus, default=ProjectStatus.ACTIVE, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    csv_files = relationship("CSVFile", back_populates="project", cascade="all, delete-orphan")
    question_pairs = relationship("QuestionPair", back_populates="project", cascade="all, delete-orphan")
    interview_links = relationship("InterviewLink", back_populates="project", cascade="all, delete-orphan")


class CSVFile(Base):
    """Uploaded question CSV; only one file per project is active"""
    __tablename__ = "csv_files"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String, nullable=False)
    row_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="csv_files")
    question_pairs = relationship("QuestionPair", back_populates="csv_file")


class QuestionPair(Base):
    """A question with the two candidate answers shown to the expert"""
    __tablename__ = "question_pairs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    csv_file_id = Column(Uuid(as_uuid=True), ForeignKey("csv_files.id", ondelete="SET NULL"), nullable=True)
    question_id = Column(String, nullable=False)  # External key from the CSV
    question_text = Column(Text, nullable=False)
    answer_a = Column(Text, nullable=False)
    answer_b = Column(Text, nullable=False)
    order = Column(Integer, nullable=False, default=0)
    extra_metadata = Column("metadata", JSON, nullable=False, default=dict)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="question_pairs")
    csv_file = relationship("CSVFile", back_populates="question_pairs")


class InterviewLink(Base):
    """Shareable link an expert uses to run an interview"""
    __tablename__ = "interview_links"

    id = Column(String(32), primary_key=True)  # Token embedded in the url
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    interview_name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    row_quota = Column(Integer, nullable=False, default=10)
    status = enum_column(InterviewLinkStatus, default=InterviewLinkStatus.UNUSED, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="interview_links")
    sessions = relationship("InterviewSession", back_populates="interview_link", cascade="all, delete-orphan")


class InterviewSession(Base):
    """One run of an interview link by an expert"""
    __tablename__ = "interview_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    interview_link_id = Column(String(32), ForeignKey("interview_links.id", ondelete="CASCADE"), nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    status = enum_column(SessionStatus, default=SessionStatus.IN_PROGRESS, nullable=False)
    processed = Column(Boolean, nullable=False, default=False)  # Set by the analysis job only

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    interview_link = relationship("InterviewLink", back_populates="sessions")
    step_records = relationship("StepRecord", back_populates="session", cascade="all, delete-orphan")
    analysis_artifacts = relationship("AnalysisArtifact", back_populates="session", cascade="all, delete-orphan")
    summary = relationship("SessionSummary", back_populates="session", uselist=False, cascade="all, delete-orphan")


class StepRecord(Base):
    """The expert's pick and transcript for one question of a session"""
    __tablename__ = "step_records"
    __table_args__ = (
        UniqueConstraint("session_id", "question_pair_id", name="uq_step_records_session_question"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("interview_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    question_pair_id = Column(Uuid(as_uuid=True), ForeignKey("question_pairs.id", ondelete="CASCADE"), nullable=False)
    preferred_answer = enum_column(PreferredAnswer, nullable=True)
    transcript = Column(JSON, nullable=False)  # Tagged transcript, see services.transcript_service

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    # Relationships
    session = relationship("InterviewSession", back_populates="step_records")
    question_pair = relationship("QuestionPair")


class AnalysisArtifact(Base):
    """LLM judgment for one step record"""
    __tablename__ = "analysis_artifacts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("interview_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    question_pair_id = Column(Uuid(as_uuid=True), ForeignKey("question_pairs.id", ondelete="CASCADE"), nullable=False)
    winner_flag = enum_column(WinnerFlag, nullable=False)
    severity_score = Column(Float, nullable=False)
    rationale_digest = Column(Text, nullable=False)
    knowledge_gaps = Column(JSON, nullable=False, default=list)
    prompt_suggestions = Column(JSON, nullable=False, default=list)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    # Relationships
    session = relationship("InterviewSession", back_populates="analysis_artifacts")
    question_pair = relationship("QuestionPair")


class SessionSummary(Base):
    """Aggregate judgment across all step records of a session"""
    __tablename__ = "session_summaries"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("interview_sessions.id", ondelete="CASCADE"), nullable=False, unique=True)
    aggregated_insights = Column(JSON, nullable=False)
    overall_feedback = Column(Text, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    # Relationships
    session = relationship("InterviewSession", back_populates="summary")
