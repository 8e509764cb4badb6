"""
Test doubles shared across test modules.
"""
from unittest.mock import AsyncMock, MagicMock

from expert_interviews.schemas.analysis import SessionSynthesisOutput, StepAnalysisOutput


def make_llm(step_error=None, synthesis_error=None):
    """Mock OpenAIService answering both analysis prompts."""
    async def complete(prompt, output_model, model=None):
        if output_model is StepAnalysisOutput:
            if step_error:
                raise step_error
            return StepAnalysisOutput(
                WINNER_FLAG="B",
                SEVERITY_SCORE=0.6,
                RATIONALE_DIGEST="The expert preferred precision.",
                KNOWLEDGE_GAPS=["shared state", "definitions"],
                PROMPT_SUGGESTIONS=["ask for examples"],
            )
        if synthesis_error:
            raise synthesis_error
        return SessionSynthesisOutput(
            TOP_KNOWLEDGE_GAPS=["shared state"],
            CROSS_QUESTION_PROMPT_SUGGESTIONS=["ask for examples", "define terms"],
            SUMMARY="The expert consistently preferred precise answers.",
        )

    llm = MagicMock()
    llm.create_structured_completion = AsyncMock(side_effect=complete)
    return llm
