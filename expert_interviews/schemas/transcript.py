from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field


class Message(BaseModel):
    """One utterance of an interview conversation"""
    role: str
    content: str


class PlainTranscript(BaseModel):
    """Free-form transcript, usually `role: content` lines"""
    kind: Literal["plain"] = "plain"
    text: str


class StructuredTranscript(BaseModel):
    """Transcript captured as a list of messages"""
    kind: Literal["structured"] = "structured"
    messages: List[Message]


Transcript = Annotated[Union[PlainTranscript, StructuredTranscript], Field(discriminator="kind")]
