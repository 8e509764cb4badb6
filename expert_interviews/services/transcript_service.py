import json
from typing import Any, Dict, List, Union

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from expert_interviews.schemas.transcript import (
    Message, PlainTranscript, StructuredTranscript, Transcript
)

_messages_adapter = TypeAdapter(List[Message])
_transcript_adapter = TypeAdapter(Transcript)

DEFAULT_ROLE = "system"


def parse_transcript(raw: Union[str, List[Message], List[Dict[str, Any]], None]) -> Union[PlainTranscript, StructuredTranscript]:
    """
    Decide once, at submission time, which kind of transcript was captured.

    A list of messages, or a string holding a JSON list of messages, becomes a
    structured transcript; any other string is kept as plain text.
    """
    if raw is None:
        return PlainTranscript(text="")

    if isinstance(raw, list):
        return StructuredTranscript(messages=_messages_adapter.validate_python(raw))

    stripped = raw.strip()
    if stripped.startswith("["):
        try:
            return StructuredTranscript(messages=_messages_adapter.validate_json(stripped))
        except ValidationError:
            logger.debug("Transcript looks like JSON but is not a message list, storing as plain text")

    return PlainTranscript(text=raw)


def load_transcript(stored: Any) -> Union[PlainTranscript, StructuredTranscript]:
    """Rebuild the tagged transcript stored on a step record"""
    if isinstance(stored, str):
        try:
            stored = json.loads(stored)
        except json.JSONDecodeError:
            return PlainTranscript(text=stored)
    if isinstance(stored, list):
        return parse_transcript(stored)
    return _transcript_adapter.validate_python(stored)


def plaintext_to_messages(text: str) -> List[Message]:
    """
    Split `role: content` lines into messages.

    Lines without a role label are attributed to the system role.
    """
    messages = []
    for line in text.split("\n"):
        role, sep, content = line.partition(": ")
        if sep:
            messages.append(Message(role=role.strip(), content=content.strip()))
        else:
            messages.append(Message(role=DEFAULT_ROLE, content=line.strip()))
    return messages


def to_messages(transcript: Union[PlainTranscript, StructuredTranscript]) -> List[Message]:
    if isinstance(transcript, StructuredTranscript):
        return transcript.messages
    return plaintext_to_messages(transcript.text)


def format_conversation(messages: List[Message]) -> str:
    """Flatten messages into one `role: content` line each"""
    return "\n".join(f"{msg.role}: {msg.content}" for msg in messages)
