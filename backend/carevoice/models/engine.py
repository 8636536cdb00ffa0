"""Raw payloads delivered by speech engines, decoded once at the wrapper boundary.

Field names follow the Web Speech API event shapes so browser clients can
forward events without translation.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from carevoice.models.base import BaseModel


class RecognitionAlternative(BaseModel):
    transcript: str = ""
    confidence: float = 0.0


class RecognitionResultPayload(BaseModel):
    is_final: bool = Field(default=True, alias="isFinal")
    alternatives: list[RecognitionAlternative] = Field(default_factory=list)


class RecognitionEventPayload(BaseModel):
    result_index: int = Field(default=0, alias="resultIndex")
    results: list[RecognitionResultPayload] = Field(default_factory=list)


class RecognitionErrorPayload(BaseModel):
    error: str = "unknown"
    message: Optional[str] = None


class VoicePayload(BaseModel):
    name: str
    lang: str
    default: bool = False
