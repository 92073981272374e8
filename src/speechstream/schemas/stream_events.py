"""Pydantic models for analysis stream event payloads."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class _StreamPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class StartPayload(_StreamPayload):
    """Analysis started for a batch of images."""

    total_images: Optional[int] = None


class ProgressPayload(_StreamPayload):
    """A processing step began for one image."""

    step: str
    image: Optional[int] = None
    total_images: Optional[int] = None


class TextPayload(_StreamPayload):
    """One incremental token of the generated hypothesis."""

    text: str = ""


class CompletePayload(_StreamPayload):
    """The hypothesis is final and has been persisted as a message."""

    message_id: Optional[str] = None
    hypothesis: Optional[str] = None


class ErrorPayload(_StreamPayload):
    error: Optional[str] = None


class AnalysisProgress(BaseModel):
    """Externally visible progress of the current analysis turn."""

    step: str = "idle"
    image: Optional[int] = None
    total_images: Optional[int] = None
    error: Optional[str] = None


__all__ = [
    "AnalysisProgress",
    "CompletePayload",
    "ErrorPayload",
    "ProgressPayload",
    "StartPayload",
    "TextPayload",
]
