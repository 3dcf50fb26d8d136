"""Core domain models for the key loader.

These models describe what flows between the request handler and the
unlock backend: the outcome of one unlock attempt and the key state of
the target dataset.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class KeyStatus(str, enum.Enum):
    """Whether the dataset's encryption key is currently loaded."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class UnlockResult(BaseModel):
    """Outcome of a single unlock attempt.

    ``diagnostic`` holds whatever the unlock operation printed (or a
    description of why it could not be run). It never contains the key.
    """

    model_config = ConfigDict(frozen=True)

    succeeded: bool = Field(description="Whether the key was accepted")
    diagnostic: str = Field(default="", description="Combined output of the unlock operation")

    @classmethod
    def failure(cls, diagnostic: str) -> UnlockResult:
        return cls(succeeded=False, diagnostic=diagnostic)
