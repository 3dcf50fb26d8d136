"""Domain models for keyloader.

All models use Pydantic v2 for validation.
"""

from keyloader.domain.models import KeyStatus, UnlockResult

__all__ = ["KeyStatus", "UnlockResult"]
