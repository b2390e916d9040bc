"""ServiceResult and ServiceError: the contract every service returns.

Commands never see exceptions from the store or the tracker; they receive
a ServiceResult and hand it to the output layer.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"create_handoff"``).
        data: Operation-specific payload.
        warnings: Non-fatal issues, such as tracker contention after a
            note was already written.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (counts, timings).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
