"""Pydantic models describing how a stream download runs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..engine.fetcher import validate_template
from ..engine.prober import DEFAULT_INITIAL_STEP


class DownloadSettings(BaseModel):
    """Tunables for discovery, retrieval and presentation."""

    filename_template: str = "%d.ts"
    initial_step: int = Field(default=DEFAULT_INITIAL_STEP, ge=1)
    max_workers: int = Field(default=16, ge=1)
    timeout: float | None = Field(
        default=15.0,
        description="Per-request timeout in seconds; null disables the timeout.",
    )
    follow_redirects: bool = True
    user_agent: str | None = None
    enable_progress_bar: bool = True
    keep_fragments: bool = False

    @field_validator("filename_template")
    @classmethod
    def _check_template(cls, value: str) -> str:
        return validate_template(value)

    @field_validator("timeout", mode="before")
    @classmethod
    def _coerce_timeout(cls, value: Any) -> float | None:
        if value in (None, ""):
            return None
        timeout = float(value)
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        return timeout


__all__ = ["DownloadSettings"]
