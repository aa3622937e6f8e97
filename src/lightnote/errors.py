"""Error taxonomy and structured run diagnostics for digest generation."""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class LightnoteError(Exception):
    """Base error for the lightnote package."""


class LLMError(LightnoteError):
    """Base error for completion-service calls."""


class ConfigurationError(LLMError):
    """Raised when the completion endpoint or model is not configured."""


class TransportError(LLMError):
    """Network failure or non-success HTTP status from the completion service."""

    def __init__(self, message: str, *, status: int = 0, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(message)


class CompletionTimeoutError(LLMError):
    """The completion call exceeded its configured timeout."""


class ParseError(LLMError):
    """A completion reply could not be coerced into the expected schema."""


class RunError(BaseModel):
    """A single error captured during a digest run."""

    stage: str
    source: str = ""
    error_type: str = "unknown"
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)
    recoverable: bool = True


class RunReport(BaseModel):
    """Diagnostics for one digest generation.

    Recovered failures (LLM fallbacks, corrupt cache blobs) land here instead
    of propagating, so callers can still surface them if they care.
    """

    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime | None = None
    stages_completed: list[str] = Field(default_factory=list)
    errors: list[RunError] = Field(default_factory=list)
    items_processed: dict[str, int] = Field(default_factory=dict)

    def add_error(
        self,
        stage: str,
        message: str,
        *,
        source: str = "",
        error_type: str = "unknown",
        recoverable: bool = True,
    ) -> None:
        """Record an error during the run."""
        self.errors.append(
            RunError(
                stage=stage,
                source=source,
                error_type=error_type,
                message=message,
                recoverable=recoverable,
            )
        )

    def mark_stage_complete(self, stage: str) -> None:
        if stage not in self.stages_completed:
            self.stages_completed.append(stage)

    def finish(self) -> None:
        self.finished_at = datetime.now()

    @property
    def success(self) -> bool:
        """True if no unrecoverable errors occurred."""
        return not any(not e.recoverable for e in self.errors)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def summary_text(self) -> str:
        """Human-readable summary of the run."""
        duration = ""
        if self.finished_at and self.started_at:
            secs = (self.finished_at - self.started_at).total_seconds()
            duration = f" in {secs:.1f}s"

        status = "completed" if self.success else "failed"
        lines = [f"Digest run {status}{duration}"]

        if self.stages_completed:
            lines.append(f"Stages: {', '.join(self.stages_completed)}")

        if self.items_processed:
            parts = [f"{k}: {v}" for k, v in self.items_processed.items()]
            lines.append(f"Processed: {', '.join(parts)}")

        if self.errors:
            lines.append(f"Errors: {len(self.errors)}")
            for err in self.errors[:5]:
                prefix = "[recoverable]" if err.recoverable else "[FATAL]"
                lines.append(f"  {prefix} {err.stage}: {err.message}")
            if len(self.errors) > 5:
                lines.append(f"  ... and {len(self.errors) - 5} more")

        return "\n".join(lines)
