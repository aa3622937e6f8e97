"""Journal entry models and the ingestion adapter for raw journal records."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class SentimentScore(BaseModel):
    """Output contract of the sentiment scorer."""

    compound: float = 0.0
    pos: float = 0.0
    neg: float = 0.0
    neu: float = 1.0

    @field_validator("compound")
    @classmethod
    def _clamp_compound(cls, value: float) -> float:
        return max(-1.0, min(1.0, value))


class JournalEntry(BaseModel):
    """A single journal entry as handed over by the entry store."""

    id: str
    text: str = ""
    created_at: datetime
    sentiment: SentimentScore | None = None

    @property
    def score(self) -> float | None:
        """Compound sentiment, or None when the entry has not been scored."""
        return self.sentiment.compound if self.sentiment is not None else None

    @property
    def word_count(self) -> int:
        return len(self.text.strip().split())

    def with_sentiment(self, sentiment: SentimentScore) -> JournalEntry:
        return self.model_copy(update={"sentiment": sentiment})

    @classmethod
    def from_raw(cls, record: dict[str, Any]) -> JournalEntry:
        """Build an entry from a journal export record.

        Accepts ``created``/``createdAt``/``created_at`` as epoch
        milliseconds or ISO strings, and looks for sentiment under
        ``meta.sent``, then ``sentiment``, then a flat ``compound`` field.
        """
        created_raw = (
            record.get("created_at")
            or record.get("createdAt")
            or record.get("created")
        )
        return cls(
            id=str(record["id"]),
            text=record.get("text") or "",
            created_at=_parse_timestamp(created_raw),
            sentiment=_extract_sentiment(record),
        )


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000)
    if isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    raise ValueError(f"Entry has no usable timestamp: {value!r}")


def _extract_sentiment(record: dict[str, Any]) -> SentimentScore | None:
    meta = record.get("meta")
    nested = meta.get("sent") if isinstance(meta, dict) else None
    for candidate in (nested, record.get("sentiment")):
        if isinstance(candidate, dict) and _is_number(candidate.get("compound")):
            return SentimentScore.model_validate(
                {k: v for k, v in candidate.items() if _is_number(v)}
            )
    if _is_number(record.get("compound")):
        return SentimentScore(compound=record["compound"])
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def load_entries(records: list[dict[str, Any]]) -> list[JournalEntry]:
    """Convert raw records, skipping ones that cannot be read."""
    entries: list[JournalEntry] = []
    for record in records:
        try:
            entries.append(JournalEntry.from_raw(record))
        except (KeyError, ValueError, TypeError) as exc:
            logger.warning("Skipping unreadable journal record: %s", exc)
    return entries


WORD_CAP = 8
PHRASE_CAP = 6
ENTITY_CAP = 6
EVIDENCE_CAP = 4
QUOTE_CLIP = 120


class ThemeEvidence(BaseModel):
    """A theme label with short supporting quotes."""

    theme: str
    quotes: list[str] = Field(default_factory=list)


class ThemeSet(BaseModel):
    """Themes for one week, whether they came from the LLM or the heuristic path.

    Array fields are truncated to their caps on construction.
    """

    words: list[str] = Field(default_factory=list)
    phrases: list[str] = Field(default_factory=list)
    entities: list[str] = Field(default_factory=list)
    evidence: list[ThemeEvidence] = Field(default_factory=list)

    @model_validator(mode="after")
    def _apply_caps(self) -> ThemeSet:
        self.words = self.words[:WORD_CAP]
        self.phrases = self.phrases[:PHRASE_CAP]
        self.entities = self.entities[:ENTITY_CAP]
        self.evidence = self.evidence[:EVIDENCE_CAP]
        return self

    def label(self) -> str:
        """Short display label: top phrases if any, else top words."""
        if self.phrases:
            return " · ".join(self.phrases[:3])
        return ", ".join(self.words[:5])
