"""LLM-assisted weekly theme extraction with a heuristic fallback.

Per week: a cache hit returns immediately; a miss sends one completion
request built from a small representative sample of entries. Any failure on
that path (configuration, transport, timeout, unparsable reply) falls back
to the heuristic term ranking so a digest can always be produced.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import Sequence
from typing import Any, Literal

from pydantic import BaseModel

from lightnote.cache import ThemeCache
from lightnote.errors import LLMError, ParseError, RunReport
from lightnote.llm import Completer
from lightnote.models import QUOTE_CLIP, JournalEntry, ThemeEvidence, ThemeSet
from lightnote.prompts import get_theme_prompt
from lightnote.rollup import rollup_checksum
from lightnote.terms import TermRanking, top_terms

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 18
EXTREMES_PER_SIDE = 4
SNIPPET_CLIP = 280

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_QUOTE_FIXES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})

ThemeSource = Literal["llm", "cache", "heuristic"]


class ThemeResult(BaseModel):
    themes: ThemeSet
    source: ThemeSource


def clip(text: str, limit: int) -> str:
    """Collapse whitespace and cut to ``limit`` chars with an ellipsis."""
    flat = " ".join((text or "").split())
    return flat[:limit] + "…" if len(flat) > limit else flat


def sample_entries_for_themes(
    entries: Sequence[JournalEntry], max_items: int = SAMPLE_SIZE
) -> list[JournalEntry]:
    """Pick the mood extremes plus the most recent remaining entries.

    The 4 lowest- and 4 highest-scoring entries (unscored count as 0) come
    first, then the newest entries not already picked, up to ``max_items``.
    """
    by_mood = sorted(entries, key=lambda e: e.score if e.score is not None else 0.0)
    lows = by_mood[:EXTREMES_PER_SIDE]
    low_ids = {e.id for e in lows}
    highs = [e for e in by_mood[-EXTREMES_PER_SIDE:] if e.id not in low_ids]
    picked_ids = low_ids | {e.id for e in highs}

    rest = sorted(
        (e for e in entries if e.id not in picked_ids),
        key=lambda e: e.created_at,
        reverse=True,
    )[: max(0, max_items - len(lows) - len(highs))]

    return [*lows, *highs, *rest][:max_items]


def render_sample(entries: Sequence[JournalEntry]) -> str:
    return "\n".join(
        f"- [{e.created_at.date().isoformat()}] {clip(e.text, SNIPPET_CLIP)}"
        for e in entries
    )


def parse_json_loose(text: str) -> dict[str, Any]:
    """Parse a JSON object out of a model reply.

    Uses the largest fenced code block when there is one, otherwise the whole
    reply. If that fails, retries once after dropping trailing commas and
    straightening curly quotes.

    Raises:
        ParseError: If neither attempt yields a JSON object.
    """
    blocks = _FENCE_RE.findall(text or "")
    raw = max(blocks, key=len) if blocks else (text or "")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        repaired = _TRAILING_COMMA_RE.sub(r"\1", raw).translate(_QUOTE_FIXES)
        try:
            data = json.loads(repaired)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Theme reply is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ParseError(f"Theme reply is JSON but not an object ({type(data).__name__})")
    return data


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def coerce_theme_set(data: dict[str, Any]) -> ThemeSet:
    """Keep only well-typed fields; missing fields become empty lists."""
    evidence: list[ThemeEvidence] = []
    raw_evidence = data.get("evidence")
    if isinstance(raw_evidence, list):
        for item in raw_evidence:
            if not isinstance(item, dict) or not isinstance(item.get("theme"), str):
                continue
            quotes = [clip(q, QUOTE_CLIP) for q in _strings(item.get("quotes"))]
            evidence.append(ThemeEvidence(theme=item["theme"].strip(), quotes=quotes))

    return ThemeSet(
        words=_strings(data.get("words")),
        phrases=_strings(data.get("phrases")),
        entities=_strings(data.get("entities")),
        evidence=evidence,
    )


def heuristic_theme_set(ranking: TermRanking) -> ThemeSet:
    """Wrap a term ranking as a ThemeSet with no entities or evidence."""
    return ThemeSet(words=ranking.word_terms(), phrases=ranking.phrase_terms())


class ThemeExtractor:
    """Extracts and caches themes per week.

    Concurrent calls for the same week share one outstanding request rather
    than issuing duplicates.
    """

    def __init__(
        self,
        client: Completer | None,
        cache: ThemeCache,
        *,
        sample_size: int = SAMPLE_SIZE,
    ) -> None:
        self._client = client
        self._cache = cache
        self._sample_size = sample_size
        self._inflight: dict[str, asyncio.Task[ThemeResult]] = {}

    async def extract(
        self,
        week_key: str,
        entries: Sequence[JournalEntry],
        report: RunReport | None = None,
    ) -> ThemeSet:
        result = await self.extract_detailed(week_key, entries, report)
        return result.themes

    async def extract_detailed(
        self,
        week_key: str,
        entries: Sequence[JournalEntry],
        report: RunReport | None = None,
    ) -> ThemeResult:
        task = self._inflight.get(week_key)
        if task is None:
            task = asyncio.ensure_future(self._extract(week_key, list(entries), report))
            self._inflight[week_key] = task
            task.add_done_callback(lambda done: self._forget(week_key, done))
        else:
            logger.debug("Joining in-flight theme request for %s", week_key)
        return await asyncio.shield(task)

    def _forget(self, week_key: str, task: asyncio.Task[ThemeResult]) -> None:
        if self._inflight.get(week_key) is task:
            del self._inflight[week_key]

    def is_pending(self, week_key: str) -> bool:
        return week_key in self._inflight

    async def _extract(
        self,
        week_key: str,
        entries: list[JournalEntry],
        report: RunReport | None,
    ) -> ThemeResult:
        checksum = rollup_checksum(entries)
        cached = self._cache.get(week_key, checksum)
        if cached is not None:
            logger.debug("Theme cache hit for %s", week_key)
            return ThemeResult(themes=cached, source="cache")

        if not entries:
            return ThemeResult(themes=ThemeSet(), source="heuristic")
        if self._client is None:
            return ThemeResult(
                themes=heuristic_theme_set(top_terms(entries, 8)),
                source="heuristic",
            )

        try:
            themes = await self._ask_llm(self._client, entries)
        except LLMError as exc:
            logger.warning("Theme extraction for %s fell back to heuristic: %s", week_key, exc)
            if report is not None:
                report.add_error(
                    "themes",
                    str(exc),
                    source=week_key,
                    error_type=type(exc).__name__,
                )
            return ThemeResult(
                themes=heuristic_theme_set(top_terms(entries, 8)),
                source="heuristic",
            )

        self._cache.put(week_key, themes, checksum)
        return ThemeResult(themes=themes, source="llm")

    async def _ask_llm(self, client: Completer, entries: list[JournalEntry]) -> ThemeSet:
        sample = sample_entries_for_themes(entries, self._sample_size)
        prompt = get_theme_prompt(render_sample(sample))
        reply = await client.complete(prompt)
        return coerce_theme_set(parse_json_loose(reply))
