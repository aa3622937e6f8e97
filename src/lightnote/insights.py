"""Saved insights: rendered digests and AI reflections kept per week."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from lightnote.digest import NO_ENTRIES_MESSAGE
from lightnote.llm import Completer
from lightnote.prompts import get_reflection_prompt
from lightnote.store import BlobStore

logger = logging.getLogger(__name__)

INSIGHTS_KEY = "insights.v1"

InsightScope = Literal["week", "week-ai"]


class Insight(BaseModel):
    """A saved digest or reflection."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    scope: InsightScope = "week"
    week: str
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))


class InsightStore:
    """Insights kept newest first in a single blob."""

    def __init__(self, store: BlobStore, key: str = INSIGHTS_KEY) -> None:
        self._store = store
        self._key = key

    def list(self) -> list[Insight]:
        raw = self._store.get(self._key)
        if raw is None:
            return []
        items: list[Insight] = []
        for item in raw.get("items", []):
            try:
                items.append(Insight.model_validate(item))
            except ValidationError:
                logger.warning("Skipping corrupt insight record in %s", self._key)
        return items

    def _write(self, items: list[Insight]) -> None:
        self._store.put(self._key, {"items": [i.model_dump(mode="json") for i in items]})

    def save(self, week: str, text: str, scope: InsightScope = "week") -> Insight | None:
        """Save a rendered digest or reflection.

        Returns:
            The new insight, or None if the text is empty, is the "no entries"
            placeholder, or exactly duplicates an insight already saved for
            the same scope and week.
        """
        text = text.strip()
        if not text or text.startswith("No entries") or text.endswith(NO_ENTRIES_MESSAGE):
            logger.debug("Nothing to save for %s", week)
            return None

        items = self.list()
        if any(i.scope == scope and i.week == week and i.text == text for i in items):
            logger.info("Insight for %s already saved", week)
            return None

        insight = Insight(scope=scope, week=week, text=text)
        self._write([insight, *items])
        return insight

    def delete(self, insight_id: str) -> bool:
        items = self.list()
        kept = [i for i in items if i.id != insight_id]
        if len(kept) == len(items):
            return False
        self._write(kept)
        return True

    def clear(self) -> int:
        count = len(self.list())
        self._write([])
        return count


async def reflect_on_digest(client: Completer, digest_text: str) -> str:
    """Ask the completion service to reflect on a rendered digest.

    Raises:
        LLMError: Any completion failure is passed to the caller.
    """
    reply = await client.complete(get_reflection_prompt(digest_text))
    return reply.strip()
