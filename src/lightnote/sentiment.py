"""Async sentiment scoring for journal entries.

The default scorer is VADER. Scoring is CPU-bound, so each request runs in
the loop's executor and is matched back to its caller by a request id;
concurrent requests may finish in any order.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Executor
from typing import Protocol

from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

from lightnote.models import JournalEntry, SentimentScore

logger = logging.getLogger(__name__)

Analyzer = Callable[[str], Mapping[str, float]]


class SentimentScorer(Protocol):
    """Turns entry text into a ``{compound, pos, neg, neu}`` score."""

    async def score(self, text: str) -> SentimentScore: ...


class SentimentService:
    """Runs a synchronous analyser off the event loop.

    ``analyzer`` maps text to a dict with at least ``compound``; it defaults
    to VADER's ``polarity_scores``.
    """

    def __init__(
        self,
        analyzer: Analyzer | None = None,
        executor: Executor | None = None,
    ) -> None:
        if analyzer is None:
            analyzer = SentimentIntensityAnalyzer().polarity_scores
        self._analyze = analyzer
        self._executor = executor
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[SentimentScore]] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def score(self, text: str) -> SentimentScore:
        if not (text or "").strip():
            return SentimentScore()

        loop = asyncio.get_running_loop()
        request_id = next(self._ids)
        waiter: asyncio.Future[SentimentScore] = loop.create_future()
        self._pending[request_id] = waiter

        work = loop.run_in_executor(self._executor, self._analyze, text)
        work.add_done_callback(lambda done: self._resolve(request_id, done))
        try:
            return await waiter
        finally:
            self._pending.pop(request_id, None)

    def _resolve(self, request_id: int, done: asyncio.Future[Mapping[str, float]]) -> None:
        waiter = self._pending.pop(request_id, None)
        if waiter is None or waiter.done():
            return
        if done.cancelled():
            waiter.cancel()
            return
        exc = done.exception()
        if exc is not None:
            waiter.set_exception(exc)
            return
        raw = done.result()
        waiter.set_result(SentimentScore.model_validate(dict(raw)))


async def score_entries(
    entries: Sequence[JournalEntry], scorer: SentimentScorer
) -> list[JournalEntry]:
    """Fill in sentiment for entries that have none, keeping order.

    Entries that already carry a score are returned unchanged.
    """
    missing = [i for i, e in enumerate(entries) if e.sentiment is None]
    if not missing:
        return list(entries)

    logger.debug("Scoring %d of %d entries", len(missing), len(entries))
    scores = await asyncio.gather(*(scorer.score(entries[i].text) for i in missing))

    scored = list(entries)
    for index, sentiment in zip(missing, scores, strict=True):
        scored[index] = scored[index].with_sentiment(sentiment)
    return scored
