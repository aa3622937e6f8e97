"""Plain-text and markdown rendering for a composed Digest."""

from __future__ import annotations

from datetime import timedelta

from lightnote.digest import Digest, EntityImpact, NotableEntry
from lightnote.rollup import WeekRollup


def _signed(value: float) -> str:
    return f"{value:+.2f}"


def _date_span(digest: Digest) -> str:
    last_day = digest.date_range.end - timedelta(days=1)
    return f"{digest.date_range.start:%b %d} - {last_day:%b %d, %Y}"


def _entity_line(impact: EntityImpact) -> str:
    parts = [f"{impact.name}: {impact.mentions}×"]
    if impact.label:
        parts.append(f"({impact.label})")
    if impact.mood_avg is not None:
        mood = f"avg mood {_signed(impact.mood_avg)}"
        if impact.mood_delta is not None:
            mood += f" ({_signed(impact.mood_delta)} vs last week)"
        parts.append(mood)
    return " ".join(parts)


def _notable_line(arrow: str, notable: NotableEntry) -> str:
    """E.g. ``Notable ↓ "clip"  (id: b, score: -0.70): First sentence.``"""
    return (
        f'Notable {arrow} "{notable.clip}"  '
        f"(id: {notable.id}, score: {_signed(notable.score)}): {notable.summary}"
    )


class DigestFormatter:
    """Renders a Digest as terminal text or markdown.

    Rendering reads the digest's fields only; nothing is recomputed.
    """

    def format_text(self, digest: Digest) -> str:
        lines: list[str] = [f"Weekly Digest {digest.week_key} ({_date_span(digest)})"]
        if digest.empty or digest.rollup is None:
            lines.append(digest.message)
            return "\n".join(lines)

        lines.append(self._summary_line(digest, digest.rollup))
        if digest.when_sentence:
            lines.append(digest.when_sentence)

        label = digest.themes.label()
        if label:
            lines.append(f"Themes: {label}")
        changes: list[str] = []
        if digest.rising_themes:
            changes.append("up: " + ", ".join(t.term for t in digest.rising_themes))
        if digest.falling_themes:
            changes.append("down: " + ", ".join(t.term for t in digest.falling_themes))
        if changes:
            lines.append(f"Themes {'. Themes '.join(changes)}.")

        for impact in digest.entity_impacts:
            lines.append(f"Entity: {_entity_line(impact)}")

        if digest.low_mood_terms:
            lines.append(
                "When mood dipped, you also wrote about: "
                + ", ".join(digest.low_mood_terms)
                + "."
            )
        if digest.notable_negative:
            lines.append(_notable_line("↓", digest.notable_negative))
        if digest.notable_positive:
            lines.append(_notable_line("↑", digest.notable_positive))
        for item in digest.themes.evidence:
            if item.quotes:
                lines.append(f'• {item.theme}: "{item.quotes[0]}"')
        if digest.questions:
            lines.append(f"Questions: {' '.join(digest.questions)}")
        if digest.next_step:
            lines.append(f"Next tiny step: {digest.next_step}")
        return "\n".join(lines)

    def format_markdown(self, digest: Digest) -> str:
        lines: list[str] = [f"# Weekly Digest: {digest.week_key}", ""]
        lines.append(f"*{_date_span(digest)}*")
        lines.append("")
        if digest.empty or digest.rollup is None:
            lines.append(digest.message)
            lines.append("")
            return "\n".join(lines)

        lines.append(self._summary_line(digest, digest.rollup))
        if digest.when_sentence:
            lines.append("")
            lines.append(digest.when_sentence)
        lines.append("")

        # Themes
        lines.append("## Themes")
        lines.append("")
        if digest.themes.words:
            lines.append(f"- **Words:** {', '.join(digest.themes.words)}")
        if digest.themes.phrases:
            lines.append(f"- **Phrases:** {', '.join(digest.themes.phrases)}")
        if digest.themes.entities:
            lines.append(f"- **People & places:** {', '.join(digest.themes.entities)}")
        for delta in digest.rising_themes:
            lines.append(f"- ↑ {delta.term} ({delta.delta:+d})")
        for delta in digest.falling_themes:
            lines.append(f"- ↓ {delta.term} ({delta.delta:+d})")
        lines.append("")

        if digest.themes.evidence:
            lines.append("## Evidence")
            lines.append("")
            for item in digest.themes.evidence:
                lines.append(f"- **{item.theme}**")
                for quote in item.quotes:
                    lines.append(f'  - "{quote}"')
            lines.append("")

        if digest.entity_impacts:
            lines.append("## Tracked")
            lines.append("")
            for impact in digest.entity_impacts:
                lines.append(f"- {_entity_line(impact)}")
            lines.append("")

        if digest.notable_negative or digest.notable_positive:
            lines.append("## Notable entries")
            lines.append("")
            if digest.notable_negative:
                lines.append(f"> ↓ {digest.notable_negative.clip}")
                lines.append("")
            if digest.notable_positive:
                lines.append(f"> ↑ {digest.notable_positive.clip}")
                lines.append("")

        if digest.questions or digest.next_step:
            lines.append("## Reflect")
            lines.append("")
            for question in digest.questions:
                lines.append(f"- {question}")
            if digest.next_step:
                lines.append(f"- **Next tiny step:** {digest.next_step}")
            lines.append("")

        return "\n".join(lines)

    def _summary_line(self, digest: Digest, rollup: WeekRollup) -> str:
        count = f"Entries: {rollup.count}"
        if digest.count_delta is not None:
            count += f" ({digest.count_delta:+d} vs last week)"
        if not digest.has_mood:
            return f"{count}. Mood: n/a."

        mood = f"Mood: {_signed(rollup.mood_avg)} (± {rollup.mood_vol:.2f})"
        if digest.mood_delta:
            direction = "down" if digest.mood_delta < 0 else "up"
            mood += f", {direction} {_signed(digest.mood_delta)} vs last week"
        return f"{count}. {mood}."
