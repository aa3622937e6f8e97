"""Prompt templates for theme extraction and digest reflection."""

THEME_EXTRACTION_PROMPT = """\
You are an analyst extracting weekly THEMES from journal snippets.
Return STRICT JSON ONLY in this schema:

{{
  "words": ["<top single words, 3-8>"],
  "phrases": ["<top bigrams/trigrams, 2-6>"],
  "entities": ["<names or recurring proper nouns, 0-6>"],
  "evidence": [{{"theme": "<short label>", "quotes": ["<short quote>"]}}]
}}

Guidelines:
- Prefer DISTINCTIVE themes for THIS WEEK (avoid generic words like "time", "know", "feel", "just", "want").
- Create short human labels if needed ("boundary issues", "late nights", "relationship conflict").
- Evidence quotes must be SHORT (<=120 chars), trimmed, copied verbatim with no rephrasing.

WEEK SNIPPETS:
{snippets}"""

REFLECTION_PROMPT = """\
You are my reflective coach. Here is my weekly digest.
Please keep your response concise and to the point.

{digest}

Please:
1) surface 3 patterns with evidence,
2) ask one probing question, something to think about,
3) suggest one tiny next step per pattern."""


def get_theme_prompt(snippets: str) -> str:
    """Theme-extraction prompt with the sampled entries interpolated."""
    return THEME_EXTRACTION_PROMPT.format(snippets=snippets).strip()


def get_reflection_prompt(digest_text: str) -> str:
    return REFLECTION_PROMPT.format(digest=digest_text.strip())
