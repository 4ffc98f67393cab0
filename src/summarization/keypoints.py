"""Key point extraction and transcript-based fallbacks."""

from __future__ import annotations

import re

SENTENCE_SPLIT = re.compile(r"[.?!]")

MAX_KEY_POINTS = 5
FALLBACK_SUMMARY_CHARS = 500

PLACEHOLDER_SUMMARY = "No speech detected during this meeting."
PLACEHOLDER_KEY_POINTS = (
    "No audio captured",
    "Meeting contained silence or technical issues",
)


def _sentences(text: str, min_length: int) -> list[str]:
    parts = (p.strip() for p in SENTENCE_SPLIT.split(text))
    return [p for p in parts if len(p) >= min_length][:MAX_KEY_POINTS]


def extract_key_points(summary: str) -> list[str]:
    """Up to five sentences of at least five characters from a model summary."""
    return _sentences(summary, min_length=5)


def fallback_summary(transcript: str) -> str:
    """Summary used when the model gives nothing usable: the transcript head."""
    ellipsis = "..." if len(transcript) > FALLBACK_SUMMARY_CHARS else ""
    return f"Meeting discussion: {transcript[:FALLBACK_SUMMARY_CHARS]}{ellipsis}"


def fallback_key_points(transcript: str) -> list[str]:
    """Up to five transcript sentences longer than ten characters."""
    return _sentences(transcript, min_length=11)
