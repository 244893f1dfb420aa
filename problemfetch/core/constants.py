"""
Centralised constants used across the application.

Keeping magic strings in one place makes it easy to rename keys,
avoids silent typos, and keeps ``grep`` useful when debugging.
"""

from __future__ import annotations

# ── Redis key prefixes ──────────────────────────────────────────────────────
# Every Redis key written by the application starts with one of
# these prefixes so the keyspace stays organised and collisions
# are impossible.

REDIS_PREFIX_METRICS: str = "metrics:"
"""Prefix for atomic metric counters."""

REDIS_PREFIX_PROBLEM_CACHE: str = "problem_cache:"
"""Prefix for problem-document cache entries."""


# ── Problem page anchors ────────────────────────────────────────────────────
# Element ids on the remote problem page.  These are an external
# contract: extraction only works while the page keeps them.

TITLE_ID: str = "problem_title"
DESCRIPTION_ID: str = "problem_description"

MARKUP_FIELD_IDS: dict[str, str] = {
    "info": "problem-info",
    "description": DESCRIPTION_ID,
    "input": "problem_input",
    "output": "problem_output",
    "limit": "problem_limit",
    "hint": "problem_hint",
    "source": "source",
}
"""Field name → element id for every inner-markup field."""

TAB_STRIPPED_FIELDS: frozenset[str] = frozenset({"description", "input", "output"})
"""Fields whose markup has literal tab characters removed."""

SAMPLE_INPUT_ID: str = "sample-input-{index}"
SAMPLE_OUTPUT_ID: str = "sample-output-{index}"
SAMPLE_EXPLAIN_IDS: tuple[str, ...] = (
    "sample_explain_{index}",
    "sample-explain-{index}",
)
"""Explain block ids, tried in order."""


# ── User-facing failure messages ────────────────────────────────────────────

MESSAGE_NOT_FOUND: str = "Problem {identifier} does not exist."
MESSAGE_FETCH_FAILED: str = (
    "Could not download problem {identifier} after {attempts} attempt(s). "
    "Please try again later."
)
MESSAGE_PARSE_FAILED: str = (
    "Problem {identifier} was downloaded but its page could not be read."
)
MESSAGE_CANCELLED: str = "Loading problem {identifier} was cancelled."
MESSAGE_UNKNOWN: str = "Something went wrong while loading problem {identifier}."
