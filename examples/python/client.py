"""
Problem Fetch API: Python client example.

Demonstrates:
  1. Fetch one problem and print its sections.
  2. Fetch it again (served from the problem cache).
  3. Handle a problem that does not exist.

Requirements:
  pip install requests        # or: pip install -e ".[examples]"

Usage:
  python examples/python/client.py [problem_id ...]
"""

from __future__ import annotations

import sys
import time
from typing import Any

import requests

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

API_BASE = "http://localhost:8000/api/v1"
REQUEST_TIMEOUT = 60  # a cold fetch may retry with cooldowns


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def get_problem(problem_id: str) -> dict[str, Any]:
    """GET /problems/{problem_id} and return the response dict.

    Args:
        problem_id: Problem identifier, e.g. ``"1000"``.

    Returns:
        The extracted problem document.

    Raises:
        requests.HTTPError: On non-2xx responses.  The body of
            an error response holds ``error`` and ``message``.
    """
    resp = requests.get(f"{API_BASE}/problems/{problem_id}", timeout=REQUEST_TIMEOUT)
    resp.raise_for_status()
    return resp.json()


def print_problem(problem: dict[str, Any]) -> None:
    """Print a short summary of an extracted problem."""
    print(f"  title:   {problem['title']}")
    print(f"  samples: {len(problem['sampleInputs'])}")
    for i, (given, expected) in enumerate(
        zip(problem["sampleInputs"], problem["sampleOutputs"]),
        start=1,
    ):
        print(f"  #{i} input:  {given.strip()!r}")
        print(f"  #{i} output: {expected.strip()!r}")


# ---------------------------------------------------------------------------
# Examples
# ---------------------------------------------------------------------------


def example_fetch(problem_id: str) -> None:
    """Fetch a problem twice; the second call is a cache hit."""
    print(f"\n── Problem {problem_id} ─────────────────────────────")
    started = time.monotonic()
    problem = get_problem(problem_id)
    print(f"Cold fetch took {time.monotonic() - started:.2f}s")
    print_problem(problem)

    started = time.monotonic()
    get_problem(problem_id)
    print(f"Cached fetch took {time.monotonic() - started:.2f}s")


def example_missing() -> None:
    """Ask for a problem that does not exist."""
    print("\n── Missing problem ──────────────────────────────")
    try:
        get_problem("999999999")
    except requests.HTTPError as exc:
        body = exc.response.json()
        print(f"HTTP {exc.response.status_code}: [{body['error']}] {body['message']}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    for pid in sys.argv[1:] or ["1000"]:
        example_fetch(pid)
    example_missing()
