"""
Problem page extractor.

Turns the HTML of a problem page into an ``ExtractedDocument``
by locating a small, fixed set of element ids.  The page
structure is an external contract: when the remote site renames
an anchor, extraction of that field stops working.

Processing order matters:

1. Parse the text with BeautifulSoup (``html.parser``).
2. Rewrite every relative ``<img src>`` to an absolute URL on
   the in-memory tree, so every fragment taken afterwards
   already carries absolute references.
3. Pull the heading as plain text and every other field as
   inner markup.  ``description`` is required; the remaining
   markup fields are optional.
4. Collect sample pairs, stopping at the first index whose
   input or output block is missing or empty.
"""

from __future__ import annotations

import logging
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from problemfetch.core.constants import (
    DESCRIPTION_ID,
    MARKUP_FIELD_IDS,
    SAMPLE_EXPLAIN_IDS,
    SAMPLE_INPUT_ID,
    SAMPLE_OUTPUT_ID,
    TAB_STRIPPED_FIELDS,
    TITLE_ID,
)
from problemfetch.core.errors import ParseError
from problemfetch.schemas.problem import ExtractedDocument

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL: str = "https://www.acmicpc.net"


def absolutize_images(soup: BeautifulSoup, base_url: str) -> int:
    """Rewrite relative ``<img src>`` values against *base_url* in place.

    Sources that already carry a scheme (``http:``, ``https:``,
    ``data:`` …) are left untouched, as are empty sources.

    Args:
        soup: Parsed document; modified in place.
        base_url: Origin used to resolve relative references.

    Returns:
        The number of rewritten image tags.
    """
    base = base_url.rstrip("/") + "/"
    rewritten = 0
    for img in soup.find_all("img", src=True):
        src = img["src"]
        if not src or urlsplit(src).scheme:
            continue
        img["src"] = urljoin(base, src)
        rewritten += 1
    return rewritten


def _find(soup: BeautifulSoup, element_id: str) -> Tag | None:
    """Return the first element with *element_id*, or ``None``."""
    found = soup.find(id=element_id)
    return found if isinstance(found, Tag) else None


def _inner_html(soup: BeautifulSoup, element_id: str) -> str | None:
    """Inner markup of the element with *element_id*, ``None`` if absent."""
    element = _find(soup, element_id)
    if element is None:
        return None
    return element.decode_contents()


def _sample_explain(soup: BeautifulSoup, index: int) -> str | None:
    """Inner markup of the first explain id that exists for *index*."""
    for pattern in SAMPLE_EXPLAIN_IDS:
        fragment = _inner_html(soup, pattern.format(index=index))
        if fragment is not None:
            return fragment
    return None


def extract_samples(
    soup: BeautifulSoup,
) -> tuple[list[str], list[str], list[str]]:
    """Collect sample inputs, outputs and explanations in page order.

    Indices start at 1.  Iteration stops at the first index where
    either the input or the output block is missing or empty; later
    indices are never inspected, even if they exist.  An
    explanation is appended only when non-empty, so the explain
    list is positional, not aligned with the pairs.

    Returns:
        ``(inputs, outputs, explains)`` with
        ``len(inputs) == len(outputs) >= len(explains)``.
    """
    inputs: list[str] = []
    outputs: list[str] = []
    explains: list[str] = []

    index = 1
    while True:
        sample_input = _inner_html(soup, SAMPLE_INPUT_ID.format(index=index))
        sample_output = _inner_html(soup, SAMPLE_OUTPUT_ID.format(index=index))
        if not sample_input or not sample_output:
            break

        inputs.append(sample_input)
        outputs.append(sample_output)
        explain = _sample_explain(soup, index)
        if explain:
            explains.append(explain)
        index += 1

    return inputs, outputs, explains


def extract_problem(
    raw_text: str,
    *,
    base_url: str = DEFAULT_BASE_URL,
) -> ExtractedDocument:
    """Extract the structured problem document from page HTML.

    Args:
        raw_text: Decoded HTML of the problem page.
        base_url: Origin for resolving relative image sources.

    Returns:
        The fully populated ``ExtractedDocument``.

    Raises:
        ParseError: If the text cannot be parsed or the required
            description block is missing.
    """
    if not isinstance(raw_text, str):
        raise ParseError(
            f"Expected decoded HTML text, got {type(raw_text).__name__}"
        )

    try:
        soup = BeautifulSoup(raw_text, "html.parser")
    except Exception as exc:
        raise ParseError(f"Could not parse problem HTML: {exc}") from exc

    rewritten = absolutize_images(soup, base_url)

    title_element = _find(soup, TITLE_ID)
    title = title_element.get_text() if title_element is not None else ""

    fields: dict[str, str | None] = {
        name: _inner_html(soup, element_id)
        for name, element_id in MARKUP_FIELD_IDS.items()
    }
    if fields["description"] is None:
        raise ParseError(f"Required element #{DESCRIPTION_ID} is missing")

    for name in TAB_STRIPPED_FIELDS:
        fragment = fields[name]
        if fragment is not None:
            fields[name] = fragment.replace("\t", "")

    inputs, outputs, explains = extract_samples(soup)

    logger.debug(
        "Extracted '%s': %d sample(s), %d explanation(s), %d image(s) rewritten",
        title,
        len(inputs),
        len(explains),
        rewritten,
    )

    return ExtractedDocument(
        title=title,
        sample_inputs=tuple(inputs),
        sample_outputs=tuple(outputs),
        sample_explains=tuple(explains),
        **fields,
    )
