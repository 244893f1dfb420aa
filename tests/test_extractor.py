"""Tests for the problem page extractor."""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup
from pages import NO_DESCRIPTION_HTML, PROBLEM_HTML, page

from problemfetch.core.errors import ParseError
from problemfetch.services.extractor import (
    absolutize_images,
    extract_problem,
    extract_samples,
)


def _samples(body: str):
    return extract_samples(BeautifulSoup(page(body), "html.parser"))


class TestExtractProblem:
    """Full-page extraction."""

    def test_title_is_plain_text(self):
        """The heading is returned as text, not markup."""
        doc = extract_problem(PROBLEM_HTML)
        assert doc.title == "A+B"

    def test_markup_fields(self):
        """Sections are returned as inner markup."""
        doc = extract_problem(PROBLEM_HTML)
        assert doc.input == "<p>첫째 줄에 A와 B가 주어진다.</p>"
        assert doc.output == "<p>첫째 줄에 A+B를 출력한다.</p>"
        assert doc.hint == "<p>Use 64-bit integers if you like.</p>"
        assert doc.info.startswith("<table>")
        assert '<a href="/user/baekjoon">baekjoon</a>' in doc.source

    def test_tabs_stripped_from_main_sections(self):
        """Description, input and output lose literal tabs."""
        doc = extract_problem(PROBLEM_HTML)
        assert "\t" not in doc.description
        assert "\t" not in doc.input
        assert "\t" not in doc.output

    def test_tabs_kept_elsewhere(self):
        """Other sections are stored as-is."""
        doc = extract_problem(PROBLEM_HTML)
        assert doc.limit == "\t<p>0 &lt; A, B &lt; 10</p>"

    def test_samples(self):
        """Sample pairs and explanations in page order."""
        doc = extract_problem(PROBLEM_HTML)
        assert doc.sample_inputs == ("1 2\n", "3 4\n")
        assert doc.sample_outputs == ("3\n", "7\n")
        assert doc.sample_explains == ("<p>1 + 2 = 3</p>",)

    def test_relative_image_made_absolute(self):
        """Relative image sources resolve against the origin."""
        doc = extract_problem(PROBLEM_HTML)
        assert 'src="https://www.acmicpc.net/upload/images/plus.png"' in doc.description

    def test_absolute_image_untouched(self):
        """Images that already carry a scheme are left alone."""
        doc = extract_problem(PROBLEM_HTML)
        assert 'src="https://cdn.example.com/x.png"' in doc.description

    def test_custom_base_url(self):
        """The base URL is configurable."""
        doc = extract_problem(PROBLEM_HTML, base_url="https://mirror.example/")
        assert 'src="https://mirror.example/upload/images/plus.png"' in doc.description

    def test_missing_description_raises(self):
        """The description block is required."""
        with pytest.raises(ParseError, match="problem_description"):
            extract_problem(NO_DESCRIPTION_HTML)

    def test_optional_sections_absent(self):
        """Missing optional sections are None, not empty strings."""
        doc = extract_problem(page(""))
        assert doc.description == "<p>D</p>"
        assert doc.info is None
        assert doc.input is None
        assert doc.output is None
        assert doc.limit is None
        assert doc.hint is None
        assert doc.source is None
        assert doc.sample_inputs == ()

    def test_empty_section_is_present(self):
        """An existing but empty element yields an empty string."""
        doc = extract_problem(page('<div id="problem_hint"></div>'))
        assert doc.hint == ""

    def test_missing_title_is_empty(self):
        """Without a heading element the title is empty."""
        doc = extract_problem('<div id="problem_description">x</div>')
        assert doc.title == ""
        assert doc.description == "x"

    def test_non_text_input_raises(self):
        """Undecoded bytes are rejected."""
        with pytest.raises(ParseError, match="bytes"):
            extract_problem(PROBLEM_HTML.encode("utf-8"))  # type: ignore[arg-type]

    def test_same_input_same_output(self):
        """Extraction is a pure function of its input."""
        assert extract_problem(PROBLEM_HTML) == extract_problem(PROBLEM_HTML)


class TestExtractSamples:
    """Sample enumeration rules."""

    def test_stops_at_first_gap(self):
        """Indices after the first missing pair are never read."""
        inputs, outputs, _ = _samples(
            '<pre id="sample-input-1">a</pre><pre id="sample-output-1">b</pre>'
            '<pre id="sample-input-3">c</pre><pre id="sample-output-3">d</pre>'
        )
        assert inputs == ["a"]
        assert outputs == ["b"]

    def test_input_without_output_ends_enumeration(self):
        """A lone input block is not a sample."""
        inputs, outputs, _ = _samples('<pre id="sample-input-1">a</pre>')
        assert inputs == []
        assert outputs == []

    def test_explains_are_sparse(self):
        """Explanations are appended only where present."""
        inputs, _, explains = _samples(
            '<pre id="sample-input-1">a</pre><pre id="sample-output-1">b</pre>'
            '<pre id="sample-input-2">c</pre><pre id="sample-output-2">d</pre>'
            '<div id="sample_explain_2">why</div>'
        )
        assert len(inputs) == 2
        assert explains == ["why"]

    def test_hyphenated_explain_id(self):
        """The hyphenated explain id is accepted as a fallback."""
        _, _, explains = _samples(
            '<pre id="sample-input-1">a</pre><pre id="sample-output-1">b</pre>'
            '<div id="sample-explain-1">why</div>'
        )
        assert explains == ["why"]

    def test_explain_beyond_pairs_ignored(self):
        """An explanation without its sample pair is not collected."""
        _, _, explains = _samples('<div id="sample_explain_1">orphan</div>')
        assert explains == []

    def test_empty_sample_input_stops_collection(self):
        """An empty input block ends collection like a missing one."""
        inputs, outputs, explains = _samples(
            '<pre id="sample-input-1"></pre>'
            '<pre id="sample-output-1">Hello World!</pre>'
            '<div id="sample_explain_1"></div>'
            '<pre id="sample-input-2">a</pre><pre id="sample-output-2">b</pre>'
        )
        assert inputs == []
        assert outputs == []
        assert explains == []

    def test_empty_sample_output_stops_collection(self):
        """An empty output block after a valid pair ends collection."""
        inputs, outputs, _ = _samples(
            '<pre id="sample-input-1">a</pre><pre id="sample-output-1">b</pre>'
            '<pre id="sample-input-2">c</pre><pre id="sample-output-2"></pre>'
        )
        assert inputs == ["a"]
        assert outputs == ["b"]

    def test_empty_explain_not_collected(self):
        """An explain block without markup is skipped."""
        inputs, _, explains = _samples(
            '<pre id="sample-input-1">a</pre><pre id="sample-output-1">b</pre>'
            '<div id="sample_explain_1"></div>'
        )
        assert inputs == ["a"]
        assert explains == []


class TestAbsolutizeImages:
    """In-place image source rewriting."""

    @pytest.mark.parametrize(
        ("src", "expected"),
        [
            ("/upload/a.png", "https://www.acmicpc.net/upload/a.png"),
            ("upload/a.png", "https://www.acmicpc.net/upload/a.png"),
            ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
            ("http://cdn.example.com/a.png", "http://cdn.example.com/a.png"),
            ("data:image/png;base64,AAAA", "data:image/png;base64,AAAA"),
        ],
    )
    def test_rewrites(self, src, expected):
        """Relative sources are joined; scheme-bearing ones kept."""
        soup = BeautifulSoup(f'<img src="{src}">', "html.parser")
        absolutize_images(soup, "https://www.acmicpc.net")
        assert soup.img["src"] == expected

    def test_returns_rewrite_count(self):
        """Only rewritten images are counted."""
        soup = BeautifulSoup(
            '<img src="/a.png"><img src="https://x/b.png"><img src="c.png"><img>',
            "html.parser",
        )
        assert absolutize_images(soup, "https://www.acmicpc.net/") == 2

    def test_empty_src_untouched(self):
        """An empty source stays empty."""
        soup = BeautifulSoup('<img src="">', "html.parser")
        assert absolutize_images(soup, "https://www.acmicpc.net") == 0
        assert soup.img["src"] == ""
