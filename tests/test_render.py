"""Tests for the grouped results HTML."""

from conftest import make_record
from sitesearch.models import SearchState
from sitesearch.search.engine import build_outcome
from sitesearch.search.render import render_outcome
from sitesearch.search.text import HIGHLIGHT_CLOSE, HIGHLIGHT_OPEN


def outcome_for(records, query="jane", static_indexed=True):
    return build_outcome(query, "", records, static_indexed=static_indexed)


def test_idle_renders_nothing():
    outcome = outcome_for([]).model_copy(update={"state": SearchState.IDLE})
    assert render_outcome(outcome) == ""


def test_empty_renders_no_results_block():
    html = render_outcome(outcome_for([]))
    assert 'id="no-results"' in html
    assert "Found" not in html


def test_summary_heading_and_highlighted_excerpt():
    html = render_outcome(outcome_for([make_record()]))

    assert "Found 1 result<" in html
    assert "Staff Directory (1)" in html
    assert f"{HIGHLIGHT_OPEN}Jane{HIGHLIGHT_CLOSE} Doe" in html
    assert "static pages not indexed" not in html


def test_not_indexed_note():
    html = render_outcome(outcome_for([make_record()], static_indexed=False))
    assert "Found 1 result" in html
    assert "(static pages not indexed)" in html


def test_source_excerpt_is_escaped():
    record = make_record(excerpt='<img src=x onerror=alert(1)> about jane')
    html = render_outcome(outcome_for([record]))

    assert "<img" not in html
    assert "onerror" not in html
    assert f"about {HIGHLIGHT_OPEN}jane{HIGHLIGHT_CLOSE}" in html

    record = make_record(excerpt="jane & co <3")
    assert "&amp; co &lt;3" in render_outcome(outcome_for([record]))


def test_text_fields_are_escaped():
    record = make_record(
        title="Jane <script>alert(1)</script>",
        url='/staff/jane" onclick="x',
        subtitle="<b>Geologist</b>",
        address="<i>Lexington</i>, KY",
        category="<Staff>",
    )
    html = render_outcome(outcome_for([record]))

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert 'onclick="x' not in html
    assert "&lt;b&gt;Geologist&lt;/b&gt;" in html
    assert "&lt;i&gt;Lexington&lt;/i&gt;, KY" in html
    assert "&lt;Staff&gt; (1)" in html


def test_image_or_icon():
    with_image = render_outcome(outcome_for([make_record(image="abc")]), asset_base_url="https://cms.test/")
    assert 'src="https://cms.test/assets/abc?width=80&amp;height=80&amp;fit=cover"' in with_image

    without = render_outcome(outcome_for([make_record()]), asset_base_url="https://cms.test")
    assert "fa-user" in without
    assert "<img" not in without
