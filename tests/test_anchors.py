import pytest

from conftest import add_marker, build_host, para_range
from plan_editor.anchors import (
    AnchorResolver,
    latest_selection_marker,
    mark_selection,
    resolve_anchor,
    section_range,
)
from plan_editor.errors import AnchorNotFoundError, ExecutionError, HostUnavailableError


def _texts(host, rng):
    return host.range_text(rng).split("\n")


def test_marker_beats_bookmark():
    host = build_host("marker text", "bookmark text")
    host.add_bookmark("X", para_range(host, 1))
    add_marker(host, "X", 0)
    rng = resolve_anchor(host, "X")
    assert _texts(host, rng) == ["marker text"]
    assert AnchorResolver(host).resolve_with_strategy("X").strategy == "marker"


def test_bookmark_range():
    host = build_host("a", "b", "c", "d")
    host.add_bookmark("middle", para_range(host, 1, 2))
    assert _texts(host, resolve_anchor(host, "middle")) == ["b", "c"]


def test_bookmark_beats_heading():
    host = build_host(("Heading 1", "Results"), "body")
    host.add_bookmark("Results", para_range(host, 1))
    assert _texts(host, resolve_anchor(host, "Results")) == ["body"]


def test_heading_first_match_wins(report_doc):
    resolution = AnchorResolver(report_doc).resolve_with_strategy("intro")
    assert resolution.strategy == "heading"
    assert resolution.heading.text == "Introduction"
    assert _texts(report_doc, resolution.range) == ["Introduction"]


def test_heading_match_is_case_insensitive_and_trimmed(report_doc):
    assert _texts(report_doc, resolve_anchor(report_doc, "  EXECUTIVE summary ")) == ["Executive Summary"]


def test_heading_strategy_skips_body_text(report_doc):
    with pytest.raises(AnchorNotFoundError):
        resolve_anchor(report_doc, "Revenue grew.")


def test_main_without_selection_is_whole_body(report_doc):
    rng = resolve_anchor(report_doc, "main")
    assert len(rng) == len(report_doc.paragraphs())


def test_main_uses_selection():
    host = build_host("a", "b", "c")
    host.select(para_range(host, 1))
    assert _texts(host, resolve_anchor(host, "main")) == ["b"]


def test_exhaustion_names_anchor(report_doc):
    with pytest.raises(AnchorNotFoundError) as exc:
        resolve_anchor(report_doc, "nowhere")
    assert exc.value.anchor == "nowhere"
    assert "nowhere" in exc.value.message
    assert exc.value.details["anchor"] == "nowhere"


def test_unavailable_host_checked_first(report_doc):
    report_doc.close()
    with pytest.raises(HostUnavailableError):
        resolve_anchor(report_doc, "main")


def test_mark_selection_numbers_tags():
    host = build_host("a", "b", "c")
    host.select(para_range(host, 0))
    assert mark_selection(host) == "selected_1"
    host.select(para_range(host, 2))
    assert mark_selection(host) == "selected_2"

    markers = {m.tag: m for m in host.markers()}
    assert markers["selected_2"].appearance == "hidden"
    assert _texts(host, latest_selection_marker(host)) == ["c"]


def test_marker_paragraphs_stay_in_document_order():
    host = build_host("a", "b", "c")
    add_marker(host, "box", 1)
    assert [p.text for p in host.paragraphs()] == ["a", "b", "c"]


def test_mark_selection_without_selection():
    host = build_host("a")
    with pytest.raises(ExecutionError):
        mark_selection(host)


def test_latest_selection_marker_none():
    assert latest_selection_marker(build_host("a")) is None


def test_section_range_stops_at_same_or_higher_level(report_doc):
    infos = report_doc.paragraphs()
    summary = infos[2].handle
    assert _texts(report_doc, section_range(report_doc, summary)) == [
        "Executive Summary", "Revenue grew.", "Costs fell.", "Outlook", "Next quarter looks stable.",
    ]
    outlook = infos[5].handle
    assert _texts(report_doc, section_range(report_doc, outlook)) == ["Outlook", "Next quarter looks stable."]


def test_section_range_runs_to_document_end(report_doc):
    appendix = report_doc.paragraphs()[7].handle
    assert _texts(report_doc, section_range(report_doc, appendix)) == ["Appendix", "Raw tables."]


def test_intro_resolves_to_introduction():
    host = build_host(("Heading 1", "Introduction"), ("Heading 1", "Intro to Topics"))
    rng = resolve_anchor(host, "Intro")
    assert _texts(host, rng) == ["Introduction"]


def test_intro_resolves_to_first_matching_heading():
    host = build_host(("Heading 1", "Intro to Topics"), ("Heading 1", "Introduction"))
    resolution = AnchorResolver(host).resolve_with_strategy("Intro")
    assert resolution.strategy == "heading"
    assert _texts(host, resolution.range) == ["Intro to Topics"]
