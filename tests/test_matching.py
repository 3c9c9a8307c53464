import pytest

from plan_editor.adapters.host import ParagraphInfo
from plan_editor.matching import (
    HeadingScorer,
    OverlapHeadingScorer,
    find_best_heading,
    heading_text_matches,
)


def _headings(*texts, style="Heading 1"):
    return [ParagraphInfo(index=i, text=t, style=style, handle=object()) for i, t in enumerate(texts)]


def test_exact_match_scores_one():
    assert OverlapHeadingScorer().score("  Summary ", "summary") == 1.0


def test_search_inside_heading_is_length_ratio():
    assert OverlapHeadingScorer().score("Summary", "Executive Summary") == pytest.approx(7 / 17)


def test_heading_inside_search_is_halved():
    assert OverlapHeadingScorer().score("Executive Summary", "Summary") == pytest.approx(7 / 17 * 0.5)


def test_token_overlap_is_weighted():
    # one of two tokens present, no containment
    assert OverlapHeadingScorer().score("budget review", "Annual Budget") == pytest.approx(0.5 * 0.3)


def test_empty_heading_never_scores():
    assert OverlapHeadingScorer().score("anything", "") == 0.0
    assert not heading_text_matches("", "anything")


@pytest.mark.parametrize("order", [("Introduction", "Intro to Topics"), ("Intro to Topics", "Introduction")])
def test_best_heading_prefers_tighter_containment(order):
    found = find_best_heading(_headings(*order), "Intro")
    assert found is not None
    assert found[0].text == "Introduction"


def test_fuzzy_summary_matches_executive_summary():
    info, score = find_best_heading(_headings("Background", "Executive Summary"), "Summary")
    assert info.text == "Executive Summary"
    assert score > 0.1


def test_below_threshold_is_none():
    assert find_best_heading(_headings("Background", "Methods"), "Conclusions") is None


def test_non_headings_ignored():
    paras = _headings("Summary", style="Normal")
    assert find_best_heading(paras, "Summary") is None


def test_exact_short_circuits_document_order():
    found = find_best_heading(_headings("Summary of Results", "Summary"), "summary")
    assert found[0].text == "Summary"
    assert found[1] == 1.0


def test_scorer_is_pluggable():
    class Constant(HeadingScorer):
        def score(self, search, heading):
            return 0.5

    found = find_best_heading(_headings("A", "B"), "zzz", scorer=Constant())
    # ties keep document order
    assert found[0].text == "A"


def test_heading_text_matches_both_directions():
    assert heading_text_matches("Executive Summary", "summary")
    assert heading_text_matches("Intro", "Introduction to things")
    assert not heading_text_matches("Methods", "Results")
