"""
Heading lookup by approximate text.

Scoring lives behind HeadingScorer so callers can swap in a stricter or
looser matcher; find_best_heading only ranks candidates and applies the
threshold.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple
import logging
import re

from plan_editor.adapters.host import ParagraphInfo
from plan_editor.rules.load_rules import PlanRules, default_rules

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"\w+")


def normalize(text: str) -> str:
    return (text or "").strip().lower()


class HeadingScorer(ABC):
    @abstractmethod
    def score(self, search: str, heading: str) -> float:
        """Similarity in [0, 1] between the requested text and a heading's text."""


class OverlapHeadingScorer(HeadingScorer):
    """Exact match, then containment length ratio, then token overlap.

    Search-in-heading containment scores the plain length ratio;
    heading-in-search containment is weighted by 0.5, and token overlap by 0.3.
    """

    containment_weight = 0.5
    overlap_weight = 0.3

    def score(self, search: str, heading: str) -> float:
        s, h = normalize(search), normalize(heading)
        if not s or not h:
            return 0.0
        if s == h:
            return 1.0
        if s in h:
            return len(s) / len(h)
        if h in s:
            return (len(h) / len(s)) * self.containment_weight
        tokens = _TOKEN.findall(s)
        if not tokens:
            return 0.0
        heading_tokens = set(_TOKEN.findall(h))
        hits = sum(1 for t in tokens if t in heading_tokens)
        return (hits / len(tokens)) * self.overlap_weight


def heading_paragraphs(paragraphs: Iterable[ParagraphInfo], rules: Optional[PlanRules] = None) -> List[ParagraphInfo]:
    rules = rules or default_rules()
    return [p for p in paragraphs if rules.heading_level(p.style) is not None]


def heading_text_matches(heading: str, anchor: str) -> bool:
    """Loose anchor test: equal, or either text contains the other. Case and outer whitespace ignored."""
    h, a = normalize(heading), normalize(anchor)
    if not h or not a:
        return False
    return h == a or a in h or h in a


def find_best_heading(
    paragraphs: Iterable[ParagraphInfo],
    text: str,
    rules: Optional[PlanRules] = None,
    scorer: Optional[HeadingScorer] = None,
) -> Optional[Tuple[ParagraphInfo, float]]:
    """Highest scoring heading above the threshold, or None. Ties keep document order."""
    rules = rules or default_rules()
    scorer = scorer or OverlapHeadingScorer()
    best: Optional[ParagraphInfo] = None
    best_score = 0.0
    for info in heading_paragraphs(paragraphs, rules):
        score = scorer.score(text, info.text)
        if score == 1.0:
            return info, score
        if score > best_score:
            best, best_score = info, score
    if best is None or best_score <= rules.heading_match_threshold:
        logger.debug(f"No heading scored above {rules.heading_match_threshold} for {text!r}")
        return None
    logger.debug(f"Heading {best.text!r} matched {text!r} with score {best_score:.3f}")
    return best, best_score
