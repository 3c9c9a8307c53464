"""
Anchor resolution.

An anchor is a symbolic name for a place in the document. Resolution tries
four strategies in a fixed order and stops at the first hit:

1. named marker whose tag equals the anchor
2. bookmark whose name equals the anchor
3. first heading (document order) whose text equals, contains or is
   contained by the anchor, ignoring case
4. the default anchor ("main"): the current selection, else the whole body
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import re

from plan_editor.adapters.host import BlockRange, DocumentHost, Handle, HostError, ParagraphInfo
from plan_editor.errors import AnchorNotFoundError, ExecutionError, HostUnavailableError
from plan_editor.matching import heading_paragraphs, heading_text_matches
from plan_editor.rules.load_rules import PlanRules, default_rules

logger = logging.getLogger(__name__)

STRATEGIES = ("marker", "bookmark", "heading", "default")


def ensure_host(host: Optional[DocumentHost]) -> DocumentHost:
    if host is None or not host.available:
        raise HostUnavailableError()
    return host


@dataclass
class AnchorResolution:
    anchor: str
    strategy: str
    range: BlockRange
    heading: Optional[ParagraphInfo] = None   # set by the heading strategy


@dataclass
class AnchorResolver:
    host: DocumentHost
    rules: PlanRules = field(default_factory=default_rules)

    def _by_marker(self, anchor: str) -> Optional[AnchorResolution]:
        for marker in self.host.markers():
            if marker.tag == anchor:
                return AnchorResolution(anchor, "marker", self.host.marker_range(marker.handle))
        return None

    def _by_bookmark(self, anchor: str) -> Optional[AnchorResolution]:
        for bookmark in self.host.bookmarks():
            if bookmark.name == anchor:
                return AnchorResolution(anchor, "bookmark", self.host.bookmark_range(bookmark.handle))
        return None

    def _by_heading(self, anchor: str) -> Optional[AnchorResolution]:
        for info in heading_paragraphs(self.host.paragraphs(), self.rules):
            if heading_text_matches(info.text, anchor):
                return AnchorResolution(anchor, "heading", BlockRange((info.handle,)), heading=info)
        return None

    def _by_default(self, anchor: str) -> Optional[AnchorResolution]:
        if anchor != self.rules.default_anchor:
            return None
        selection = self.host.selection()
        if selection is not None and not selection.is_empty:
            return AnchorResolution(anchor, "default", selection)
        return AnchorResolution(anchor, "default", self.host.body_range())

    def _strategies(self) -> List[Tuple[str, Callable[[str], Optional[AnchorResolution]]]]:
        return [
            ("marker", self._by_marker),
            ("bookmark", self._by_bookmark),
            ("heading", self._by_heading),
            ("default", self._by_default),
        ]

    def resolve_with_strategy(self, anchor: str) -> AnchorResolution:
        ensure_host(self.host)
        failures: Dict[str, str] = {}
        for name, strategy in self._strategies():
            try:
                found = strategy(anchor)
            except HostError as e:
                logger.warning(f"Anchor strategy {name} failed for {anchor!r}: {e}")
                failures[name] = str(e)
                continue
            if found is not None:
                logger.debug(f"Anchor {anchor!r} resolved by {name} ({len(found.range)} paragraph(s))")
                return found

        details: Dict[str, Any] = {"tried": list(STRATEGIES)}
        if failures:
            details["strategy_errors"] = failures
        raise AnchorNotFoundError(
            f'Could not resolve anchor "{anchor}". Tried content controls, bookmarks, heading text, and default location.',
            anchor,
            details,
        )

    def resolve(self, anchor: str) -> BlockRange:
        return self.resolve_with_strategy(anchor).range


def resolve_anchor(host: DocumentHost, anchor: str, rules: Optional[PlanRules] = None) -> BlockRange:
    return AnchorResolver(host, rules or default_rules()).resolve(anchor)


# --- selection markers --------------------------------------------------

def _selection_number(tag: str, prefix: str) -> Optional[int]:
    m = re.fullmatch(re.escape(prefix) + r"(\d+)", tag or "")
    return int(m.group(1)) if m else None


def mark_selection(host: DocumentHost, appearance: str = "hidden", rules: Optional[PlanRules] = None) -> str:
    """Wrap the current selection in a named marker and return its tag.

    Tags are ``<prefix><n>`` with n one above the highest existing marker, so
    the most recent selection is always the one with the largest number.
    """
    rules = rules or default_rules()
    ensure_host(host)
    selection = host.selection()
    if selection is None or selection.is_empty:
        raise ExecutionError("No selection to mark")
    numbers = [_selection_number(m.tag, rules.selection_tag_prefix) for m in host.markers()]
    n = max((x for x in numbers if x is not None), default=0) + 1
    tag = f"{rules.selection_tag_prefix}{n}"
    marker = host.wrap_in_marker(selection, tag)
    host.set_marker_appearance(marker, appearance)
    try:
        host.flush()
    except HostError as e:
        raise ExecutionError(f"Failed to mark selection: {e}", e) from e
    logger.info(f"Marked selection of {len(selection)} paragraph(s) as {tag}")
    return tag


def latest_selection_marker(host: DocumentHost, rules: Optional[PlanRules] = None) -> Optional[BlockRange]:
    rules = rules or default_rules()
    best: Optional[Handle] = None
    best_n = 0
    for marker in host.markers():
        n = _selection_number(marker.tag, rules.selection_tag_prefix)
        if n is not None and n > best_n:
            best, best_n = marker.handle, n
    if best is None:
        return None
    return host.marker_range(best)


def section_range(host: DocumentHost, heading: Handle, rules: Optional[PlanRules] = None) -> BlockRange:
    """Heading paragraph through the last paragraph before the next heading at the same or a higher level."""
    rules = rules or default_rules()
    paragraphs = host.paragraphs()
    start = host.index_of(heading)
    level = rules.heading_level(paragraphs[start].style)
    if level is None:
        return BlockRange((heading,))
    end = start
    for info in paragraphs[start + 1:]:
        other = rules.heading_level(info.style)
        if other is not None and other <= level:
            break
        end = info.index
    return host.expand_range(BlockRange((heading,)), BlockRange((paragraphs[end].handle,)))
