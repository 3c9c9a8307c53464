"""
Document Host capability surface.

The engines never touch a document object model directly. They talk to a
DocumentHost through two phases:

- query methods return plain values (ParagraphInfo, MarkerInfo, BlockRange...)
  describing the document as of the last flush;
- mutate methods only queue a PendingEffect and hand back whatever handle
  later calls need for chaining (e.g. the paragraph just inserted).

flush() is the single synchronization point: queued effects are applied in
order, and the first one that fails stops the flush. Effects applied before
the failure stay applied; there is no rollback.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, List, Literal, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)

Handle = Any
Alignment = Literal["left", "center", "right", "justify"]
RelativeLocation = Literal["before", "after"]
BodyLocation = Literal["start", "end"]


class HostError(Exception):
    """Raised by a host when a query or a flushed effect fails."""


@dataclass(frozen=True)
class ParagraphInfo:
    index: int
    text: str
    style: str
    handle: Handle = field(compare=False, repr=False)


@dataclass(frozen=True)
class MarkerInfo:
    tag: str
    appearance: Optional[str]
    handle: Handle = field(compare=False, repr=False)


@dataclass(frozen=True)
class BookmarkInfo:
    name: str
    handle: Handle = field(compare=False, repr=False)


@dataclass(frozen=True)
class BlockRange:
    """Contiguous run of paragraphs, in document order."""
    paragraphs: Tuple[Handle, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.paragraphs) == 0

    @property
    def first(self) -> Handle:
        return self.paragraphs[0]

    @property
    def last(self) -> Handle:
        return self.paragraphs[-1]

    def __len__(self) -> int:
        return len(self.paragraphs)


@dataclass(frozen=True)
class TextMatch:
    paragraph: Handle = field(compare=False, repr=False)
    start: int = 0
    end: int = 0
    text: str = ""


@dataclass
class PendingEffect:
    description: str
    apply: Callable[[], None] = field(repr=False)
    applied: bool = False


class DocumentHost(ABC):
    """Abstract document host. Subclasses implement the query and effect primitives."""

    def __init__(self) -> None:
        self._pending: List[PendingEffect] = []
        self.flush_count = 0

    # --- availability -------------------------------------------------

    @property
    def available(self) -> bool:
        return True

    # --- query phase --------------------------------------------------

    @abstractmethod
    def paragraphs(self) -> List[ParagraphInfo]:
        ...

    @abstractmethod
    def markers(self) -> List[MarkerInfo]:
        ...

    @abstractmethod
    def marker_range(self, marker: Handle) -> BlockRange:
        ...

    @abstractmethod
    def bookmarks(self) -> List[BookmarkInfo]:
        ...

    @abstractmethod
    def bookmark_range(self, bookmark: Handle) -> BlockRange:
        ...

    @abstractmethod
    def selection(self) -> Optional[BlockRange]:
        ...

    @abstractmethod
    def search(
        self,
        text: str,
        match_case: bool = False,
        match_whole_word: bool = False,
        match_wildcards: bool = False,
    ) -> List[TextMatch]:
        ...

    def body_range(self) -> BlockRange:
        return BlockRange(tuple(p.handle for p in self.paragraphs()))

    def range_text(self, rng: BlockRange) -> str:
        texts = {id(p.handle): p.text for p in self.paragraphs()}
        return "\n".join(texts.get(id(h), "") for h in rng.paragraphs)

    def index_of(self, handle: Handle) -> int:
        for info in self.paragraphs():
            if info.handle is handle:
                return info.index
        raise HostError("Paragraph is no longer part of the document")

    def expand_range(self, start: BlockRange, end: BlockRange) -> BlockRange:
        """Range from the first paragraph of ``start`` through the last of ``end``."""
        if start.is_empty:
            return end
        if end.is_empty:
            return start
        handles = [p.handle for p in self.paragraphs()]
        i = self.index_of(start.first)
        j = self.index_of(end.last)
        if j < i:
            i, j = j, i
        return BlockRange(tuple(handles[i:j + 1]))

    # --- mutate phase -------------------------------------------------

    @property
    def pending(self) -> Sequence[PendingEffect]:
        return tuple(self._pending)

    def _queue(self, description: str, fn: Callable[[], None]) -> PendingEffect:
        effect = PendingEffect(description=description, apply=fn)
        self._pending.append(effect)
        return effect

    @abstractmethod
    def insert_paragraph(self, text: str, relative_to: Handle, location: RelativeLocation) -> Handle:
        ...

    @abstractmethod
    def insert_paragraph_in_body(self, text: str, location: BodyLocation) -> Handle:
        ...

    @abstractmethod
    def set_text(self, paragraph: Handle, text: str) -> PendingEffect:
        ...

    @abstractmethod
    def set_style(self, paragraph: Handle, style_name: str) -> PendingEffect:
        ...

    @abstractmethod
    def set_font_color(self, paragraph: Handle, rgb_hex: str) -> PendingEffect:
        ...

    @abstractmethod
    def set_bold(self, paragraph: Handle, bold: bool) -> PendingEffect:
        ...

    @abstractmethod
    def set_alignment(self, paragraph: Handle, alignment: Alignment) -> PendingEffect:
        ...

    @abstractmethod
    def replace_match(self, match: TextMatch, text: str) -> PendingEffect:
        ...

    @abstractmethod
    def clear_range(self, rng: BlockRange) -> Handle:
        """Empty the range down to one paragraph and return that paragraph.

        Bookmarks held by the range are kept around the returned paragraph.
        """

    @abstractmethod
    def clear_body(self) -> PendingEffect:
        ...

    @abstractmethod
    def delete_paragraph(self, paragraph: Handle) -> PendingEffect:
        ...

    @abstractmethod
    def wrap_in_marker(self, rng: BlockRange, tag: str) -> Handle:
        ...

    @abstractmethod
    def set_marker_tag(self, marker: Handle, tag: str) -> PendingEffect:
        ...

    @abstractmethod
    def set_marker_appearance(self, marker: Handle, appearance: str) -> PendingEffect:
        ...

    def delete_range(self, rng: BlockRange) -> List[PendingEffect]:
        return [self.delete_paragraph(h) for h in rng.paragraphs]

    def discard_pending(self) -> int:
        """Drop effects queued since the last flush. Returns how many were dropped."""
        dropped, self._pending = len(self._pending), []
        if dropped:
            logger.debug(f"Discarded {dropped} unflushed host effect(s)")
        return dropped

    def flush(self) -> int:
        """Apply queued effects in order. Returns how many were applied."""
        queue, self._pending = self._pending, []
        self.flush_count += 1
        applied = 0
        for effect in queue:
            try:
                effect.apply()
            except Exception as e:
                logger.warning(f"Host effect failed after {applied}/{len(queue)} applied: {effect.description}: {e}")
                raise HostError(f"{effect.description} failed: {e}") from e
            effect.applied = True
            applied += 1
        logger.debug(f"Flushed {applied} host effect(s)")
        return applied
