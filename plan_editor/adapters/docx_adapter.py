from __future__ import annotations
from typing import List, Optional
import re

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import RGBColor
from docx.text.paragraph import Paragraph

from plan_editor.adapters.host import (
    Alignment,
    BlockRange,
    BodyLocation,
    BookmarkInfo,
    DocumentHost,
    Handle,
    HostError,
    MarkerInfo,
    ParagraphInfo,
    PendingEffect,
    RelativeLocation,
    TextMatch,
)

W15_NS = "http://schemas.microsoft.com/office/word/2012/wordml"
W15_APPEARANCE = f"{{{W15_NS}}}appearance"
W15_VAL = f"{{{W15_NS}}}val"

_ALIGNMENTS = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
    "justify": WD_ALIGN_PARAGRAPH.JUSTIFY,
}

# every paragraph in the body story: top level, content controls and table cells,
# but not text-box paragraphs nested inside another paragraph
_PARAGRAPHS_XPATH = ".//w:p[not(ancestor::w:p)]"
# w:sdt is not a registered oxml class, so its children are looked up by Clark name
_SDT_PARAGRAPHS = f"{qn('w:sdtContent')}/{qn('w:p')}"
_RANGE_MARKUP = (qn("w:bookmarkStart"), qn("w:bookmarkEnd"))


def _wildcard_pattern(text: str) -> str:
    out = []
    for ch in text:
        if ch == "?":
            out.append(".")
        elif ch == "*":
            out.append(".*?")
        else:
            out.append(re.escape(ch))
    return "".join(out)


def _splice_runs(paragraph: Paragraph, start: int, end: int, new_text: str) -> None:
    """Replace characters [start, end) of the run text, keeping the first touched run's formatting."""
    pos = 0
    inserted = False
    for run in paragraph.runs:
        text = run.text
        r_start, r_end = pos, pos + len(text)
        pos = r_end
        if r_end <= start or r_start >= end:
            continue
        lo = max(start, r_start) - r_start
        hi = min(end, r_end) - r_start
        if not inserted:
            run.text = text[:lo] + new_text + text[hi:]
            inserted = True
        else:
            run.text = text[:lo] + text[hi:]


def _range_markup(elements) -> tuple:
    """Bookmark starts and ends held by the given paragraphs, in document order."""
    starts, ends = [], []
    for el in elements:
        for node in el.iter(*_RANGE_MARKUP):
            (starts if node.tag == _RANGE_MARKUP[0] else ends).append(node)
    return starts, ends


def _remove_paragraph(p) -> None:
    parent = p.getparent()
    if parent is None:
        return
    # a table cell must keep at least one paragraph
    if parent.tag == qn("w:tc") and len(parent.findall(qn("w:p"))) == 1:
        Paragraph(p, None).clear()
        return
    parent.remove(p)


class DocxHost(DocumentHost):
    """DocumentHost over an in-memory python-docx Document.

    Named markers are block-level content controls (w:sdt) carrying a w:tag.
    Bookmarks are w:bookmarkStart/w:bookmarkEnd pairs. There is no live user
    selection in a .docx file, so callers set one with select().
    """

    def __init__(self, document=None, selection: Optional[BlockRange] = None):
        super().__init__()
        self._document = document if document is not None else Document()
        self._selection = selection

    @classmethod
    def open(cls, path: str) -> "DocxHost":
        return cls(Document(path))

    def save(self, path: str) -> None:
        if self._pending:
            raise HostError(f"{len(self._pending)} effect(s) not flushed")
        self._document.save(path)

    def close(self) -> None:
        self._document = None
        self._selection = None

    @property
    def document(self):
        return self._document

    @property
    def available(self) -> bool:
        return self._document is not None

    # --- helpers ------------------------------------------------------

    @property
    def _body(self):
        return self._document.element.body

    def _para(self, p) -> Paragraph:
        return Paragraph(p, self._document._body)

    def _run_text(self, p) -> str:
        return "".join(r.text for r in self._para(p).runs)

    def _attached(self, el) -> bool:
        body = self._body
        node = el.getparent()
        while node is not None:
            if node is body:
                return True
            node = node.getparent()
        return False

    def _paragraph_elements(self) -> list:
        return self._body.xpath(_PARAGRAPHS_XPATH)

    def _owning_paragraph(self, el, forward: bool):
        node = el
        while node is not None and node is not self._body:
            if node.tag == qn("w:p"):
                return node
            node = node.getparent()
        # marker sits between paragraphs; take the neighbour in the given direction
        sibling = el.getnext() if forward else el.getprevious()
        while sibling is not None:
            if sibling.tag == qn("w:p"):
                return sibling
            # content control or table
            inner = list(sibling.iter(qn("w:p")))
            if inner:
                return inner[0] if forward else inner[-1]
            sibling = sibling.getnext() if forward else sibling.getprevious()
        return None

    # --- query phase --------------------------------------------------

    def paragraphs(self) -> List[ParagraphInfo]:
        out: List[ParagraphInfo] = []
        for i, p in enumerate(self._paragraph_elements()):
            para = self._para(p)
            style = para.style.name if para.style is not None else ""
            out.append(ParagraphInfo(index=i, text=para.text, style=style, handle=p))
        return out

    def markers(self) -> List[MarkerInfo]:
        out: List[MarkerInfo] = []
        for sdt in self._body.findall(qn("w:sdt")):
            tag, appearance = "", None
            sdt_pr = sdt.find(qn("w:sdtPr"))
            if sdt_pr is not None:
                tag_el = sdt_pr.find(qn("w:tag"))
                if tag_el is not None:
                    tag = tag_el.get(qn("w:val")) or ""
                app = sdt_pr.find(W15_APPEARANCE)
                if app is not None:
                    appearance = app.get(W15_VAL)
            out.append(MarkerInfo(tag=tag, appearance=appearance, handle=sdt))
        return out

    def marker_range(self, marker: Handle) -> BlockRange:
        return BlockRange(tuple(marker.findall(_SDT_PARAGRAPHS)))

    def bookmarks(self) -> List[BookmarkInfo]:
        return [
            BookmarkInfo(name=el.get(qn("w:name")) or "", handle=el)
            for el in self._body.iter(qn("w:bookmarkStart"))
        ]

    def bookmark_range(self, bookmark: Handle) -> BlockRange:
        bm_id = bookmark.get(qn("w:id"))
        end_el = None
        for el in self._body.iter(qn("w:bookmarkEnd")):
            if el.get(qn("w:id")) == bm_id:
                end_el = el
                break
        first = self._owning_paragraph(bookmark, forward=True)
        last = self._owning_paragraph(end_el, forward=False) if end_el is not None else first
        if first is None:
            return BlockRange()
        if last is None:
            last = first
        handles = self._paragraph_elements()
        i = next((k for k, p in enumerate(handles) if p is first), None)
        if i is None:
            # bookmark inside a text box or other nested story
            return BlockRange()
        j = next((k for k, p in enumerate(handles) if p is last), i)
        if j < i:
            j = i
        return BlockRange(tuple(handles[i:j + 1]))

    def selection(self) -> Optional[BlockRange]:
        if self._selection is None:
            return None
        live = tuple(h for h in self._selection.paragraphs if self._attached(h))
        return BlockRange(live) if live else None

    def select(self, rng: Optional[BlockRange]) -> None:
        self._selection = rng

    def search(
        self,
        text: str,
        match_case: bool = False,
        match_whole_word: bool = False,
        match_wildcards: bool = False,
    ) -> List[TextMatch]:
        body = _wildcard_pattern(text) if match_wildcards else re.escape(text)
        if match_whole_word:
            body = rf"\b{body}\b"
        pattern = re.compile(body, 0 if match_case else re.IGNORECASE)
        matches: List[TextMatch] = []
        # run text, not Paragraph.text: offsets must line up with the runs we splice
        for p in self._paragraph_elements():
            run_text = self._run_text(p)
            for m in pattern.finditer(run_text):
                if m.end() > m.start():
                    matches.append(TextMatch(paragraph=p, start=m.start(), end=m.end(), text=m.group(0)))
        return matches

    # --- mutate phase -------------------------------------------------

    def _new_paragraph(self, text: str):
        p = OxmlElement("w:p")
        if text:
            self._para(p).add_run(text)
        return p

    def insert_paragraph(self, text: str, relative_to: Handle, location: RelativeLocation) -> Handle:
        p = self._new_paragraph(text)

        def attach():
            if location == "before":
                relative_to.addprevious(p)
            else:
                relative_to.addnext(p)

        self._queue(f"insert paragraph {location} {text[:30]!r}", attach)
        return p

    def insert_paragraph_in_body(self, text: str, location: BodyLocation) -> Handle:
        p = self._new_paragraph(text)

        def attach():
            body = self._body
            if location == "start":
                body.insert(0, p)
                return
            sect_pr = body.find(qn("w:sectPr"))
            if sect_pr is not None:
                sect_pr.addprevious(p)
            else:
                body.append(p)

        self._queue(f"insert paragraph at body {location} {text[:30]!r}", attach)
        return p

    def set_text(self, paragraph: Handle, text: str) -> PendingEffect:
        def apply():
            starts, ends = _range_markup([paragraph])
            self._para(paragraph).text = text
            # Paragraph.text drops bookmarks along with the runs
            p_pr = paragraph.find(qn("w:pPr"))
            at = 0 if p_pr is None else 1
            for k, node in enumerate(starts):
                paragraph.insert(at + k, node)
            for node in ends:
                paragraph.append(node)

        return self._queue(f"set text {text[:30]!r}", apply)

    def set_style(self, paragraph: Handle, style_name: str) -> PendingEffect:
        def apply():
            self._para(paragraph).style = style_name

        return self._queue(f"set style {style_name!r}", apply)

    def set_font_color(self, paragraph: Handle, rgb_hex: str) -> PendingEffect:
        def apply():
            color = RGBColor.from_string(rgb_hex)
            for run in self._para(paragraph).runs:
                run.font.color.rgb = color

        return self._queue(f"set font color {rgb_hex}", apply)

    def set_bold(self, paragraph: Handle, bold: bool) -> PendingEffect:
        def apply():
            for run in self._para(paragraph).runs:
                run.font.bold = bold

        return self._queue(f"set bold {bold}", apply)

    def set_alignment(self, paragraph: Handle, alignment: Alignment) -> PendingEffect:
        def apply():
            self._para(paragraph).alignment = _ALIGNMENTS[alignment]

        return self._queue(f"set alignment {alignment}", apply)

    def replace_match(self, match: TextMatch, text: str) -> PendingEffect:
        def apply():
            para = self._para(match.paragraph)
            current = "".join(r.text for r in para.runs)
            if current[match.start:match.end] != match.text:
                raise HostError(f"text at {match.start}-{match.end} changed since search")
            _splice_runs(para, match.start, match.end, text)

        return self._queue(f"replace {match.text[:30]!r}", apply)

    def clear_range(self, rng: BlockRange) -> Handle:
        if rng.is_empty:
            raise HostError("Cannot clear an empty range")
        keep = rng.first
        rest = rng.paragraphs[1:]

        def apply():
            # bookmarks move out beside the remnant so content inserted before
            # it lands inside them and deleting it keeps them
            starts, ends = _range_markup(rng.paragraphs)
            for node in starts:
                keep.addprevious(node)
            after = keep
            for node in ends:
                after.addnext(node)
                after = node
            self._para(keep).clear()
            for p in rest:
                _remove_paragraph(p)

        self._queue(f"clear range of {len(rng)} paragraph(s)", apply)
        return keep

    def clear_body(self) -> PendingEffect:
        def apply():
            body = self._body
            for child in list(body):
                if child.tag != qn("w:sectPr"):
                    body.remove(child)

        return self._queue("clear body", apply)

    def delete_paragraph(self, paragraph: Handle) -> PendingEffect:
        def apply():
            if paragraph.getparent() is None:
                raise HostError("paragraph already removed")
            _remove_paragraph(paragraph)

        return self._queue("delete paragraph", apply)

    def wrap_in_marker(self, rng: BlockRange, tag: str) -> Handle:
        if rng.is_empty:
            raise HostError("Cannot wrap an empty range in a marker")
        sdt = OxmlElement("w:sdt")
        sdt_pr = OxmlElement("w:sdtPr")
        sdt_pr.append(OxmlElement("w:tag", attrs={qn("w:val"): tag}))
        sdt.append(sdt_pr)
        content = OxmlElement("w:sdtContent")
        sdt.append(content)

        def apply():
            for p in rng.paragraphs:
                if p.getparent() is not self._body:
                    raise HostError("markers can only wrap top-level paragraphs")
            rng.first.addprevious(sdt)
            for p in rng.paragraphs:
                content.append(p)

        self._queue(f"wrap {len(rng)} paragraph(s) in marker {tag!r}", apply)
        return sdt

    def set_marker_tag(self, marker: Handle, tag: str) -> PendingEffect:
        def apply():
            sdt_pr = marker.find(qn("w:sdtPr"))
            tag_el = sdt_pr.find(qn("w:tag"))
            if tag_el is None:
                tag_el = OxmlElement("w:tag")
                sdt_pr.append(tag_el)
            tag_el.set(qn("w:val"), tag)

        return self._queue(f"set marker tag {tag!r}", apply)

    def set_marker_appearance(self, marker: Handle, appearance: str) -> PendingEffect:
        def apply():
            sdt_pr = marker.find(qn("w:sdtPr"))
            app = sdt_pr.find(W15_APPEARANCE)
            if app is None:
                app = sdt_pr.makeelement(W15_APPEARANCE, {}, nsmap={"w15": W15_NS})
                sdt_pr.append(app)
            app.set(W15_VAL, appearance)

        return self._queue(f"set marker appearance {appearance!r}", apply)

    # --- document building (not part of the capability surface) --------

    def add_bookmark(self, name: str, rng: BlockRange) -> None:
        """Bookmark the given paragraphs. Applied immediately."""
        existing = [int(el.get(qn("w:id"))) for el in self._body.iter(qn("w:bookmarkStart"))]
        bm_id = str(max(existing, default=-1) + 1)
        start = OxmlElement("w:bookmarkStart", attrs={qn("w:id"): bm_id, qn("w:name"): name})
        end = OxmlElement("w:bookmarkEnd", attrs={qn("w:id"): bm_id})
        first, last = rng.first, rng.last
        p_pr = first.find(qn("w:pPr"))
        if p_pr is not None:
            p_pr.addnext(start)
        else:
            first.insert(0, start)
        last.append(end)
