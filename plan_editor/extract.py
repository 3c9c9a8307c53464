from __future__ import annotations
from typing import Dict, List, Optional
import logging
import re

from plan_editor.adapters.host import DocumentHost
from plan_editor.anchors import ensure_host
from plan_editor.ir import (
    DocumentBlock,
    DocumentContext,
    DocumentSection,
    HeadingEntry,
    RelevantSection,
    SemanticDocument,
    new_epoch,
)
from plan_editor.rules.load_rules import PlanRules, default_rules

logger = logging.getLogger(__name__)

INTRODUCTION_TITLE = "Introduction"
WHOLE_DOCUMENT_TITLE = "Document Content"
HEADING_PREFIX_CHARS = 10

_REORDER_RE = re.compile(r"reorder|reorganize|restructure|rewrite.*order|rearrange", re.IGNORECASE)


def extract_semantic_document(host: DocumentHost, rules: Optional[PlanRules] = None) -> SemanticDocument:
    """Snapshot the live document as sections of ID'd blocks. Never mutates the host.

    Every non-empty paragraph gets the next ``bN`` id. A heading opens a new
    ``sN`` section and is that section's first block. Paragraphs before the
    first heading go into a synthesized level-1 "Introduction" section.
    """
    rules = rules or default_rules()
    ensure_host(host)

    sections: List[DocumentSection] = []
    blocks: Dict[str, DocumentBlock] = {}
    current: Optional[DocumentSection] = None

    for info in host.paragraphs():
        text = info.text.strip()
        if not text:
            continue
        block_id = f"b{len(blocks) + 1}"
        level = rules.heading_level(info.style)
        if level is not None:
            blocks[block_id] = DocumentBlock(id=block_id, type="heading", text=text, level=level)
            current = DocumentSection(id=f"s{len(sections) + 1}", title=text, level=level, blocks=[block_id])
            sections.append(current)
            continue
        blocks[block_id] = DocumentBlock(id=block_id, type="paragraph", text=text)
        if current is None:
            current = DocumentSection(id=f"s{len(sections) + 1}", title=INTRODUCTION_TITLE, level=1)
            sections.append(current)
        current.blocks.append(block_id)

    doc = SemanticDocument(sections=sections, blocks=blocks, epoch=new_epoch())
    logger.info(f"Extracted {len(blocks)} block(s) in {len(sections)} section(s), epoch {doc.epoch}")
    return doc


def prompt_keywords(prompt: str, stop_words) -> List[str]:
    """Distinct lowercase words of the prompt, longer than two characters and not stop words."""
    stop = set(stop_words)
    out: List[str] = []
    for word in re.sub(r"[^\w\s]", " ", prompt.lower()).split():
        if len(word) > 2 and word not in stop and word not in out:
            out.append(word)
    return out


def heading_hierarchy(headings: List[HeadingEntry]) -> str:
    return "\n".join(f"  {'  ' * (h.level - 1)}[H{h.level}] {h.text}" for h in headings)


def _is_relevant(heading: str, paragraphs: List[str], keywords: List[str], prompt_lower: str) -> bool:
    section_text = f"{heading} {' '.join(paragraphs)}".lower()
    if any(k in section_text for k in keywords):
        return True
    prefix = heading.lower()[:HEADING_PREFIX_CHARS]
    return bool(prefix) and prefix in prompt_lower


def build_document_context(
    host: DocumentHost,
    prompt: str,
    rules: Optional[PlanRules] = None,
) -> DocumentContext:
    """Outline the live document for a planner working on ``prompt``. Never mutates the host.

    Headings are listed with their levels. A section is relevant when a prompt
    keyword occurs in its heading or text, or the prompt mentions the start of
    its heading; it contributes its first few paragraphs, each cut short.
    Reordering prompts also get every paragraph as one extra section.
    """
    rules = rules or default_rules()
    ensure_host(host)

    keywords = prompt_keywords(prompt, rules.context_stop_words)
    prompt_lower = prompt.lower()
    cut = rules.context_paragraph_chars

    headings: List[HeadingEntry] = []
    relevant: List[RelevantSection] = []
    all_paragraphs: List[str] = []
    current: Optional[RelevantSection] = None

    def close_section():
        if current is not None and current.paragraphs and \
                _is_relevant(current.heading, current.paragraphs, keywords, prompt_lower):
            current.paragraphs = current.paragraphs[:rules.context_section_paragraphs]
            relevant.append(current)

    for info in host.paragraphs():
        text = info.text.strip()
        if not text:
            continue
        level = rules.heading_level(info.style)
        if level is not None:
            close_section()
            headings.append(HeadingEntry(text=text, level=level))
            current = RelevantSection(heading=text, level=level, heading_index=len(headings) - 1)
            continue
        all_paragraphs.append(text)
        if current is not None:
            current.paragraphs.append(text[:cut])
    close_section()

    if _REORDER_RE.search(prompt) and all_paragraphs:
        relevant.append(RelevantSection(
            heading=current.heading if current is not None else WHOLE_DOCUMENT_TITLE,
            level=current.level if current is not None else 1,
            paragraphs=list(all_paragraphs),
            heading_index=current.heading_index if current is not None else 0,
        ))

    context = DocumentContext(
        headings=headings,
        heading_hierarchy=heading_hierarchy(headings),
        relevant_content=relevant,
        content_summary=" ".join(all_paragraphs[:rules.context_section_paragraphs])[:rules.context_summary_chars],
        has_content=bool(all_paragraphs or headings),
    )
    logger.info(
        f"Built document context: {len(headings)} heading(s), "
        f"{len(relevant)} relevant section(s), {len(keywords)} keyword(s)"
    )
    return context
