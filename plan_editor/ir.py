from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional
import uuid

BlockType = Literal["paragraph", "heading"]
SemanticAction = Literal["insert_after", "insert_before", "replace"]
SEMANTIC_ACTIONS = ("insert_after", "insert_before", "replace")


def new_epoch() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class DocumentBlock:
    id: str          # "b1", "b2", ... valid only inside its epoch
    type: BlockType
    text: str
    level: Optional[int] = None  # headings only

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"id": self.id, "type": self.type, "text": self.text}
        if self.level is not None:
            d["level"] = self.level
        return d


@dataclass
class DocumentSection:
    id: str          # "s1", "s2", ...
    title: str
    level: int
    blocks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "level": self.level, "blocks": list(self.blocks)}


@dataclass
class SemanticDocument:
    """Section/block snapshot of the live document for one planning round trip."""
    sections: List[DocumentSection] = field(default_factory=list)
    blocks: Dict[str, DocumentBlock] = field(default_factory=dict)
    epoch: str = field(default_factory=new_epoch)

    def block_ids(self) -> List[str]:
        return list(self.blocks.keys())

    def ordered_blocks(self) -> List[DocumentBlock]:
        return [self.blocks[bid] for s in self.sections for bid in s.blocks if bid in self.blocks]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sections": [s.to_dict() for s in self.sections],
            "blocks": {bid: b.to_dict() for bid, b in self.blocks.items()},
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SemanticDocument":
        sections = [
            DocumentSection(
                id=s["id"],
                title=s.get("title", ""),
                level=int(s.get("level", 1)),
                blocks=list(s.get("blocks") or []),
            )
            for s in d.get("sections") or []
        ]
        blocks: Dict[str, DocumentBlock] = {}
        for bid, b in (d.get("blocks") or {}).items():
            blocks[bid] = DocumentBlock(
                id=b.get("id", bid),
                type=b["type"],
                text=b.get("text", ""),
                level=b.get("level"),
            )
        doc = cls(sections=sections, blocks=blocks)
        if d.get("epoch"):
            doc.epoch = str(d["epoch"])
        return doc


@dataclass
class SemanticOperation:
    action: SemanticAction
    target_block_id: str
    content: str
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "target_block_id": self.target_block_id,
            "content": self.content,
            "reason": self.reason,
        }


@dataclass
class SemanticEditPlan:
    ops: List[SemanticOperation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"ops": [o.to_dict() for o in self.ops]}


@dataclass
class HeadingEntry:
    text: str
    level: int

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "level": self.level}


@dataclass
class RelevantSection:
    heading: str
    level: int
    paragraphs: List[str] = field(default_factory=list)
    heading_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "heading": self.heading,
            "level": self.level,
            "paragraphs": list(self.paragraphs),
            "heading_index": self.heading_index,
        }


@dataclass
class DocumentContext:
    """Prompt-scoped outline of the document for planners that work from anchors, not block ids."""
    headings: List[HeadingEntry] = field(default_factory=list)
    heading_hierarchy: str = ""
    relevant_content: List[RelevantSection] = field(default_factory=list)
    content_summary: str = ""
    has_content: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headings": [h.to_dict() for h in self.headings],
            "heading_hierarchy": self.heading_hierarchy,
            "relevant_content": [s.to_dict() for s in self.relevant_content],
            "content_summary": self.content_summary,
            "has_content": self.has_content,
        }
