from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

Alignment = Literal["left", "center", "right", "justify"]
InsertLocation = Literal["start", "end", "after_heading", "at_position"]

ALIGNMENTS = ("left", "center", "right", "justify")
INSERT_LOCATIONS = ("start", "end", "after_heading", "at_position")
HEADING_TARGETS = ("all", "specific")
FORMAT_TARGETS = ("all", "headings", "paragraphs")


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


@dataclass
class BlockStyle:
    color: Optional[str] = None
    alignment: Optional[Alignment] = None
    bold: Optional[bool] = None

    def is_empty(self) -> bool:
        return self.color is None and self.alignment is None and self.bold is None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"color": self.color, "alignment": self.alignment, "bold": self.bold})

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> Optional["BlockStyle"]:
        if d is None:
            return None
        return cls(color=d.get("color"), alignment=d.get("alignment"), bold=d.get("bold"))


@dataclass
class ParagraphBlock:
    text: str
    style: Optional[BlockStyle] = None
    type: Literal["paragraph"] = "paragraph"

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "text": self.text,
            "style": self.style.to_dict() if self.style else None,
        })


@dataclass
class HeadingBlock:
    text: str
    level: int
    style: Optional[BlockStyle] = None
    type: Literal["heading"] = "heading"

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "level": self.level,
            "text": self.text,
            "style": self.style.to_dict() if self.style else None,
        })


Block = Union[ParagraphBlock, HeadingBlock]


@dataclass
class ReplaceSectionAction:
    anchor: str
    blocks: List[Block]
    type: Literal["replace_section"] = "replace_section"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "anchor": self.anchor, "blocks": [b.to_dict() for b in self.blocks]}


@dataclass
class UpdateHeadingStyleAction:
    target: Literal["all", "specific"]
    style: BlockStyle
    heading_text: Optional[str] = None
    type: Literal["update_heading_style"] = "update_heading_style"

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "target": self.target,
            "heading_text": self.heading_text,
            "style": self.style.to_dict(),
        })


@dataclass
class UpdateTextFormatAction:
    target: Literal["all", "headings", "paragraphs"]
    style: BlockStyle
    type: Literal["update_text_format"] = "update_text_format"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "target": self.target, "style": self.style.to_dict()}


@dataclass
class CorrectTextAction:
    search_text: str
    replacement_text: str
    case_sensitive: Optional[bool] = None
    type: Literal["correct_text"] = "correct_text"

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "search_text": self.search_text,
            "replacement_text": self.replacement_text,
            "case_sensitive": self.case_sensitive,
        })


@dataclass
class InsertTextAction:
    anchor: str
    location: InsertLocation
    blocks: List[Block]
    heading_text: Optional[str] = None
    position: Optional[int] = None
    type: Literal["insert_text"] = "insert_text"

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "anchor": self.anchor,
            "location": self.location,
            "heading_text": self.heading_text,
            "position": self.position,
            "blocks": [b.to_dict() for b in self.blocks],
        })


EditAction = Union[
    ReplaceSectionAction,
    UpdateHeadingStyleAction,
    UpdateTextFormatAction,
    CorrectTextAction,
    InsertTextAction,
]


@dataclass
class EditPlan:
    version: Literal["1.0"] = "1.0"
    actions: List[EditAction] = field(default_factory=list)

    @property
    def is_semantic_carrier(self) -> bool:
        """Empty-actions plan standing in for a semantic plan."""
        return not self.actions

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version, "actions": [a.to_dict() for a in self.actions]}


# Builders below assume the input already passed validate_edit_plan.

def block_from_dict(d: Dict[str, Any]) -> Block:
    style = BlockStyle.from_dict(d.get("style"))
    if d["type"] == "heading":
        return HeadingBlock(text=d["text"], level=int(d["level"]), style=style)
    return ParagraphBlock(text=d["text"], style=style)


def action_from_dict(d: Dict[str, Any]) -> EditAction:
    kind = d["type"]
    if kind == "replace_section":
        return ReplaceSectionAction(anchor=d["anchor"], blocks=[block_from_dict(b) for b in d["blocks"]])
    if kind == "update_heading_style":
        return UpdateHeadingStyleAction(
            target=d["target"],
            style=BlockStyle.from_dict(d["style"]) or BlockStyle(),
            heading_text=d.get("heading_text"),
        )
    if kind == "update_text_format":
        return UpdateTextFormatAction(target=d["target"], style=BlockStyle.from_dict(d["style"]) or BlockStyle())
    if kind == "correct_text":
        return CorrectTextAction(
            search_text=d["search_text"],
            replacement_text=d["replacement_text"],
            case_sensitive=d.get("case_sensitive"),
        )
    if kind == "insert_text":
        return InsertTextAction(
            anchor=d["anchor"],
            location=d["location"],
            blocks=[block_from_dict(b) for b in d["blocks"]],
            heading_text=d.get("heading_text"),
            position=d.get("position"),
        )
    raise ValueError(f"Unknown action type: {kind}")
