from __future__ import annotations
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional
import copy
import yaml

DEFAULT_RULES_PATH = Path(__file__).parent / "plan_rules.yml"


def _default_named_colors() -> Dict[str, str]:
    return {
        "black": "000000", "white": "FFFFFF", "red": "FF0000", "green": "008000",
        "blue": "0000FF", "yellow": "FFFF00", "cyan": "00FFFF", "magenta": "FF00FF",
        "gray": "808080", "grey": "808080", "orange": "FFA500", "purple": "800080",
        "pink": "FFC0CB", "brown": "A52A2A", "navy": "000080", "teal": "008080",
    }


def _default_heading_styles() -> Dict[str, int]:
    return {"Heading 1": 1, "Heading 2": 2, "Heading 3": 3}


def _default_stop_words() -> List[str]:
    return [
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
        "is", "are", "was", "were", "be", "been", "being", "have", "has", "had", "do", "does", "did",
        "will", "would", "should", "could", "may", "might", "must", "can", "this", "that", "these", "those",
        "i", "you", "he", "she", "it", "we", "they", "his", "her", "its", "our", "their",
        "add", "insert", "write", "create", "make", "change", "fix", "update", "more", "about", "information",
    ]


@dataclass
class PlanRules:
    max_actions: int = 50
    max_blocks_per_action: int = 100
    max_text_chars: int = 100000
    named_colors: Dict[str, str] = field(default_factory=_default_named_colors)
    normal_style: str = "Normal"
    heading_styles: Dict[str, int] = field(default_factory=_default_heading_styles)
    default_anchor: str = "main"
    selection_anchor: str = "selected"
    selection_tag_prefix: str = "selected_"
    heading_match_threshold: float = 0.1
    rematch_min_chars: int = 10
    context_section_paragraphs: int = 3
    context_paragraph_chars: int = 300
    context_summary_chars: int = 500
    context_stop_words: List[str] = field(default_factory=_default_stop_words)

    def heading_level(self, style_name: Optional[str]) -> Optional[int]:
        if not style_name:
            return None
        return self.heading_styles.get(style_name)

    def heading_style(self, level: int) -> str:
        for name, lvl in self.heading_styles.items():
            if lvl == level:
                return name
        return f"Heading {level}"


def load_rule_pack(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def rules_from_pack(pack: Dict[str, Any]) -> PlanRules:
    rules = PlanRules()
    limits = pack.get("limits") or {}
    rules.max_actions = int(limits.get("max_actions", rules.max_actions))
    rules.max_blocks_per_action = int(limits.get("max_blocks_per_action", rules.max_blocks_per_action))
    rules.max_text_chars = int(limits.get("max_text_chars", rules.max_text_chars))

    colors = pack.get("named_colors")
    if colors:
        rules.named_colors = {str(k).lower(): str(v).lstrip("#").upper() for k, v in colors.items()}

    styles = pack.get("styles") or {}
    rules.normal_style = str(styles.get("normal", rules.normal_style))
    if styles.get("headings"):
        rules.heading_styles = {str(k): int(v) for k, v in styles["headings"].items()}

    anchors = pack.get("anchors") or {}
    rules.default_anchor = str(anchors.get("default", rules.default_anchor))
    rules.selection_anchor = str(anchors.get("selection", rules.selection_anchor))
    rules.selection_tag_prefix = str(anchors.get("selection_tag_prefix", rules.selection_tag_prefix))

    matching = pack.get("matching") or {}
    rules.heading_match_threshold = float(matching.get("heading_match_threshold", rules.heading_match_threshold))
    rules.rematch_min_chars = int(matching.get("rematch_min_chars", rules.rematch_min_chars))

    context = pack.get("context") or {}
    rules.context_section_paragraphs = int(context.get("section_paragraphs", rules.context_section_paragraphs))
    rules.context_paragraph_chars = int(context.get("paragraph_chars", rules.context_paragraph_chars))
    rules.context_summary_chars = int(context.get("summary_chars", rules.context_summary_chars))
    if context.get("stop_words"):
        rules.context_stop_words = [str(w).lower() for w in context["stop_words"]]
    return rules


def load_plan_rules(path: Optional[str] = None) -> PlanRules:
    if path is None:
        return default_rules()
    return rules_from_pack(load_rule_pack(path))


@lru_cache(maxsize=1)
def _bundled_rules() -> PlanRules:
    return rules_from_pack(load_rule_pack(str(DEFAULT_RULES_PATH)))


def default_rules() -> PlanRules:
    """The bundled pack. Each call gets its own copy, so callers may change it freely."""
    return copy.deepcopy(_bundled_rules())
