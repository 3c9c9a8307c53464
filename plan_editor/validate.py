"""
Strict, fail-closed validation for incoming plans.

Validation is a pure function of the raw value: it never looks at or
touches the document. The first violation found raises ValidationError
with a readable message and a details dict whose ``path`` points at the
offending field.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging

from plan_editor.colors import is_valid_color
from plan_editor.editplan import (
    ALIGNMENTS,
    FORMAT_TARGETS,
    HEADING_TARGETS,
    INSERT_LOCATIONS,
    EditPlan,
    action_from_dict,
)
from plan_editor.errors import ValidationError
from plan_editor.ir import SEMANTIC_ACTIONS, SemanticEditPlan, SemanticOperation
from plan_editor.rules.load_rules import PlanRules, default_rules

logger = logging.getLogger(__name__)

ALLOWED_PLAN_FIELDS = ("version", "actions")
ACTION_TYPES = ("replace_section", "update_heading_style", "update_text_format", "correct_text", "insert_text")
LINE_BREAKS = ("\n", "\r")


def _fail(message: str, path: str, **extra: Any) -> None:
    details: Dict[str, Any] = {"path": path}
    details.update(extra)
    raise ValidationError(message, details)


def _is_nonempty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _check_length(value: str, label: str, path: str, rules: PlanRules) -> None:
    if len(value) > rules.max_text_chars:
        _fail(f"{label} exceeds maximum length ({rules.max_text_chars})", path, length=len(value))


def _validate_anchor(action: Dict[str, Any], kind: str, path: str, rules: PlanRules) -> None:
    if not _is_nonempty_str(action.get("anchor")):
        _fail(f"{kind} action must have a non-empty anchor string", f"{path}.anchor")
    _check_length(action["anchor"], f"{kind} action anchor", f"{path}.anchor", rules)


def _validate_style(style: Any, label: str, path: str, rules: PlanRules, required: bool = False) -> None:
    if style is None:
        if required:
            _fail(f"{label} must have a style object", path)
        return
    if not isinstance(style, dict):
        _fail(f"{label} style must be an object", path)
    color = style.get("color")
    if color is not None and (not isinstance(color, str) or not is_valid_color(color, rules.named_colors)):
        _fail(f"{label} has invalid color format: {color}", f"{path}.color", value=color)
    alignment = style.get("alignment")
    if alignment is not None and alignment not in ALIGNMENTS:
        _fail(f"{label} has invalid alignment: {alignment}", f"{path}.alignment", value=alignment)
    bold = style.get("bold")
    if bold is not None and not isinstance(bold, bool):
        _fail(f"{label} bold must be a boolean", f"{path}.bold", value=bold)


def _validate_block(block: Any, index: int, path: str, rules: PlanRules) -> None:
    if not isinstance(block, dict):
        _fail(f"Block at index {index} must be an object", path)
    kind = block.get("type")
    text = block.get("text")
    if kind == "paragraph":
        label = f"Paragraph block at index {index}"
        if not text or not isinstance(text, str):
            _fail(f"{label} must have a text property (string)", f"{path}.text")
        if len(text) > rules.max_text_chars:
            _fail(f"{label} exceeds maximum text length ({rules.max_text_chars})", f"{path}.text", length=len(text))
        if any(br in text for br in LINE_BREAKS):
            _fail(
                f"{label} contains newline characters. Paragraphs must be single blocks.",
                f"{path}.text",
            )
    elif kind == "heading":
        label = f"Heading block at index {index}"
        if not text or not isinstance(text, str):
            _fail(f"{label} must have a text property (string)", f"{path}.text")
        if len(text) > rules.max_text_chars:
            _fail(f"{label} exceeds maximum text length ({rules.max_text_chars})", f"{path}.text", length=len(text))
        level = block.get("level")
        if isinstance(level, bool) or not isinstance(level, int) or level < 1 or level > 3:
            _fail(f"{label} must have a level between 1 and 3", f"{path}.level", value=level)
    else:
        _fail(
            f'Block at index {index} has invalid type: {kind}. Only "paragraph" and "heading" are supported.',
            f"{path}.type",
            value=kind,
        )
    _validate_style(block.get("style"), label, f"{path}.style", rules)


def _validate_blocks(action: Dict[str, Any], label: str, path: str, rules: PlanRules) -> None:
    blocks = action.get("blocks")
    if not isinstance(blocks, list):
        _fail(f"{label} action must have a blocks array", f"{path}.blocks")
    if len(blocks) == 0:
        _fail(f"{label} action must have at least one block", f"{path}.blocks")
    if len(blocks) > rules.max_blocks_per_action:
        _fail(
            f"{label} action exceeds maximum blocks per action ({rules.max_blocks_per_action})",
            f"{path}.blocks",
            count=len(blocks),
        )
    for i, block in enumerate(blocks):
        _validate_block(block, i, f"{path}.blocks[{i}]", rules)


def _validate_replace_section(action: Dict[str, Any], path: str, rules: PlanRules) -> None:
    _validate_anchor(action, "replace_section", path, rules)
    _validate_blocks(action, "replace_section", path, rules)


def _validate_update_heading_style(action: Dict[str, Any], path: str, rules: PlanRules) -> None:
    target = action.get("target")
    if target not in HEADING_TARGETS:
        _fail('update_heading_style action target must be "all" or "specific"', f"{path}.target", value=target)
    if target == "specific":
        if not _is_nonempty_str(action.get("heading_text")):
            _fail(
                'update_heading_style action with target "specific" must have a non-empty heading_text',
                f"{path}.heading_text",
            )
        _check_length(
            action["heading_text"], "update_heading_style action heading_text", f"{path}.heading_text", rules
        )
    _validate_style(action.get("style"), "update_heading_style action", f"{path}.style", rules, required=True)


def _validate_update_text_format(action: Dict[str, Any], path: str, rules: PlanRules) -> None:
    target = action.get("target")
    if target not in FORMAT_TARGETS:
        _fail(
            'update_text_format action target must be "all", "headings", or "paragraphs"',
            f"{path}.target",
            value=target,
        )
    _validate_style(action.get("style"), "update_text_format action", f"{path}.style", rules, required=True)


def _validate_correct_text(action: Dict[str, Any], path: str, rules: PlanRules) -> None:
    search = action.get("search_text")
    if not isinstance(search, str):
        _fail("correct_text action must have a search_text string", f"{path}.search_text")
    if len(search) == 0:
        _fail("correct_text action search_text cannot be empty", f"{path}.search_text")
    if len(search) > rules.max_text_chars:
        _fail(
            f"correct_text action search_text exceeds maximum length ({rules.max_text_chars})",
            f"{path}.search_text",
        )
    replacement = action.get("replacement_text")
    if not isinstance(replacement, str):
        _fail("correct_text action must have a replacement_text string", f"{path}.replacement_text")
    if len(replacement) > rules.max_text_chars:
        _fail(
            f"correct_text action replacement_text exceeds maximum length ({rules.max_text_chars})",
            f"{path}.replacement_text",
        )
    case_sensitive = action.get("case_sensitive")
    if case_sensitive is not None and not isinstance(case_sensitive, bool):
        _fail("correct_text action case_sensitive must be a boolean if provided", f"{path}.case_sensitive")


def _validate_insert_text(action: Dict[str, Any], path: str, rules: PlanRules) -> None:
    _validate_anchor(action, "insert_text", path, rules)
    location = action.get("location")
    if location not in INSERT_LOCATIONS:
        _fail(
            'insert_text action location must be "start", "end", "after_heading", or "at_position"',
            f"{path}.location",
            value=location,
        )
    if location == "after_heading":
        if not _is_nonempty_str(action.get("heading_text")):
            _fail(
                "insert_text action must have heading_text when location is 'after_heading'",
                f"{path}.heading_text",
            )
        _check_length(action["heading_text"], "insert_text action heading_text", f"{path}.heading_text", rules)
    if location == "at_position":
        position = action.get("position")
        if isinstance(position, bool) or not isinstance(position, int):
            _fail(
                "insert_text action must have position (integer) when location is 'at_position'",
                f"{path}.position",
                value=position,
            )
    _validate_blocks(action, "insert_text", path, rules)


_ACTION_VALIDATORS = {
    "replace_section": _validate_replace_section,
    "update_heading_style": _validate_update_heading_style,
    "update_text_format": _validate_update_text_format,
    "correct_text": _validate_correct_text,
    "insert_text": _validate_insert_text,
}


def _validate_action(action: Any, index: int, rules: PlanRules) -> None:
    path = f"actions[{index}]"
    if not isinstance(action, dict):
        _fail(f"Action at index {index} must be an object", path)
    kind = action.get("type")
    validator = _ACTION_VALIDATORS.get(kind) if isinstance(kind, str) else None
    if validator is None:
        supported = ", ".join(f'"{t}"' for t in ACTION_TYPES)
        _fail(
            f"Action at index {index} has invalid type: {kind}. Only {supported} are supported.",
            f"{path}.type",
            value=kind,
        )
    validator(action, path, rules)


def validate_edit_plan(edit_plan: Any, rules: Optional[PlanRules] = None) -> EditPlan:
    rules = rules or default_rules()
    if not isinstance(edit_plan, dict):
        raise ValidationError("EditPlan must be an object", {"path": "$"})

    version = edit_plan.get("version")
    if version != "1.0":
        _fail(f'EditPlan version must be "1.0", got: {version}', "version", value=version)

    actions = edit_plan.get("actions")
    if not isinstance(actions, list):
        _fail("EditPlan must have an actions array", "actions")

    # Empty actions is the envelope a semantic plan travels in; not checked further.
    if len(actions) == 0:
        return EditPlan(version="1.0", actions=[])

    if len(actions) > rules.max_actions:
        _fail(f"EditPlan exceeds maximum actions ({rules.max_actions})", "actions", count=len(actions))

    for i, action in enumerate(actions):
        _validate_action(action, i, rules)

    unexpected = [k for k in edit_plan.keys() if k not in ALLOWED_PLAN_FIELDS]
    if unexpected:
        _fail(
            f"EditPlan contains unexpected fields: {', '.join(str(k) for k in unexpected)}",
            "$",
            fields=unexpected,
        )

    return EditPlan(version="1.0", actions=[action_from_dict(a) for a in actions])


def validate_semantic_edit_plan(raw: Any, rules: Optional[PlanRules] = None) -> SemanticEditPlan:
    rules = rules or default_rules()
    if not isinstance(raw, dict):
        raise ValidationError("Semantic edit plan must be an object", {"path": "$"})
    ops = raw.get("ops")
    if not isinstance(ops, list):
        _fail("Semantic edit plan must have an ops array", "ops")
    if len(ops) == 0:
        _fail("Semantic edit plan must have at least one operation", "ops")

    parsed: List[SemanticOperation] = []
    for i, op in enumerate(ops):
        path = f"ops[{i}]"
        if not isinstance(op, dict):
            _fail(f"Operation at index {i} must be an object", path)
        action = op.get("action")
        if action not in SEMANTIC_ACTIONS:
            _fail(
                f'Operation at index {i} has invalid action: {action}. '
                f'Only "insert_after", "insert_before", and "replace" are supported.',
                f"{path}.action",
                value=action,
            )
        if not _is_nonempty_str(op.get("target_block_id")):
            _fail(f"Operation at index {i} must have a non-empty target_block_id", f"{path}.target_block_id")
        _check_length(
            op["target_block_id"], f"Operation at index {i} target_block_id", f"{path}.target_block_id", rules
        )
        content = op.get("content")
        if not isinstance(content, str):
            _fail(f"Operation at index {i} must have a content string", f"{path}.content")
        if len(content) > rules.max_text_chars:
            _fail(
                f"Operation at index {i} content exceeds maximum length ({rules.max_text_chars})",
                f"{path}.content",
            )
        reason = op.get("reason", "")
        if not isinstance(reason, str):
            _fail(f"Operation at index {i} reason must be a string", f"{path}.reason")
        parsed.append(SemanticOperation(
            action=action,
            target_block_id=op["target_block_id"],
            content=content,
            reason=reason,
        ))
    return SemanticEditPlan(ops=parsed)


@dataclass
class PlanEnvelope:
    """A planner response split into the plan the interpreter will run."""
    response: str
    edit_plan: EditPlan
    semantic_plan: Optional[SemanticEditPlan] = None

    @property
    def kind(self) -> str:
        return "semantic" if self.semantic_plan is not None else "legacy"


def read_plan_payload(payload: Any, rules: Optional[PlanRules] = None) -> PlanEnvelope:
    """Pick the plan family from a planner response and validate it."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid planner response: expected an object", {"path": "$"})

    response_text = payload.get("response")
    if not isinstance(response_text, str):
        response_text = ""

    if isinstance(payload.get("ops"), list):
        semantic = validate_semantic_edit_plan({"ops": payload["ops"]}, rules)
        logger.debug(f"Planner response carries a semantic plan with {len(semantic.ops)} op(s)")
        return PlanEnvelope(
            response=response_text or "Semantic edit plan generated",
            edit_plan=EditPlan(version="1.0", actions=[]),
            semantic_plan=semantic,
        )

    if "edit_plan" not in payload or not payload["edit_plan"]:
        raise ValidationError("Invalid planner response: missing edit_plan or ops field", {"path": "$"})

    edit_plan = validate_edit_plan(payload["edit_plan"], rules)
    if edit_plan.is_semantic_carrier:
        raise ValidationError(
            "EditPlan has no actions and no semantic ops accompany it",
            {"path": "edit_plan.actions"},
        )
    logger.debug(f"Planner response carries a legacy plan with {len(edit_plan.actions)} action(s)")
    return PlanEnvelope(
        response=response_text or "Edit plan generated successfully",
        edit_plan=edit_plan,
    )
