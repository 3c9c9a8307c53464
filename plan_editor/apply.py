from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
import logging

from plan_editor.adapters.host import BlockRange, DocumentHost, Handle, ParagraphInfo
from plan_editor.anchors import AnchorResolver, ensure_host, latest_selection_marker, section_range
from plan_editor.colors import to_rgb_hex
from plan_editor.editplan import (
    Block,
    BlockStyle,
    CorrectTextAction,
    EditAction,
    EditPlan,
    HeadingBlock,
    InsertTextAction,
    ReplaceSectionAction,
    UpdateHeadingStyleAction,
    UpdateTextFormatAction,
)
from plan_editor.errors import (
    AnchorNotFoundError,
    ExecutionError,
    ExecutionResult,
    PlanEditorError,
    SuccessResult,
    error_result,
)
from plan_editor.matching import HeadingScorer, OverlapHeadingScorer, find_best_heading, heading_paragraphs
from plan_editor.rules.load_rules import PlanRules, default_rules

logger = logging.getLogger(__name__)

InsertFirst = Callable[[str], Handle]


@dataclass
class _Context:
    host: DocumentHost
    rules: PlanRules
    scorer: HeadingScorer = field(default_factory=OverlapHeadingScorer)

    @property
    def resolver(self) -> AnchorResolver:
        return AnchorResolver(self.host, self.rules)


# --- styling ------------------------------------------------------------

def _queue_style(ctx: _Context, handle: Handle, style: Optional[BlockStyle]) -> None:
    if style is None:
        return
    if style.color:
        rgb = to_rgb_hex(style.color, ctx.rules.named_colors)
        if rgb:
            ctx.host.set_font_color(handle, rgb)
    if style.alignment:
        ctx.host.set_alignment(handle, style.alignment)
    if style.bold is not None:
        ctx.host.set_bold(handle, style.bold)


def _queue_block_style(ctx: _Context, handle: Handle, block: Block) -> None:
    if isinstance(block, HeadingBlock):
        ctx.host.set_style(handle, ctx.rules.heading_style(block.level))
    else:
        ctx.host.set_style(handle, ctx.rules.normal_style)
    _queue_style(ctx, handle, block.style)


def _insert_blocks(ctx: _Context, blocks: List[Block], insert_first: InsertFirst) -> List[Handle]:
    """Insert the first block with insert_first, each following block right after the previous one."""
    handles: List[Handle] = []
    for block in blocks:
        if handles:
            handle = ctx.host.insert_paragraph(block.text, handles[-1], "after")
        else:
            handle = insert_first(block.text)
        _queue_block_style(ctx, handle, block)
        handles.append(handle)
    return handles


def _require_heading(ctx: _Context, heading_text: str) -> ParagraphInfo:
    found = find_best_heading(ctx.host.paragraphs(), heading_text, ctx.rules, ctx.scorer)
    if found is None:
        raise AnchorNotFoundError(f'Heading "{heading_text}" not found in document', heading_text)
    return found[0]


def _require_range(rng: BlockRange, anchor: str) -> BlockRange:
    if rng.is_empty:
        raise ExecutionError(f'Anchor "{anchor}" resolved to an empty range', details={"anchor": anchor})
    return rng


# --- action handlers ----------------------------------------------------

def _replace_section(ctx: _Context, action: ReplaceSectionAction) -> None:
    host, rules, anchor = ctx.host, ctx.rules, action.anchor

    if anchor == rules.default_anchor:
        host.clear_body()
        _insert_blocks(ctx, action.blocks, lambda text: host.insert_paragraph_in_body(text, "start"))
        return

    if anchor == rules.selection_anchor:
        rng = latest_selection_marker(host, rules)
        if rng is None:
            raise AnchorNotFoundError(f'No marked selection found for anchor "{anchor}"', anchor)
    else:
        resolved = ctx.resolver.resolve_with_strategy(anchor)
        rng = resolved.range
        if resolved.heading is not None:
            rng = section_range(host, resolved.heading.handle, rules)

    remnant = host.clear_range(_require_range(rng, anchor))
    _insert_blocks(ctx, action.blocks, lambda text: host.insert_paragraph(text, remnant, "before"))
    host.delete_paragraph(remnant)


def _paragraph_at_offset(paragraphs: List[ParagraphInfo], position: int) -> Optional[ParagraphInfo]:
    # paragraphs are joined by a single separator character
    offset = 0
    for info in paragraphs:
        end = offset + len(info.text)
        if offset <= position <= end:
            return info
        offset = end + 1
    return None


def _insert_text(ctx: _Context, action: InsertTextAction) -> None:
    host, rules = ctx.host, ctx.rules
    location = action.location

    if location in ("start", "end"):
        if action.anchor == rules.default_anchor:
            insert_first: InsertFirst = lambda text: host.insert_paragraph_in_body(text, location)
        else:
            rng = _require_range(ctx.resolver.resolve(action.anchor), action.anchor)
            if location == "start":
                insert_first = lambda text: host.insert_paragraph(text, rng.first, "before")
            else:
                insert_first = lambda text: host.insert_paragraph(text, rng.last, "after")

    elif location == "after_heading":
        heading = _require_heading(ctx, action.heading_text or "")
        insert_first = lambda text: host.insert_paragraph(text, heading.handle, "after")

    elif location == "at_position":
        position = action.position if action.position is not None else -1
        target = _paragraph_at_offset(host.paragraphs(), position) if position >= 0 else None
        if target is None:
            raise ExecutionError(
                f"Position {action.position} is outside the document",
                details={"position": action.position},
            )
        insert_first = lambda text: host.insert_paragraph(text, target.handle, "after")

    else:
        raise ExecutionError(f"Unsupported insert location: {location}")

    _insert_blocks(ctx, action.blocks, insert_first)


def _correct_text(ctx: _Context, action: CorrectTextAction) -> None:
    matches = ctx.host.search(
        action.search_text,
        match_case=bool(action.case_sensitive),
        match_whole_word=False,
        match_wildcards=False,
    )
    if not matches:
        raise ExecutionError(
            f'Text "{action.search_text}" not found in document',
            details={"search_text": action.search_text},
        )
    # last match first so earlier offsets in the same paragraph stay valid
    for match in reversed(matches):
        ctx.host.replace_match(match, action.replacement_text)
    logger.debug(f"Queued {len(matches)} replacement(s) of {action.search_text!r}")


def _update_heading_style(ctx: _Context, action: UpdateHeadingStyleAction) -> None:
    if action.target == "specific":
        targets = [_require_heading(ctx, action.heading_text or "")]
    else:
        targets = heading_paragraphs(ctx.host.paragraphs(), ctx.rules)
    if not targets:
        logger.info("update_heading_style: document has no headings")
    for info in targets:
        _queue_style(ctx, info.handle, action.style)


def _update_text_format(ctx: _Context, action: UpdateTextFormatAction) -> None:
    rules = ctx.rules
    paragraphs = ctx.host.paragraphs()
    if action.target == "headings":
        targets = [p for p in paragraphs if rules.heading_level(p.style) is not None]
    elif action.target == "paragraphs":
        targets = [p for p in paragraphs if rules.heading_level(p.style) is None]
    else:
        targets = paragraphs
    for info in targets:
        _queue_style(ctx, info.handle, action.style)


_HANDLERS: Dict[str, Callable[[_Context, EditAction], None]] = {
    "replace_section": _replace_section,
    "insert_text": _insert_text,
    "correct_text": _correct_text,
    "update_heading_style": _update_heading_style,
    "update_text_format": _update_text_format,
}


def _run_action(ctx: _Context, action: EditAction) -> None:
    handler = _HANDLERS.get(action.type)
    if handler is None:
        raise ExecutionError(f"Unknown action type: {action.type}")
    try:
        handler(ctx, action)
        applied = ctx.host.flush()
    except PlanEditorError:
        raise
    except Exception as e:
        raise ExecutionError(f"Failed to execute {action.type} action: {e}", e) from e
    logger.debug(f"{action.type}: {applied} effect(s) applied")


def execute_edit_plan(
    host: DocumentHost,
    plan: EditPlan,
    rules: Optional[PlanRules] = None,
    scorer: Optional[HeadingScorer] = None,
) -> ExecutionResult:
    """Apply a validated plan, one action at a time, in order.

    The first failing action stops the run. Actions already applied stay
    applied; the result names the failing action's index and type.
    """
    try:
        ensure_host(host)
    except PlanEditorError as e:
        return error_result(e)

    ctx = _Context(host=host, rules=rules or default_rules(), scorer=scorer or OverlapHeadingScorer())
    logger.info(f"Executing edit plan with {len(plan.actions)} action(s)")
    for i, action in enumerate(plan.actions):
        try:
            _run_action(ctx, action)
        except PlanEditorError as e:
            host.discard_pending()
            logger.warning(f"Action {i} ({action.type}) failed: {e.message}")
            return error_result(e, action_index=i, action_type=action.type)

    logger.info(f"Edit plan complete: {len(plan.actions)} action(s)")
    return SuccessResult(message=f"Successfully executed {len(plan.actions)} action(s)")
