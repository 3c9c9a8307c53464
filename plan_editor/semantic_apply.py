"""
Semantic plan execution.

Block IDs in a snapshot are only meaningful for the epoch that produced
them; the live document carries no IDs. Before running any operation the
snapshot's blocks are re-matched to live paragraphs:

- exact pass: trimmed text equality (headings also need the same level)
- fuzzy pass: case-insensitive equality, or containment either way once the
  block text is longer than ``rematch_min_chars``

Blocks are matched in section order, and each live paragraph can back at
most one block.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
import logging
import re

from plan_editor.adapters.host import DocumentHost, HostError, ParagraphInfo
from plan_editor.anchors import ensure_host
from plan_editor.errors import ExecutionError, PlanEditorError
from plan_editor.ir import DocumentBlock, SemanticDocument, SemanticEditPlan, SemanticOperation
from plan_editor.rules.load_rules import PlanRules, default_rules

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass
class BlockMapping:
    matched: Dict[str, ParagraphInfo] = field(default_factory=dict)
    unmatched: List[str] = field(default_factory=list)


def _level_ok(block: DocumentBlock, info: ParagraphInfo, rules: PlanRules) -> bool:
    if block.type != "heading":
        return True
    return rules.heading_level(info.style) == block.level


def _exact(block: DocumentBlock, info: ParagraphInfo, rules: PlanRules) -> bool:
    return info.text.strip() == block.text.strip() and _level_ok(block, info, rules)


def _fuzzy(block: DocumentBlock, info: ParagraphInfo, rules: PlanRules) -> bool:
    live = info.text.strip().lower()
    want = block.text.strip().lower()
    if live == want:
        return _level_ok(block, info, rules)
    if len(want) > rules.rematch_min_chars and (want in live or live in want):
        return _level_ok(block, info, rules)
    return False


def rematch_blocks(host: DocumentHost, snapshot: SemanticDocument, rules: Optional[PlanRules] = None) -> BlockMapping:
    rules = rules or default_rules()
    # empty paragraphs were never given IDs, so they cannot back a block
    candidates = [p for p in host.paragraphs() if p.text.strip()]
    used = set()
    mapping = BlockMapping()

    passes: List[Callable[[DocumentBlock, ParagraphInfo, PlanRules], bool]] = [_exact, _fuzzy]
    for section in snapshot.sections:
        for block_id in section.blocks:
            block = snapshot.blocks.get(block_id)
            if block is None:
                logger.warning(f"Section {section.id} lists unknown block {block_id}")
                continue
            found: Optional[ParagraphInfo] = None
            for matches in passes:
                found = next(
                    (p for p in candidates if p.index not in used and matches(block, p, rules)),
                    None,
                )
                if found is not None:
                    break
            if found is None:
                logger.warning(f'Could not find paragraph matching block {block_id} with text: "{block.text[:50]}..."')
                mapping.unmatched.append(block_id)
                continue
            used.add(found.index)
            mapping.matched[block_id] = found

    logger.debug(f"Re-matched {len(mapping.matched)}/{len(snapshot.blocks)} block(s) for epoch {snapshot.epoch}")
    return mapping


def _target(op: SemanticOperation, snapshot: SemanticDocument, mapping: BlockMapping) -> ParagraphInfo:
    block_id = op.target_block_id
    if block_id not in snapshot.blocks:
        valid = snapshot.block_ids()
        raise ExecutionError(
            f"Block ID {block_id} not found in document structure. "
            f"Available block IDs: {', '.join(valid) or 'none'}",
            details={"target_block_id": block_id, "valid_block_ids": valid},
        )
    info = mapping.matched.get(block_id)
    if info is None:
        prefix = snapshot.blocks[block_id].text[:50]
        raise ExecutionError(
            f'Block ID {block_id} not found in document. Block text: "{prefix}...". '
            f"This may happen if the document was modified after the edit plan was generated.",
            details={"target_block_id": block_id, "epoch": snapshot.epoch},
        )
    return info


def _apply_op(host: DocumentHost, op: SemanticOperation, target: ParagraphInfo, rules: PlanRules) -> None:
    if op.action == "replace":
        host.set_text(target.handle, op.content)
        return

    lines = _LINE_BREAK.split(op.content)
    previous = None
    for line in lines:
        if previous is None:
            where = "after" if op.action == "insert_after" else "before"
            previous = host.insert_paragraph(line, target.handle, where)
        else:
            previous = host.insert_paragraph(line, previous, "after")
        host.set_style(previous, rules.normal_style)


def execute_semantic_edit_plan(
    host: DocumentHost,
    plan: SemanticEditPlan,
    snapshot: SemanticDocument,
    rules: Optional[PlanRules] = None,
) -> None:
    """Run every operation in order against the paragraphs re-matched from ``snapshot``.

    Raises ExecutionError on the first failing operation. Earlier operations
    stay applied.
    """
    rules = rules or default_rules()
    ensure_host(host)
    mapping = rematch_blocks(host, snapshot, rules)
    logger.info(f"Executing {len(plan.ops)} semantic op(s) against epoch {snapshot.epoch}")

    for i, op in enumerate(plan.ops):
        try:
            target = _target(op, snapshot, mapping)
            _apply_op(host, op, target, rules)
            host.flush()
        except PlanEditorError as e:
            host.discard_pending()
            e.details.setdefault("op_index", i)
            raise
        except HostError as e:
            host.discard_pending()
            raise ExecutionError(
                f"Failed to execute semantic edit plan: {e}",
                e,
                details={"op_index": i, "target_block_id": op.target_block_id},
            ) from e
        logger.debug(f"op {i}: {op.action} {op.target_block_id}")
