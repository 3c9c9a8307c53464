"""
Edit-plan interpreter

Validates structured edit plans from an external planner, resolves their
anchors against a live document and applies them in order. Also extracts
the section/block snapshot planners work from.
"""
from plan_editor.errors import (
    AnchorNotFoundError,
    ErrorResult,
    ExecutionError,
    HostUnavailableError,
    PlanEditorError,
    SuccessResult,
    ValidationError,
)
from plan_editor.validate import read_plan_payload, validate_edit_plan, validate_semantic_edit_plan
from plan_editor.anchors import AnchorResolver, mark_selection, resolve_anchor
from plan_editor.apply import execute_edit_plan
from plan_editor.extract import build_document_context, extract_semantic_document
from plan_editor.semantic_apply import execute_semantic_edit_plan
from plan_editor.pipeline import RunReport, run_plan

__all__ = [
    "AnchorNotFoundError",
    "ErrorResult",
    "ExecutionError",
    "HostUnavailableError",
    "PlanEditorError",
    "SuccessResult",
    "ValidationError",
    "read_plan_payload",
    "validate_edit_plan",
    "validate_semantic_edit_plan",
    "AnchorResolver",
    "mark_selection",
    "resolve_anchor",
    "execute_edit_plan",
    "build_document_context",
    "extract_semantic_document",
    "execute_semantic_edit_plan",
    "RunReport",
    "run_plan",
]
