from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
import json
import logging

from plan_editor.adapters.docx_adapter import DocxHost
from plan_editor.adapters.host import DocumentHost
from plan_editor.anchors import ensure_host, mark_selection
from plan_editor.apply import execute_edit_plan
from plan_editor.changelog import write_json, write_txt
from plan_editor.errors import (
    ExecutionError,
    ExecutionResult,
    PlanEditorError,
    SuccessResult,
    error_result,
)
from plan_editor.extract import extract_semantic_document
from plan_editor.ir import SemanticDocument
from plan_editor.rules.load_rules import PlanRules, default_rules, load_plan_rules
from plan_editor.semantic_apply import execute_semantic_edit_plan
from plan_editor.validate import read_plan_payload

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


@dataclass
class RunReport:
    result: ExecutionResult
    kind: Optional[str] = None          # "legacy" | "semantic"; None when the payload never validated
    response: str = ""
    operation_count: int = 0
    flushes: int = 0
    epoch: Optional[str] = None
    timestamp_utc: str = field(default_factory=_utc_now)

    @property
    def ok(self) -> bool:
        return self.result.ok

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp_utc": self.timestamp_utc,
            "kind": self.kind,
            "response": self.response,
            "operation_count": self.operation_count,
            "flushes": self.flushes,
            "epoch": self.epoch,
            "result": self.result.to_dict(),
        }


def run_plan(
    host: DocumentHost,
    payload: Any,
    snapshot: Optional[SemanticDocument] = None,
    rules: Optional[PlanRules] = None,
) -> RunReport:
    """Validate a planner payload and run it against the host.

    Validation failures come back as an error result without touching the
    host. A semantic payload without a snapshot is matched against a fresh
    extraction, which only lines up while the document is unchanged.
    """
    rules = rules or default_rules()
    try:
        envelope = read_plan_payload(payload, rules)
    except PlanEditorError as e:
        logger.warning(f"Plan rejected: {e.message}")
        return RunReport(result=error_result(e))

    try:
        ensure_host(host)
    except PlanEditorError as e:
        return RunReport(result=error_result(e), kind=envelope.kind, response=envelope.response)

    flushes_before = host.flush_count
    report = RunReport(result=SuccessResult(message=""), kind=envelope.kind, response=envelope.response)

    if envelope.semantic_plan is None:
        report.operation_count = len(envelope.edit_plan.actions)
        report.result = execute_edit_plan(host, envelope.edit_plan, rules)
    else:
        plan = envelope.semantic_plan
        report.operation_count = len(plan.ops)
        if snapshot is None:
            logger.warning("No snapshot supplied for semantic plan; extracting one from the live document")
            snapshot = extract_semantic_document(host, rules)
        report.epoch = snapshot.epoch
        try:
            execute_semantic_edit_plan(host, plan, snapshot, rules)
            report.result = SuccessResult(message=f"Successfully executed {len(plan.ops)} semantic operation(s)")
        except PlanEditorError as e:
            report.result = error_result(e)

    report.flushes = host.flush_count - flushes_before
    logger.info(f"{report.kind} plan finished ok={report.ok}: {report.result.message}")
    return report


def run_docx_plan(
    *,
    input_docx: str,
    plan_path: str,
    out_docx: Optional[str] = None,
    snapshot_path: Optional[str] = None,
    select_bookmark: Optional[str] = None,
    report_dir: Optional[str] = None,
    rules_path: Optional[str] = None,
) -> RunReport:
    """File-level driver: load a .docx and a plan, run it, save the result and an optional report bundle."""
    rules = load_plan_rules(rules_path)
    host = DocxHost.open(input_docx)

    with open(plan_path, "r", encoding="utf-8") as f:
        payload = json.load(f)

    snapshot = None
    if snapshot_path:
        with open(snapshot_path, "r", encoding="utf-8") as f:
            snapshot = SemanticDocument.from_dict(json.load(f))

    if select_bookmark:
        bookmark = next((b for b in host.bookmarks() if b.name == select_bookmark), None)
        if bookmark is None:
            err = ExecutionError(f'Bookmark "{select_bookmark}" not found', details={"bookmark": select_bookmark})
            return RunReport(result=error_result(err))
        host.select(host.bookmark_range(bookmark.handle))
        try:
            mark_selection(host, rules=rules)
        except PlanEditorError as e:
            return RunReport(result=error_result(e))

    report = run_plan(host, payload, snapshot=snapshot, rules=rules)

    out_docx = out_docx or str(Path(input_docx).with_name(f"{Path(input_docx).stem}.edited.docx"))
    if report.ok:
        host.save(out_docx)
        logger.info(f"Wrote {out_docx}")

    if report_dir:
        out = Path(report_dir)
        out.mkdir(parents=True, exist_ok=True)
        stem = Path(input_docx).stem
        payload_out = report.to_dict()
        payload_out["artifacts"] = {
            "input_docx": input_docx,
            "plan": plan_path,
            "output_docx": out_docx if report.ok else None,
        }
        write_json(str(out / f"{stem}.run.json"), payload_out)
        write_txt(str(out / f"{stem}.run.txt"), payload_out)
    return report

