from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import List, Optional

from docx.opc.exceptions import PackageNotFoundError

from plan_editor.adapters.docx_adapter import DocxHost
from plan_editor.errors import PlanEditorError, error_result
from plan_editor.extract import build_document_context, extract_semantic_document
from plan_editor.pipeline import run_docx_plan
from plan_editor.rules.load_rules import load_plan_rules
from plan_editor.validate import read_plan_payload

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _load_json(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _cmd_extract(args) -> int:
    rules = load_plan_rules(args.rules)
    host = DocxHost.open(args.input_docx)
    if args.context is not None:
        out = build_document_context(host, args.context, rules).to_dict()
        label = f"document context ({len(out['headings'])} headings)"
    else:
        snapshot = extract_semantic_document(host, rules)
        out = snapshot.to_dict()
        out["epoch"] = snapshot.epoch
        label = f"snapshot ({len(snapshot.blocks)} blocks)"
    text = json.dumps(out, indent=2, ensure_ascii=False)
    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Wrote {label} to {args.out}")
    else:
        print(text)
    return EXIT_OK


def _cmd_validate(args) -> int:
    rules = load_plan_rules(args.rules)
    try:
        envelope = read_plan_payload(_load_json(args.plan), rules)
    except PlanEditorError as e:
        print(json.dumps(error_result(e).to_dict(), indent=2))
        return EXIT_FAILED
    count = len(envelope.semantic_plan.ops) if envelope.semantic_plan else len(envelope.edit_plan.actions)
    print(json.dumps({"ok": True, "kind": envelope.kind, "operations": count}, indent=2))
    return EXIT_OK


def _cmd_apply(args) -> int:
    report = run_docx_plan(
        input_docx=args.input_docx,
        plan_path=args.plan,
        out_docx=args.out,
        snapshot_path=args.snapshot,
        select_bookmark=args.select_bookmark,
        report_dir=args.report,
        rules_path=args.rules,
    )
    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    return EXIT_OK if report.ok else EXIT_FAILED


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="plan-edit",
        description="Validate and apply structured edit plans to .docx documents"
    )
    ap.add_argument("--rules", default=None, help="Path to a rule pack YAML (default: bundled plan_rules.yml)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command")

    p = sub.add_parser("extract", help="Print the section/block snapshot of a document")
    p.add_argument("input_docx", help="Path to input .docx")
    p.add_argument("--out", default=None, help="Write the snapshot JSON here instead of stdout")
    p.add_argument("--context", default=None, metavar="PROMPT",
                   help="Print the heading outline and prompt-relevant sections instead of the snapshot")
    p.set_defaults(func=_cmd_extract)

    p = sub.add_parser("validate", help="Validate a planner payload without touching a document")
    p.add_argument("plan", help="Path to plan JSON ({edit_plan: ...} or {ops: [...]})")
    p.set_defaults(func=_cmd_validate)

    p = sub.add_parser("apply", help="Apply a planner payload to a document")
    p.add_argument("input_docx", help="Path to input .docx")
    p.add_argument("plan", help="Path to plan JSON")
    p.add_argument("--snapshot", default=None, help="Snapshot JSON the semantic plan was made from")
    p.add_argument("--out", default=None, help="Output .docx (default: <input>.edited.docx)")
    p.add_argument("--select-bookmark", default=None, help="Mark this bookmark's paragraphs as the selection")
    p.add_argument("--report", default=None, help="Directory for run.json / run.txt reports")
    p.set_defaults(func=_cmd_apply)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    if not args.command:
        ap.print_usage(sys.stderr)
        return EXIT_USAGE

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (OSError, json.JSONDecodeError, PackageNotFoundError) as e:
        print(f"plan-edit: {e}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
