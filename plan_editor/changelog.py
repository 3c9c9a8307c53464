from __future__ import annotations
from typing import Dict, Any, List
import json

def write_json(path: str, payload: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)

def write_txt(path: str, payload: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_txt(payload))

def render_txt(payload: Dict[str, Any]) -> str:
    lines: List[str] = []
    lines.append(f"Plan Run: {payload.get('timestamp_utc')}")
    lines.append("")
    a = payload.get("artifacts", {}) or {}
    if a:
        lines.append("Artifacts")
        lines.append(f"- Input:  {a.get('input_docx')}")
        lines.append(f"- Plan:   {a.get('plan')}")
        lines.append(f"- Output: {a.get('output_docx') or '[not written]'}")
        lines.append("")
    lines.append("Plan")
    lines.append(f"- Kind:       {payload.get('kind') or '[rejected]'}")
    lines.append(f"- Operations: {payload.get('operation_count', 0)}")
    lines.append(f"- Flushes:    {payload.get('flushes', 0)}")
    if payload.get("epoch"):
        lines.append(f"- Epoch:      {payload['epoch']}")
    if payload.get("response"):
        lines.append(f"- Planner:    {payload['response']}")
    lines.append("")
    r = payload.get("result", {}) or {}
    lines.append("Result")
    lines.append(f"- OK:      {r.get('ok')}")
    if not r.get("ok"):
        lines.append(f"- Error:   {r.get('error_type')}")
    lines.append(f"- Message: {r.get('message')}")
    for k, v in (r.get("details") or {}).items():
        lines.append(f"- {k}: {v}")
    return "\n".join(lines)
