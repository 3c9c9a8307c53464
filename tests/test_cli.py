import json

from conftest import build_host
from plan_editor.adapters.docx_adapter import DocxHost
from plan_editor.cli import main


def _write(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_extract_writes_snapshot(tmp_path, report_doc):
    src = tmp_path / "in.docx"
    report_doc.save(str(src))
    out = tmp_path / "snap.json"
    assert main(["extract", str(src), "--out", str(out)]) == 0
    snap = json.loads(out.read_text(encoding="utf-8"))
    assert snap["blocks"]["b1"]["text"] == "Introduction"
    assert snap["epoch"]


def test_validate_exit_codes(tmp_path, capsys):
    good = _write(tmp_path / "good.json", {"ops": [
        {"action": "replace", "target_block_id": "b1", "content": "x", "reason": ""},
    ]})
    bad = _write(tmp_path / "bad.json", {"edit_plan": {"version": "2.0", "actions": []}})
    assert main(["validate", good]) == 0
    assert json.loads(capsys.readouterr().out)["kind"] == "semantic"
    assert main(["validate", bad]) == 1
    assert json.loads(capsys.readouterr().out)["error_type"] == "validation"


def test_apply_with_snapshot(tmp_path, report_doc):
    src = tmp_path / "in.docx"
    report_doc.save(str(src))
    snap = tmp_path / "snap.json"
    assert main(["extract", str(src), "--out", str(snap)]) == 0
    plan = _write(tmp_path / "plan.json", {"ops": [
        {"action": "replace", "target_block_id": "b4", "content": "Revenue doubled.", "reason": ""},
    ]})
    out = tmp_path / "out.docx"
    assert main(["apply", str(src), plan, "--snapshot", str(snap), "--out", str(out)]) == 0
    assert "Revenue doubled." in [p.text for p in DocxHost.open(str(out)).paragraphs()]


def test_apply_failure_does_not_write(tmp_path):
    src = tmp_path / "in.docx"
    build_host("nothing").save(str(src))
    plan = _write(tmp_path / "plan.json", {"edit_plan": {"version": "1.0", "actions": [
        {"type": "correct_text", "search_text": "teh", "replacement_text": "the"},
    ]}})
    out = tmp_path / "out.docx"
    assert main(["apply", str(src), plan, "--out", str(out)]) == 1
    assert not out.exists()


def test_usage_errors(tmp_path):
    assert main([]) == 2
    assert main(["validate", str(tmp_path / "missing.json")]) == 2


def test_extract_context(tmp_path, report_doc, capsys):
    src = tmp_path / "in.docx"
    report_doc.save(str(src))
    assert main(["extract", str(src), "--context", "more on revenue"]) == 0
    ctx = json.loads(capsys.readouterr().out)
    assert ctx["has_content"] is True
    assert [h["text"] for h in ctx["headings"]][:2] == ["Introduction", "Executive Summary"]
    assert ctx["relevant_content"][0]["heading"] == "Executive Summary"
