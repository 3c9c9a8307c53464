import pytest

from conftest import build_host, styles, texts
from plan_editor.errors import ExecutionError
from plan_editor.extract import extract_semantic_document
from plan_editor.ir import SemanticEditPlan, SemanticOperation
from plan_editor.semantic_apply import execute_semantic_edit_plan, rematch_blocks


def _plan(*ops):
    return SemanticEditPlan(ops=[SemanticOperation(*op) for op in ops])


def test_identical_paragraphs_map_to_distinct_instances():
    host = build_host("Same text here.", "Same text here.", "Other")
    snapshot = extract_semantic_document(host)
    mapping = rematch_blocks(host, snapshot)
    assert mapping.unmatched == []
    assert mapping.matched["b1"].handle is not mapping.matched["b2"].handle
    assert [mapping.matched[b].index for b in ("b1", "b2", "b3")] == [0, 1, 2]


def test_replace_second_of_two_identical():
    host = build_host("Same text here.", "Same text here.")
    snapshot = extract_semantic_document(host)
    execute_semantic_edit_plan(host, _plan(("replace", "b2", "Changed.", "")), snapshot)
    assert texts(host) == ["Same text here.", "Changed."]


def test_insert_after_and_before(report_doc):
    snapshot = extract_semantic_document(report_doc)
    execute_semantic_edit_plan(report_doc, _plan(
        ("insert_after", "b4", "Margins widened.", "detail"),
        ("insert_before", "b3", "See below.", "lead-in"),
    ), snapshot)
    assert texts(report_doc)[2:6] == ["See below.", "Executive Summary", "Revenue grew.", "Margins widened."]
    assert ("Normal", "Margins widened.") in styles(report_doc)


def test_multiline_insert_becomes_paragraphs():
    host = build_host("only")
    snapshot = extract_semantic_document(host)
    execute_semantic_edit_plan(host, _plan(("insert_after", "b1", "one\ntwo", "")), snapshot)
    assert texts(host) == ["only", "one", "two"]


def test_ids_survive_edits_before_execution(report_doc):
    snapshot = extract_semantic_document(report_doc)
    # someone inserts a paragraph at the top after extraction
    first = report_doc.paragraphs()[0].handle
    report_doc.insert_paragraph("New opening line.", first, "before")
    report_doc.flush()
    execute_semantic_edit_plan(report_doc, _plan(("replace", "b4", "Revenue grew a lot.", "")), snapshot)
    assert "Revenue grew a lot." in texts(report_doc)
    assert texts(report_doc)[0] == "New opening line."


def test_fuzzy_pass_handles_light_edits():
    host = build_host("The quarterly results were strong.")
    snapshot = extract_semantic_document(host)
    host.document.paragraphs[0].runs[0].text = "The quarterly results were strong. Very strong."
    mapping = rematch_blocks(host, snapshot)
    assert "b1" in mapping.matched


def test_heading_needs_same_level():
    host = build_host(("Heading 1", "Results"))
    snapshot = extract_semantic_document(host)
    host.document.paragraphs[0].style = "Heading 2"
    assert rematch_blocks(host, snapshot).unmatched == ["b1"]


def test_empty_live_paragraph_is_never_a_candidate():
    host = build_host("A reasonably long paragraph of text.")
    snapshot = extract_semantic_document(host)
    host.document.paragraphs[0].text = ""
    assert rematch_blocks(host, snapshot).unmatched == ["b1"]


def test_unknown_id_lists_valid_ids(report_doc):
    snapshot = extract_semantic_document(report_doc)
    with pytest.raises(ExecutionError) as exc:
        execute_semantic_edit_plan(report_doc, _plan(("replace", "b99", "x", "")), snapshot)
    assert "b99" in exc.value.message
    assert "b1, b2, b3" in exc.value.message
    assert exc.value.details["valid_block_ids"] == snapshot.block_ids()


def test_stale_block_names_id_and_text_prefix():
    host = build_host("First paragraph.", "Second paragraph.", "Third paragraph that will be rewritten.")
    snapshot = extract_semantic_document(host)
    host.document.paragraphs[2].text = "Completely different."
    with pytest.raises(ExecutionError) as exc:
        execute_semantic_edit_plan(host, _plan(("replace", "b3", "New text", "fix")), snapshot)
    message = exc.value.message
    assert "b3" in message
    assert "Third paragraph that will be rewritten." in message
    assert "modified after" in message
    assert texts(host)[2] == "Completely different."


def test_failure_keeps_earlier_ops(report_doc):
    snapshot = extract_semantic_document(report_doc)
    with pytest.raises(ExecutionError) as exc:
        execute_semantic_edit_plan(report_doc, _plan(
            ("replace", "b2", "Rewritten intro.", ""),
            ("replace", "b42", "x", ""),
        ), snapshot)
    assert exc.value.details["op_index"] == 1
    assert texts(report_doc)[1] == "Rewritten intro."
