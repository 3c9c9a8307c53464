import pytest
from docx import Document

from plan_editor.adapters.docx_adapter import DocxHost
from plan_editor.adapters.host import BlockRange


def build_host(*paras):
    """Host over a fresh document. Each item is plain text (Normal) or a (style, text) pair."""
    doc = Document()
    for item in paras:
        if isinstance(item, tuple):
            style, text = item
            doc.add_paragraph(text, style=style)
        else:
            doc.add_paragraph(item)
    return DocxHost(doc)


def texts(host):
    return [p.text for p in host.paragraphs()]


def styles(host):
    return [(p.style, p.text) for p in host.paragraphs()]


def para_range(host, *indexes):
    infos = host.paragraphs()
    return BlockRange(tuple(infos[i].handle for i in indexes))


def add_marker(host, tag, *indexes):
    handle = host.wrap_in_marker(para_range(host, *indexes), tag)
    host.flush()
    return handle


@pytest.fixture
def report_doc():
    return build_host(
        ("Heading 1", "Introduction"),
        "This report covers the quarter.",
        ("Heading 1", "Executive Summary"),
        "Revenue grew.",
        "Costs fell.",
        ("Heading 2", "Outlook"),
        "Next quarter looks stable.",
        ("Heading 1", "Appendix"),
        "Raw tables.",
    )
