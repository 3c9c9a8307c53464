"""
Document hosts.

DocumentHost is the capability surface the engines edit through;
DocxHost backs it with an in-memory python-docx Document.
"""
from plan_editor.adapters.host import (
    BlockRange,
    BookmarkInfo,
    DocumentHost,
    HostError,
    MarkerInfo,
    ParagraphInfo,
    PendingEffect,
    TextMatch,
)
from plan_editor.adapters.docx_adapter import DocxHost

__all__ = [
    "BlockRange",
    "BookmarkInfo",
    "DocumentHost",
    "DocxHost",
    "HostError",
    "MarkerInfo",
    "ParagraphInfo",
    "PendingEffect",
    "TextMatch",
]
