import pytest

from conftest import build_host, para_range, texts
from plan_editor.adapters.host import HostError


def test_mutations_wait_for_flush():
    host = build_host("a")
    first = host.paragraphs()[0].handle
    host.insert_paragraph("b", first, "after")
    host.set_text(first, "A")
    assert texts(host) == ["a"]
    assert len(host.pending) == 2
    assert host.flush() == 2
    assert texts(host) == ["A", "b"]
    assert host.pending == ()


def test_failed_effect_stops_flush_without_rollback():
    host = build_host("a", "b")
    a, b = (p.handle for p in host.paragraphs())
    host.set_text(a, "A")
    host.delete_paragraph(b)
    host.delete_paragraph(b)          # second delete fails: already removed
    host.set_text(a, "never")
    with pytest.raises(HostError):
        host.flush()
    assert texts(host) == ["A"]
    assert host.pending == ()


def test_discard_pending():
    host = build_host("a")
    host.set_text(host.paragraphs()[0].handle, "b")
    assert host.discard_pending() == 1
    host.flush()
    assert texts(host) == ["a"]


def test_search_options():
    host = build_host("Cat cat concat", "c?t")
    assert len(host.search("cat")) == 3
    assert len(host.search("cat", match_case=True)) == 2
    assert len(host.search("cat", match_whole_word=True)) == 2
    assert len(host.search("c?t")) == 1
    assert len(host.search("c?t", match_wildcards=True)) == 4


def test_search_reports_offsets():
    host = build_host("xx teh yy")
    (match,) = host.search("teh")
    assert (match.start, match.end, match.text) == (3, 6, "teh")


def test_replace_match_rejects_stale_match():
    host = build_host("teh cat")
    (match,) = host.search("teh")
    host.set_text(match.paragraph, "the cat")
    host.replace_match(match, "XXX")
    with pytest.raises(HostError):
        host.flush()
    assert texts(host) == ["the cat"]


def test_expand_range_and_body_range():
    host = build_host("a", "b", "c", "d")
    rng = host.expand_range(para_range(host, 1), para_range(host, 2))
    assert host.range_text(rng) == "b\nc"
    assert len(host.body_range()) == 4


def test_clear_range_leaves_one_empty_paragraph():
    host = build_host("a", "b", "c")
    remnant = host.clear_range(para_range(host, 0, 1))
    host.flush()
    assert texts(host) == ["", "c"]
    assert host.index_of(remnant) == 0


def test_selection_drops_removed_paragraphs():
    host = build_host("a", "b")
    rng = para_range(host, 1)
    host.select(rng)
    host.delete_range(rng)
    host.flush()
    assert host.selection() is None


def test_marker_tag_and_appearance():
    host = build_host("a")
    marker = host.wrap_in_marker(para_range(host, 0), "one")
    host.flush()
    host.set_marker_tag(marker, "two")
    host.set_marker_appearance(marker, "boundingBox")
    host.flush()
    (info,) = host.markers()
    assert (info.tag, info.appearance) == ("two", "boundingBox")


def test_save_refuses_unflushed(tmp_path):
    host = build_host("a")
    host.set_text(host.paragraphs()[0].handle, "b")
    with pytest.raises(HostError):
        host.save(str(tmp_path / "out.docx"))
    host.flush()
    host.save(str(tmp_path / "out.docx"))
    assert (tmp_path / "out.docx").exists()


def _with_table(host, *cells):
    table = host.document.add_table(rows=1, cols=len(cells))
    for i, text in enumerate(cells):
        table.cell(0, i).text = text
    return table


def test_paragraphs_include_table_cells():
    host = build_host("intro")
    _with_table(host, "left", "right")
    host.document.add_paragraph("outro")
    assert texts(host) == ["intro", "left", "right", "outro"]
    assert [m.text for m in host.search("right")] == ["right"]


def test_bookmark_in_table_cell_resolves():
    host = build_host("intro")
    _with_table(host, "cell")
    host.add_bookmark("cell_bm", para_range(host, 1))
    (bm,) = host.bookmarks()
    assert host.range_text(host.bookmark_range(bm.handle)) == "cell"


def test_deleting_last_cell_paragraph_keeps_cell_valid():
    host = build_host("intro")
    table = _with_table(host, "only")
    host.delete_paragraph(host.paragraphs()[1].handle)
    host.flush()
    cell = table.cell(0, 0)
    assert len(cell.paragraphs) == 1
    assert cell.text == ""


def test_clear_range_keeps_bookmarks_beside_remnant():
    host = build_host("a", "b", "c", "d")
    host.add_bookmark("bm", para_range(host, 1, 2))
    remnant = host.clear_range(para_range(host, 1, 2))
    host.insert_paragraph("new", remnant, "before")
    host.delete_paragraph(remnant)
    host.flush()
    assert texts(host) == ["a", "new", "d"]
    (bm,) = host.bookmarks()
    assert bm.name == "bm"
    assert host.range_text(host.bookmark_range(bm.handle)) == "new"


def test_set_text_keeps_bookmark():
    host = build_host("a", "b")
    host.add_bookmark("bm", para_range(host, 1))
    host.set_text(host.paragraphs()[1].handle, "B")
    host.flush()
    (bm,) = host.bookmarks()
    assert host.range_text(host.bookmark_range(bm.handle)) == "B"
