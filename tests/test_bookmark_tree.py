"""Tests for the bookmark tree model."""
import json

import pytest

from bookmark_tree import (
    BookmarkFormatError,
    BookmarkTree,
    DeadEntry,
    Folder,
    OpaqueNode,
    UrlBookmark,
    UNNAMED_FOLDER,
    node_from_dict,
)


class TestNodeFromDict:

    def test_url_node(self):
        node = node_from_dict({"type": "url", "name": "Python", "url": "https://python.org",
                               "date_added": "13300000000000000", "id": "42"})
        assert isinstance(node, UrlBookmark)
        assert node.name == "Python"
        assert node.url == "https://python.org"
        assert node.date_added == "13300000000000000"
        assert node.extra == {"id": "42"}

    def test_url_name_defaults_to_url(self):
        node = node_from_dict({"type": "url", "url": "https://example.com"})
        assert node.name == "https://example.com"

    def test_type_is_case_insensitive(self):
        assert isinstance(node_from_dict({"type": "URL", "url": "https://a"}), UrlBookmark)
        assert isinstance(node_from_dict({"type": "Folder", "name": "x"}), Folder)

    def test_folder_defaults(self):
        node = node_from_dict({"type": "folder"})
        assert node.name == UNNAMED_FOLDER
        assert node.children == []

    def test_empty_names_are_kept(self):
        url = node_from_dict({"type": "url", "name": "", "url": "https://example.com/icon-only"})
        folder = node_from_dict({"type": "folder", "name": ""})
        assert url.name == ""
        assert folder.name == ""
        assert url.to_dict()["name"] == ""
        assert folder.to_dict()["name"] == ""

    def test_numeric_timestamps_kept_as_read(self):
        node = node_from_dict({"type": "url", "url": "https://a", "date_added": 13300000000000000})
        assert node.date_added == 13300000000000000
        assert node.to_dict()["date_added"] == 13300000000000000

    @pytest.mark.parametrize("raw", [
        {"type": "separator", "id": "9"},
        {"name": "no type"},
        ["not", "a", "node"],
        "stray text",
        None,
    ])
    def test_unrecognised_child_passes_through(self, raw):
        node = node_from_dict(raw)
        assert isinstance(node, OpaqueNode)
        assert node.to_dict() == raw

    def test_folder_keeps_unrecognised_children(self):
        raw = {"type": "folder", "name": "Mixed", "children": [
            {"type": "separator"},
            {"type": "url", "name": "a", "url": "https://a"},
            42,
        ]}
        folder = node_from_dict(raw)
        assert [type(c) for c in folder.children] == [OpaqueNode, UrlBookmark, OpaqueNode]
        assert [b.url for b in folder.iter_urls()] == ["https://a"]
        assert folder.to_dict() == raw

    def test_children_must_be_list(self):
        with pytest.raises(BookmarkFormatError):
            node_from_dict({"type": "folder", "name": "x", "children": {"a": 1}})


class TestBookmarkTree:

    def test_from_dict_parses_roots(self, sample_document):
        tree = BookmarkTree.from_dict(sample_document)
        assert [name for name, _ in tree.iter_roots()] == ["bookmark_bar", "other", "synced"]
        assert tree.roots["bookmark_bar"].children[0].name == "A"

    def test_missing_root_is_tolerated(self, sample_document):
        del sample_document["roots"]["synced"]
        tree = BookmarkTree.from_dict(sample_document)
        assert "synced" not in tree.roots
        assert [name for name, _ in tree.iter_roots()] == ["bookmark_bar", "other"]

    def test_missing_roots_rejected(self):
        with pytest.raises(BookmarkFormatError):
            BookmarkTree.from_dict({"version": 1})

    def test_non_object_document_rejected(self):
        with pytest.raises(BookmarkFormatError):
            BookmarkTree.from_dict([1, 2, 3])

    def test_root_must_be_folder(self, sample_document):
        sample_document["roots"]["other"] = {"type": "url", "url": "https://a"}
        with pytest.raises(BookmarkFormatError):
            BookmarkTree.from_dict(sample_document)

    def test_round_trip_preserves_document(self, sample_document):
        tree = BookmarkTree.from_dict(sample_document)
        assert tree.to_dict() == sample_document

    def test_unknown_roots_are_kept(self, sample_document):
        sample_document["roots"]["workspaces"] = {"children": [], "type": "folder"}
        tree = BookmarkTree.from_dict(sample_document)
        assert "workspaces" not in tree.roots
        assert tree.to_dict()["roots"]["workspaces"] == {"children": [], "type": "folder"}

    def test_count_urls(self, sample_document):
        tree = BookmarkTree.from_dict(sample_document)
        assert tree.count_urls() == 7

    def test_count_urls_skips_empty_url(self, sample_document):
        sample_document["roots"]["synced"]["children"].append({"type": "url", "name": "blank", "url": ""})
        tree = BookmarkTree.from_dict(sample_document)
        assert tree.count_urls() == 7

    def test_load_and_save(self, bookmark_path, tmp_path, sample_document):
        tree = BookmarkTree.load(bookmark_path)
        out = tmp_path / "out.json"
        tree.save(str(out))
        text = out.read_text(encoding="utf-8")
        assert text.startswith("{\n  ")
        assert json.loads(text) == sample_document

    def test_save_keeps_non_ascii(self, tmp_path):
        tree = BookmarkTree(roots={"other": Folder(name="Lesezeichen", children=[
            UrlBookmark(url="https://example.de", name="Übersicht")])})
        out = tmp_path / "out.json"
        tree.save(str(out))
        assert "Übersicht" in out.read_text(encoding="utf-8")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "Bookmarks"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(BookmarkFormatError):
            BookmarkTree.load(str(path))

    def test_load_invalid_utf8(self, tmp_path):
        path = tmp_path / "Bookmarks"
        path.write_bytes(b'{"roots": {"other": {"type": "folder", "name": "\xff\xfe", "children": []}}}')
        with pytest.raises(BookmarkFormatError, match="UTF-8"):
            BookmarkTree.load(str(path))


class TestFolder:

    def test_find_folder_exact_match(self):
        folder = Folder(name="root", children=[
            UrlBookmark(url="https://a", name="Tech"),
            Folder(name="tech"),
            Folder(name="Tech"),
        ])
        assert folder.find_folder("Tech") is folder.children[2]
        assert folder.find_folder("TECH") is None

    def test_find_or_create_reuses(self):
        folder = Folder(name="root")
        first = folder.find_or_create_folder("Tech")
        second = folder.find_or_create_folder("Tech")
        assert first is second
        assert len(folder.children) == 1

    def test_created_folder_is_stamped(self):
        folder = Folder.create("New")
        assert folder.date_added == folder.date_modified
        assert int(folder.date_added) > 0

    def test_remove_child(self):
        folder = Folder(name="root", children=[Folder(name="a"), Folder(name="b")])
        removed = folder.remove_child(0)
        assert removed.name == "a"
        assert [c.name for c in folder.children] == ["b"]

    def test_iter_urls_depth_first(self, sample_document):
        tree = BookmarkTree.from_dict(sample_document)
        names = [b.name for b in tree.roots["other"].iter_urls()]
        assert names == ["ai1", "ai2", "ai3", "Loose dead"]


class TestDeadEntry:

    def test_capture_is_independent_copy(self):
        node = UrlBookmark(url="https://a", name="A", extra={"meta_info": {"k": "v"}})
        path = ["Tech", "AI"]
        entry = DeadEntry.capture(path, node)

        node.name = "changed"
        node.extra["meta_info"]["k"] = "changed"
        path.append("More")

        assert entry.node.name == "A"
        assert entry.node.extra["meta_info"]["k"] == "v"
        assert entry.path == ("Tech", "AI")

    def test_label(self):
        assert DeadEntry(("Tech", "AI"), UrlBookmark(url="https://a", name="a")).label == "Tech / AI"
        assert DeadEntry((), UrlBookmark(url="https://a", name="a")).label == ""
