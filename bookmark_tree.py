"""
In-memory model of a Chrome/Edge bookmark file.

The JSON document has a ``roots`` object holding up to three folders
(``bookmark_bar``, ``other``, ``synced``). Nodes are parsed once into
``Folder`` / ``UrlBookmark`` objects; keys we don't model are carried in
``extra`` so a rewritten file keeps ids, guids and metadata intact.
Timestamps are kept as read (string or number) for the same reason.
"""

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from chrome_time import to_chrome_timestamp

ROOT_NAMES = ("bookmark_bar", "other", "synced")
UNNAMED_FOLDER = "Unnamed folder"

FOLDER_KEYS = {"type", "name", "date_added", "date_modified", "children"}
URL_KEYS = {"type", "name", "url", "date_added", "icon"}


class BookmarkFormatError(ValueError):
    """The bookmark document does not have the expected shape."""


@dataclass
class UrlBookmark:
    url: str
    name: str
    date_added: Optional[Any] = None
    icon: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data["type"] = "url"
        data["name"] = self.name
        data["url"] = self.url
        if self.date_added is not None:
            data["date_added"] = self.date_added
        if self.icon is not None:
            data["icon"] = self.icon
        return data


@dataclass
class Folder:
    name: str
    date_added: Optional[Any] = None
    date_modified: Optional[Any] = None
    children: List["BookmarkNode"] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, name: str) -> "Folder":
        """Create an empty folder stamped with the current time"""
        now = to_chrome_timestamp()
        return cls(name=name, date_added=now, date_modified=now)

    def remove_child(self, index: int) -> "BookmarkNode":
        return self.children.pop(index)

    def find_folder(self, name: str) -> Optional["Folder"]:
        """Return the first direct child folder named exactly ``name``"""
        for child in self.children:
            if isinstance(child, Folder) and child.name == name:
                return child
        return None

    def find_or_create_folder(self, name: str) -> "Folder":
        existing = self.find_folder(name)
        if existing is not None:
            return existing
        folder = Folder.create(name)
        self.children.append(folder)
        return folder

    def iter_urls(self) -> Iterator[UrlBookmark]:
        """Yield every URL bookmark below this folder, depth first"""
        for child in self.children:
            if isinstance(child, Folder):
                yield from child.iter_urls()
            elif isinstance(child, UrlBookmark):
                yield child

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data["type"] = "folder"
        data["name"] = self.name
        if self.date_added is not None:
            data["date_added"] = self.date_added
        if self.date_modified is not None:
            data["date_modified"] = self.date_modified
        data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class OpaqueNode:
    """A child we don't recognise, written back exactly as it was read."""
    raw: Any

    def to_dict(self) -> Any:
        return self.raw


BookmarkNode = Union[Folder, UrlBookmark, OpaqueNode]


@dataclass
class DeadEntry:
    """An unreachable bookmark and the folder names leading to it."""
    path: Tuple[str, ...]
    node: UrlBookmark

    @classmethod
    def capture(cls, path: List[str], node: UrlBookmark) -> "DeadEntry":
        return cls(path=tuple(path), node=copy.deepcopy(node))

    @property
    def label(self) -> str:
        return " / ".join(self.path)


def node_from_dict(data: Any) -> BookmarkNode:
    """Parse one JSON node, applying defaults for absent fields.

    Non-object children and unknown node types become ``OpaqueNode``;
    they are never probed or exported but survive a rewrite unchanged.
    """
    if not isinstance(data, dict):
        return OpaqueNode(data)

    node_type = str(data.get("type", "")).lower()

    if node_type == "url":
        url = data.get("url") or ""
        name = data.get("name")
        if name is None:
            name = url
        return UrlBookmark(
            url=url,
            name=name,
            date_added=data.get("date_added"),
            icon=data.get("icon"),
            extra={k: v for k, v in data.items() if k not in URL_KEYS},
        )

    if node_type == "folder":
        children = data.get("children") or []
        if not isinstance(children, list):
            raise BookmarkFormatError(f"Folder children must be a list: {data.get('name')!r}")
        name = data.get("name")
        if name is None:
            name = UNNAMED_FOLDER
        return Folder(
            name=name,
            date_added=data.get("date_added"),
            date_modified=data.get("date_modified"),
            children=[node_from_dict(child) for child in children],
            extra={k: v for k, v in data.items() if k not in FOLDER_KEYS},
        )

    return OpaqueNode(data)


@dataclass
class BookmarkTree:
    roots: Dict[str, Folder] = field(default_factory=dict)
    extra_roots: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, document: Any) -> "BookmarkTree":
        if not isinstance(document, dict):
            raise BookmarkFormatError("Bookmark document is not a JSON object")

        roots = document.get("roots")
        if not isinstance(roots, dict):
            raise BookmarkFormatError("Bookmark document has no 'roots' object")

        tree = cls(metadata={k: v for k, v in document.items() if k != "roots"})
        for root_name, root_node in roots.items():
            if root_name not in ROOT_NAMES:
                tree.extra_roots[root_name] = root_node
                continue
            if root_node is None:
                continue
            folder = node_from_dict(root_node)
            if not isinstance(folder, Folder):
                raise BookmarkFormatError(f"Root '{root_name}' is not a folder")
            tree.roots[root_name] = folder
        return tree

    @classmethod
    def load(cls, path: str) -> "BookmarkTree":
        """Load a bookmark file; raises BookmarkFormatError if it can't be used"""
        with open(path, 'r', encoding='utf-8') as f:
            try:
                document = json.load(f)
            except json.JSONDecodeError as e:
                raise BookmarkFormatError(f"Invalid JSON in {path}: {e}") from e
            except UnicodeDecodeError as e:
                raise BookmarkFormatError(f"{path} is not valid UTF-8: {e}") from e
        return cls.from_dict(document)

    def iter_roots(self) -> Iterator[Tuple[str, Folder]]:
        """Yield present roots in canonical order"""
        for root_name in ROOT_NAMES:
            if root_name in self.roots:
                yield root_name, self.roots[root_name]

    def count_urls(self) -> int:
        return sum(
            1
            for _, root in self.iter_roots()
            for bookmark in root.iter_urls()
            if bookmark.url.strip()
        )

    def to_dict(self) -> Dict[str, Any]:
        roots: Dict[str, Any] = {}
        for root_name, root in self.iter_roots():
            roots[root_name] = root.to_dict()
        roots.update(self.extra_roots)

        document = dict(self.metadata)
        document["roots"] = roots
        return document

    def save(self, path: str):
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
