"""
Netscape-format HTML export.

The live hierarchy of every root is written under one container folder,
skipping any URL that was found unreachable. The unreachable links follow
in a last top-level folder, grouped by root and by original folder path.
"""

import logging
import os
from datetime import datetime
from typing import Dict, List, Optional, Set, Union

from bookmark_tree import BookmarkTree, DeadEntry, Folder, UrlBookmark
from chrome_time import chrome_timestamp_to_unix

logger = logging.getLogger('bookmark_audit.html_exporter')

UNREACHABLE_FOLDER = "Unreachable"
ROOT_LEVEL_LABEL = "(root)"


def escape_html(text: Optional[str]) -> str:
    if not text:
        return ""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def collect_dead_urls(dead_by_root: Dict[str, List[DeadEntry]]) -> Set[str]:
    """Lower-cased URLs of every dead entry, for case-insensitive lookups"""
    return {
        entry.node.url.lower()
        for entries in dead_by_root.values()
        for entry in entries
        if entry.node.url.strip()
    }


def group_by_path(entries: List[DeadEntry]) -> Dict[str, List[DeadEntry]]:
    """Group dead entries by path label, in first-seen order"""
    groups: Dict[str, List[DeadEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.label, []).append(entry)
    return groups


def _bookmark_line(indent: str, url: str, title: str, date_added: Optional[Union[str, int]], icon: Optional[str] = None) -> str:
    add_date = chrome_timestamp_to_unix(date_added)
    icon_attr = f' ICON="{escape_html(icon)}"' if icon else ""
    return f'{indent}<DT><A HREF="{escape_html(url)}" ADD_DATE="{add_date}"{icon_attr}>{escape_html(title)}</A>'


def _write_folder(folder: Folder, lines: List[str], dead_urls: Set[str], depth: int):
    """Append the children of ``folder``; the caller has written its header"""
    indent = "  " * depth
    for child in folder.children:
        if isinstance(child, Folder):
            lines.append(f'{indent}<DT><H3>{escape_html(child.name)}</H3>')
            lines.append(f'{indent}<DL><p>')
            _write_folder(child, lines, dead_urls, depth + 1)
            lines.append(f'{indent}</DL><p>')
        elif isinstance(child, UrlBookmark) and child.url.lower() not in dead_urls:
            lines.append(_bookmark_line(indent, child.url, child.name, child.date_added, child.icon))


def export_html(tree: BookmarkTree, dead_by_root: Dict[str, List[DeadEntry]], now: Optional[datetime] = None) -> str:
    """Render the export document. The tree is only read, never changed."""
    if now is None:
        now = datetime.now()

    dead_urls = collect_dead_urls(dead_by_root)
    container_name = f"Exported_Bookmarks_{now.strftime('%Y%m%d_%H%M%S')}"

    lines = [
        '<!DOCTYPE NETSCAPE-Bookmark-file-1>',
        '<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">',
        '<TITLE>Bookmarks</TITLE>',
        '<H1>Bookmarks</H1>',
        '<DL><p>',
        f'  <DT><H3>{escape_html(container_name)}</H3>',
        '  <DL><p>',
    ]

    for root_name, root in tree.iter_roots():
        lines.append(f'    <DT><H3>{escape_html(root_name)}</H3>')
        lines.append('    <DL><p>')
        _write_folder(root, lines, dead_urls, 3)
        lines.append('    </DL><p>')

    lines.append(f'    <DT><H3>{UNREACHABLE_FOLDER}</H3>')
    lines.append('    <DL><p>')
    for root_name, entries in dead_by_root.items():
        lines.append(f'      <DT><H3>{escape_html(root_name)}</H3>')
        lines.append('      <DL><p>')
        for label, group in group_by_path(entries).items():
            lines.append(f'        <DT><H3>{escape_html(label or ROOT_LEVEL_LABEL)}</H3>')
            lines.append('        <DL><p>')
            for entry in group:
                lines.append(_bookmark_line('          ', entry.node.url, entry.node.name, entry.node.date_added))
            lines.append('        </DL><p>')
        lines.append('      </DL><p>')
    lines.append('    </DL><p>')

    lines.append('  </DL><p>')
    lines.append('</DL><p>')
    return "\n".join(lines) + "\n"


def safe_file_part(text: str) -> str:
    """Strip characters that are not allowed in file names"""
    return "".join(ch for ch in text if ch not in '<>:"/\\|?*' and ord(ch) >= 32)


def write_html_export(tree: BookmarkTree, dead_by_root: Dict[str, List[DeadEntry]], output_dir: str,
                      browser: str, profile: str, now: Optional[datetime] = None) -> str:
    """Write the export file into ``output_dir`` and return its path"""
    if now is None:
        now = datetime.now()

    os.makedirs(output_dir, exist_ok=True)
    file_name = f"Bookmarks_Export_{browser}_{safe_file_part(profile)}_{now.strftime('%Y%m%d_%H%M%S')}.html"
    output_file = os.path.join(output_dir, file_name)

    with open(output_file, 'w', encoding='utf-8') as f:
        f.write(export_html(tree, dead_by_root, now))

    logger.info(f"Exported {len(collect_dead_urls(dead_by_root))} unreachable URLs to {output_file}")
    return output_file
