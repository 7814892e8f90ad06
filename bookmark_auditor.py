#!/usr/bin/env python3
"""
Browser Bookmark Audit Tool
Checks every bookmarked URL and either exports the live bookmarks plus an
"Unreachable" section to HTML, or rewrites the bookmark file in place with
dead links moved into a quarantine folder (after taking a backup).
"""

import argparse
import logging
import os
import shutil
import sys
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from tqdm import tqdm

from audit_config import AuditConfig, SUPPORTED_BROWSERS, DEFAULT_TIMEOUT, MODES
from bookmark_tree import BookmarkFormatError, BookmarkTree, DeadEntry, Folder, UrlBookmark
from html_exporter import write_html_export
from link_checker import LinkChecker
from profile_finder import BookmarkFile, discover_bookmark_files

logger = logging.getLogger('bookmark_audit.auditor')

QUARANTINE_PREFIX = "Unreachable_"


def setup_audit_logger(log_dir: str = "./logs") -> logging.Logger:
    """Set up the file logger shared by all audit modules"""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    # Create logs directory if it doesn't exist
    os.makedirs(log_dir, exist_ok=True)

    log_filename = os.path.join(log_dir, f"{timestamp}.log")

    audit_logger = logging.getLogger('bookmark_audit')
    audit_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    audit_logger.handlers.clear()

    file_handler = logging.FileHandler(log_filename, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    audit_logger.addHandler(file_handler)

    # Keep probe details out of the console
    audit_logger.propagate = False

    audit_logger.info("=== Bookmark Audit Log Started ===")
    print(f"📝 Detailed logging enabled: {log_filename}")

    return audit_logger


@dataclass
class TraversalResult:
    """Counts and dead links gathered while walking one folder tree"""
    checked: int = 0
    dead: List[DeadEntry] = field(default_factory=list)

    @property
    def dead_count(self) -> int:
        return len(self.dead)

    def merge(self, other: 'TraversalResult'):
        self.checked += other.checked
        self.dead.extend(other.dead)


def traverse_folder(folder: Folder, path: List[str], checker: LinkChecker, timeout: Optional[float] = None,
                    mutate: bool = False, on_checked: Optional[Callable[[], None]] = None,
                    on_dead: Optional[Callable[[UrlBookmark], None]] = None) -> TraversalResult:
    """Probe every URL below ``folder`` exactly once.

    Children are visited last to first so that, when ``mutate`` is set,
    removing a dead child never shifts the indices still to be visited.
    ``path`` holds the folder names from the root down to ``folder``.
    Children that are neither folders nor URL bookmarks are left alone.
    """
    result = TraversalResult()

    for index in reversed(range(len(folder.children))):
        child = folder.children[index]

        if isinstance(child, Folder):
            path.append(child.name)
            try:
                result.merge(traverse_folder(child, path, checker, timeout, mutate, on_checked, on_dead))
            finally:
                path.pop()
            continue

        if not isinstance(child, UrlBookmark) or not child.url.strip():
            continue

        result.checked += 1
        alive = checker.probe_either(child.url, timeout)
        if on_checked:
            on_checked()

        if alive:
            continue

        logger.info(f"Unreachable: {child.url} ({' / '.join(path) or 'root'})")
        result.dead.append(DeadEntry.capture(path, child))
        if on_dead:
            on_dead(child)
        if mutate:
            folder.remove_child(index)

    return result


def reinsert_dead_link(container: Folder, path: Sequence[str], node: UrlBookmark):
    """Place ``node`` under ``container`` at the same folder path it came from.

    Existing folders with a matching name are reused, so entries sharing a
    path prefix end up in one folder chain.
    """
    cursor = container
    for folder_name in path:
        cursor = cursor.find_or_create_folder(folder_name)
    cursor.children.append(node)


def quarantine_folder_name(now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now()
    return f"{QUARANTINE_PREFIX}{now.strftime('%Y%m%d_%H%M%S')}"


def rewrite_in_place(tree: BookmarkTree, dead_by_root: Dict[str, List[DeadEntry]],
                     now: Optional[datetime] = None) -> BookmarkTree:
    """Add a quarantine folder to each root holding its dead links.

    The dead nodes must already have been removed from their original
    folders (``traverse_folder`` with ``mutate=True``).
    """
    folder_name = quarantine_folder_name(now)

    for root_name, entries in dead_by_root.items():
        root = tree.roots.get(root_name)
        if root is None or not entries:
            continue

        quarantine = root.find_or_create_folder(folder_name)
        for entry in entries:
            reinsert_dead_link(quarantine, entry.path, entry.node)
        logger.info(f"Moved {len(entries)} dead links into {root_name}/{folder_name}")

    # The stored checksum no longer matches the content
    tree.metadata.pop("checksum", None)
    return tree


class BookmarkAuditor:
    def __init__(self, bookmark_file: BookmarkFile, checker: LinkChecker):
        self.bookmark_file = bookmark_file
        self.checker = checker
        self.tree: Optional[BookmarkTree] = None
        self.dead_by_root: Dict[str, List[DeadEntry]] = {}
        self.checked_count = 0
        self.dead_count = 0

    def load_bookmarks(self) -> BookmarkTree:
        """Load bookmarks from Chrome/Edge bookmark file"""
        self.tree = BookmarkTree.load(self.bookmark_file.path)
        return self.tree

    def create_backup(self, now: Optional[datetime] = None) -> str:
        """Create a backup of the original bookmark file"""
        if now is None:
            now = datetime.now()
        backup_file = f"{self.bookmark_file.path}.bak_{now.strftime('%Y%m%d_%H%M%S')}"
        if os.path.exists(backup_file):
            raise FileExistsError(f"Backup file already exists: {backup_file}")
        shutil.copy2(self.bookmark_file.path, backup_file)
        logger.info(f"Backup created: {backup_file}")
        return backup_file

    def check_links(self, mutate: bool = False) -> Dict[str, List[DeadEntry]]:
        """Probe every URL of the three roots; dead lists are kept per root"""
        if self.tree is None:
            self.load_bookmarks()

        self.dead_by_root = {}
        self.checked_count = 0
        self.dead_count = 0

        with tqdm(total=self.tree.count_urls(), desc="Checking links") as progress:
            for root_name, root in self.tree.iter_roots():
                result = traverse_folder(root, [], self.checker, mutate=mutate, on_checked=progress.update)
                self.checked_count += result.checked
                self.dead_count += result.dead_count
                if result.dead:
                    self.dead_by_root[root_name] = result.dead

        logger.info(f"{self.bookmark_file.path}: checked {self.checked_count}, dead {self.dead_count}")
        return self.dead_by_root

    def export_html(self, output_dir: str, now: Optional[datetime] = None) -> str:
        return write_html_export(self.tree, self.dead_by_root, output_dir,
                                 self.bookmark_file.browser, self.bookmark_file.profile, now)

    def save_bookmarks(self, output_file: Optional[str] = None):
        """Write the tree back as indented JSON (over the original by default)"""
        self.tree.save(output_file or self.bookmark_file.path)

    def rewrite(self, now: Optional[datetime] = None) -> str:
        """Back up the file, relocate dead links and save. Returns the backup path."""
        backup_file = self.create_backup(now)
        rewrite_in_place(self.tree, self.dead_by_root, now)
        self.save_bookmarks()
        return backup_file


def audit_bookmark_file(bookmark_file: BookmarkFile, checker: LinkChecker, config: AuditConfig,
                        now: Optional[datetime] = None) -> Optional[str]:
    """Process one bookmark file; returns the written path, if any"""
    print(f"\n📚 Processing {bookmark_file.browser} - {bookmark_file.profile}")
    auditor = BookmarkAuditor(bookmark_file, checker)

    try:
        auditor.load_bookmarks()
    except (BookmarkFormatError, OSError) as e:
        logger.warning(f"Skipping {bookmark_file.path}: {e}")
        print(f"❌ Could not read bookmark file, skipped: {e}")
        return None

    rewrite = config.mode == "rewrite"
    auditor.check_links(mutate=rewrite)
    print(f"🔍 Checked {auditor.checked_count} URLs, {auditor.dead_count} unreachable")

    if now is None:
        now = datetime.now()

    if rewrite:
        if not auditor.dead_by_root:
            print("✅ No unreachable links, bookmark file left unchanged")
            return None
        backup_file = auditor.rewrite(now)
        print(f"📄 Backup created: {backup_file}")
        print(f"💾 Dead links moved to '{quarantine_folder_name(now)}' in: {bookmark_file.path}")
        return bookmark_file.path

    output_file = auditor.export_html(config.output_dir, now)
    print(f"💾 Exported HTML bookmarks to: {output_file}")
    return output_file


def ask_yes_no(question: str, default: bool) -> bool:
    suffix = "Y/n" if default else "y/N"
    while True:
        answer = input(f"{question} ({suffix}): ").lower().strip()
        if not answer:
            return default
        if answer in ['y', 'yes']:
            return True
        if answer in ['n', 'no']:
            return False
        print("Please enter 'y' or 'n'")


def prompt_user_options(config: AuditConfig) -> AuditConfig:
    """Ask for browsers, timeout and proxy on the console"""
    browsers = [browser for browser in SUPPORTED_BROWSERS
                if ask_yes_no(f"Scan {browser.title()} bookmarks?", True)]
    if not browsers:
        print("⚠️ No browser selected, scanning Chrome and Edge.")
        browsers = list(SUPPORTED_BROWSERS)

    while True:
        answer = input(f"Request timeout in seconds (5-15 recommended) [{DEFAULT_TIMEOUT}]: ").strip()
        if not answer:
            timeout = DEFAULT_TIMEOUT
            break
        try:
            timeout = int(answer)
            break
        except ValueError:
            print("Invalid input. Please enter a number.")

    proxy = None
    if ask_yes_no("Use a proxy?", False):
        proxy = input("Proxy address (e.g. http://127.0.0.1:7890 or socks5://127.0.0.1:1080): ").strip() or None

    return replace(config, browsers=browsers, timeout=timeout, proxy=proxy)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Browser Bookmark Audit Tool")
    parser.add_argument("bookmark_files", nargs="*", help="Bookmark files to audit (default: discover Chrome/Edge profiles)")
    parser.add_argument("--browser", action="append", choices=SUPPORTED_BROWSERS, help="Browser to scan (repeatable)")
    parser.add_argument("--timeout", type=int, help="Request timeout in seconds")
    parser.add_argument("--proxy", help="Proxy URI, e.g. http://127.0.0.1:7890 or socks5://127.0.0.1:1080")
    parser.add_argument("--mode", choices=MODES, help="'export' writes an HTML file, 'rewrite' edits the bookmark file")
    parser.add_argument("--output-dir", help="Directory for HTML exports")
    parser.add_argument("--interactive", action="store_true", help="Ask for browsers, timeout and proxy")

    args = parser.parse_args(argv)

    try:
        config = AuditConfig.from_env()
        overrides = {
            'browsers': args.browser,
            'timeout': args.timeout,
            'proxy': args.proxy,
            'mode': args.mode,
            'output_dir': args.output_dir,
        }
        config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        return 2

    if args.interactive:
        config = prompt_user_options(config)

    setup_audit_logger(config.log_dir)

    if args.bookmark_files:
        bookmark_files = []
        for path in args.bookmark_files:
            if os.path.exists(path):
                bookmark_files.append(BookmarkFile.from_path(path))
            else:
                print(f"Error: Bookmark file '{path}' not found.")
    else:
        bookmark_files = discover_bookmark_files(config.browsers)

    if not bookmark_files:
        print("❌ No Chrome/Edge bookmark files found.")
        return 1

    print(f"📚 Found {len(bookmark_files)} bookmark file(s).")

    checker = LinkChecker.from_config(config)
    try:
        for bookmark_file in bookmark_files:
            try:
                audit_bookmark_file(bookmark_file, checker, config)
            except FileExistsError as e:
                logger.error(f"Rewrite of {bookmark_file.path} aborted: {e}")
                print(f"❌ Rewrite aborted: {e}")
    finally:
        checker.close()

    print("\n✅ Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
