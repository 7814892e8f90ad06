"""
Locate Chrome/Edge bookmark files for every browser profile.
"""

import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional


@dataclass
class BookmarkFile:
    browser: str
    profile: str
    path: str

    @classmethod
    def from_path(cls, path: str) -> 'BookmarkFile':
        """Describe a bookmark file given explicitly on the command line"""
        parent = os.path.basename(os.path.dirname(os.path.abspath(path)))
        return cls(browser="custom", profile=parent or "unknown", path=path)


def user_data_dirs(system: Optional[str] = None) -> Dict[str, Path]:
    """Browser user-data directories for the current OS"""
    system = system or platform.system()

    if system == "Windows":
        base = Path(os.environ.get('LOCALAPPDATA', ''))
        return {
            "chrome": base / "Google" / "Chrome" / "User Data",
            "edge": base / "Microsoft" / "Edge" / "User Data",
        }
    if system == "Darwin":
        base = Path.home() / "Library" / "Application Support"
        return {
            "chrome": base / "Google" / "Chrome",
            "edge": base / "Microsoft Edge",
        }
    if system == "Linux":
        base = Path.home() / ".config"
        return {
            "chrome": base / "google-chrome",
            "edge": base / "microsoft-edge",
        }
    return {}


def is_profile_dir(name: str) -> bool:
    return name.lower() == "default" or name.lower().startswith("profile")


def discover_bookmark_files(browsers: Iterable[str], base_dirs: Optional[Dict[str, Path]] = None) -> List[BookmarkFile]:
    """Find ``Bookmarks`` files in the Default and Profile* directories"""
    if base_dirs is None:
        base_dirs = user_data_dirs()

    result = []
    for browser in browsers:
        base_dir = base_dirs.get(browser)
        if base_dir is None or not base_dir.is_dir():
            continue

        for profile_dir in sorted(base_dir.iterdir()):
            if not profile_dir.is_dir() or not is_profile_dir(profile_dir.name):
                continue
            bookmark_path = profile_dir / "Bookmarks"
            if bookmark_path.is_file():
                result.append(BookmarkFile(browser, profile_dir.name, str(bookmark_path)))

    return result
