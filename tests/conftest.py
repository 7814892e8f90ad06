import json
import os

import pytest
import requests

from link_checker import LinkChecker


LIVE = 200
DATE_ADDED = "13300000000000000"  # 2022-06-18T04:26:40Z


class FakeResponse:
    """Minimal stand-in for requests.Response used as a context manager."""

    def __init__(self, status_code):
        self.status_code = status_code
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False


class FakeSession:
    """Scripted session: maps URL -> status code or exception instance.

    Unknown URLs answer 404.
    """

    def __init__(self, head=None, get=None):
        self.head_map = head or {}
        self.get_map = get or {}
        self.calls = []
        self.closed = False

    def _respond(self, method, mapping, url, kwargs):
        self.calls.append((method, url, kwargs))
        result = mapping.get(url, 404)
        if isinstance(result, Exception):
            raise result
        return FakeResponse(result)

    def head(self, url, **kwargs):
        return self._respond("HEAD", self.head_map, url, kwargs)

    def get(self, url, **kwargs):
        return self._respond("GET", self.get_map, url, kwargs)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_session():
    """Factory for scripted sessions."""
    return FakeSession


@pytest.fixture
def sample_document():
    """A Chrome bookmark document with live and dead links in two roots."""
    return {
        "checksum": "0123456789abcdef",
        "roots": {
            "bookmark_bar": {
                "type": "folder",
                "name": "Bookmarks bar",
                "id": "1",
                "date_added": DATE_ADDED,
                "date_modified": DATE_ADDED,
                "children": [
                    {
                        "type": "folder",
                        "name": "A",
                        "id": "4",
                        "date_added": DATE_ADDED,
                        "date_modified": DATE_ADDED,
                        "children": [
                            {"type": "url", "name": "u1", "url": "https://dead.example/u1",
                             "id": "5", "guid": "guid-u1", "date_added": DATE_ADDED},
                            {"type": "url", "name": "u2", "url": "https://live.example/u2",
                             "id": "6", "date_added": DATE_ADDED},
                        ],
                    },
                    {"type": "url", "name": "Top", "url": "https://live.example/top",
                     "id": "7", "date_added": DATE_ADDED},
                ],
            },
            "other": {
                "type": "folder",
                "name": "Other bookmarks",
                "id": "2",
                "date_added": DATE_ADDED,
                "date_modified": DATE_ADDED,
                "children": [
                    {
                        "type": "folder",
                        "name": "Tech",
                        "id": "8",
                        "children": [
                            {
                                "type": "folder",
                                "name": "AI",
                                "id": "9",
                                "children": [
                                    {"type": "url", "name": "ai1", "url": "https://dead.example/ai1",
                                     "id": "10", "date_added": DATE_ADDED},
                                    {"type": "url", "name": "ai2", "url": "https://dead.example/ai2",
                                     "id": "11", "date_added": DATE_ADDED},
                                    {"type": "url", "name": "ai3", "url": "https://live.example/ai3",
                                     "id": "12", "date_added": DATE_ADDED},
                                ],
                            }
                        ],
                    },
                    {"type": "url", "name": "Loose dead", "url": "https://dead.example/loose",
                     "id": "13", "date_added": DATE_ADDED},
                ],
            },
            "synced": {
                "type": "folder",
                "name": "Mobile bookmarks",
                "id": "3",
                "date_added": DATE_ADDED,
                "date_modified": DATE_ADDED,
                "children": [],
            },
        },
        "version": 1,
    }


@pytest.fixture
def head_statuses():
    """HEAD answers for every URL in ``sample_document``."""
    return {
        "https://dead.example/u1": 500,
        "https://live.example/u2": LIVE,
        "https://live.example/top": LIVE,
        "https://dead.example/ai1": 404,
        "https://dead.example/ai2": requests.ConnectionError("connection refused"),
        "https://live.example/ai3": LIVE,
        "https://dead.example/loose": 410,
    }


@pytest.fixture
def checker(fake_session, head_statuses):
    """LinkChecker with a direct scripted session and no proxy."""
    return LinkChecker(fake_session(head=head_statuses), timeout=3)


@pytest.fixture
def bookmark_path(tmp_path, sample_document):
    """Write ``sample_document`` to a Default profile ``Bookmarks`` file."""
    profile_dir = tmp_path / "Default"
    profile_dir.mkdir()
    path = profile_dir / "Bookmarks"
    path.write_text(json.dumps(sample_document, indent=3), encoding="utf-8")
    return str(path)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove audit settings from the environment and log into tmp_path."""
    for key in list(os.environ):
        if key.startswith("BOOKMARK_AUDIT_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("BOOKMARK_AUDIT_LOG_DIR", str(tmp_path / "logs"))
    return monkeypatch
