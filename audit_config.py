"""
Configuration for the bookmark audit
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

# Load .env file
from dotenv import load_dotenv
load_dotenv()  # This will load .env from current directory or parent directories

SUPPORTED_BROWSERS = ("chrome", "edge")
MODES = ("export", "rewrite")
DEFAULT_TIMEOUT = 8


def default_output_dir() -> str:
    return os.path.join(os.path.expanduser("~"), "Documents")


def parse_browsers(text: str) -> List[str]:
    browsers = [part.strip().lower() for part in text.split(",") if part.strip()]
    for browser in browsers:
        if browser not in SUPPORTED_BROWSERS:
            raise ValueError(f"Unsupported browser: {browser}. Supported: {', '.join(SUPPORTED_BROWSERS)}")
    return browsers or list(SUPPORTED_BROWSERS)


@dataclass
class AuditConfig:
    """Settings for one audit run"""
    browsers: List[str] = field(default_factory=lambda: list(SUPPORTED_BROWSERS))
    timeout: int = DEFAULT_TIMEOUT  # seconds per request
    proxy: Optional[str] = None  # e.g. http://127.0.0.1:7890 or socks5://127.0.0.1:1080
    mode: str = "export"  # "export" writes an HTML file, "rewrite" edits the bookmark file
    output_dir: str = field(default_factory=default_output_dir)
    log_dir: str = "./logs"

    def __post_init__(self):
        if self.mode not in MODES:
            raise ValueError(f"Unsupported mode: {self.mode}. Supported: 'export', 'rewrite'")
        if self.timeout <= 0:
            self.timeout = DEFAULT_TIMEOUT
        if not self.browsers:
            self.browsers = list(SUPPORTED_BROWSERS)

    @classmethod
    def from_env(cls) -> 'AuditConfig':
        """Create config from environment variables"""
        timeout_text = os.environ.get('BOOKMARK_AUDIT_TIMEOUT', '').strip()
        try:
            timeout = int(timeout_text) if timeout_text else DEFAULT_TIMEOUT
        except ValueError:
            raise ValueError(f"BOOKMARK_AUDIT_TIMEOUT must be an integer, got {timeout_text!r}")

        return cls(
            browsers=parse_browsers(os.environ.get('BOOKMARK_AUDIT_BROWSERS', '')),
            timeout=timeout,
            proxy=os.environ.get('BOOKMARK_AUDIT_PROXY') or None,
            mode=os.environ.get('BOOKMARK_AUDIT_MODE', 'export').strip().lower(),
            output_dir=os.environ.get('BOOKMARK_AUDIT_OUTPUT_DIR') or default_output_dir(),
            log_dir=os.environ.get('BOOKMARK_AUDIT_LOG_DIR') or "./logs",
        )
