"""
URL liveness probing.

A probe sends HEAD and falls back to a single GET when the server answers
405; both requests share one timeout budget. When a proxy is configured the
proxied session is tried first and the direct session decides the final
answer.
"""

import logging
import time
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

logger = logging.getLogger('bookmark_audit.link_checker')

USER_AGENT = "BookMarkClassification/1.0"
PROXY_SCHEMES = ("http", "https", "socks4", "socks4a", "socks5", "socks5h")
METHOD_NOT_ALLOWED = 405

# Certificates are never verified
urllib3.disable_warnings(InsecureRequestWarning)


class ProbeOutcome(Enum):
    """Result of probing a URL through one session."""
    ALIVE = "alive"
    DEAD = "dead"
    FAILED = "failed"  # transport error or timeout


def is_alive_status(status_code: int) -> bool:
    return 200 <= status_code < 400


def parse_proxy(proxy_text: Optional[str]) -> Optional[str]:
    """Validate a proxy URI, returning None (no proxy) when it is unusable"""
    if not proxy_text or not proxy_text.strip():
        return None

    proxy_text = proxy_text.strip()
    try:
        parsed = urlparse(proxy_text)
        valid = parsed.scheme.lower() in PROXY_SCHEMES and bool(parsed.hostname)
        parsed.port  # raises on a malformed port
    except ValueError:
        valid = False

    if not valid:
        logger.warning(f"Invalid proxy address, ignoring proxy: {proxy_text}")
        print(f"⚠️ Invalid proxy address, ignoring proxy: {proxy_text}")
        return None

    kind = "SOCKS" if parsed.scheme.lower().startswith("socks") else "HTTP"
    logger.info(f"{kind} proxy enabled: {proxy_text}")
    print(f"🌐 {kind} proxy enabled: {proxy_text}")
    return proxy_text


def build_session(proxy: Optional[str] = None, user_agent: str = USER_AGENT) -> requests.Session:
    """Create the HTTP session used for probing.

    Probes follow redirects and TLS certificates are
    not checked. Without a proxy the session ignores proxy environment
    variables.
    """
    session = requests.Session()
    session.headers.update({'User-Agent': user_agent})
    session.verify = False

    if proxy:
        session.proxies.update({'http': proxy, 'https': proxy})
    else:
        session.trust_env = False

    return session


class LinkChecker:
    def __init__(self, direct_session: requests.Session, proxy_session: Optional[requests.Session] = None, timeout: float = 8):
        self.direct_session = direct_session
        self.proxy_session = proxy_session
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> 'LinkChecker':
        """Build both sessions once for the whole run"""
        proxy = parse_proxy(config.proxy)
        proxy_session = build_session(proxy) if proxy else None
        return cls(build_session(None), proxy_session, config.timeout)

    @property
    def has_proxy(self) -> bool:
        return self.proxy_session is not None

    def attempt(self, session: requests.Session, url: str, timeout: Optional[float] = None) -> ProbeOutcome:
        """Probe ``url`` through ``session``; transport errors become FAILED"""
        if timeout is None:
            timeout = self.timeout

        started = time.monotonic()
        try:
            with session.head(url, timeout=timeout, allow_redirects=True, stream=True) as response:
                status_code = response.status_code

            if is_alive_status(status_code):
                return ProbeOutcome.ALIVE

            if status_code == METHOD_NOT_ALLOWED:
                remaining = timeout - (time.monotonic() - started)
                if remaining <= 0:
                    logger.debug(f"{url} answered 405 with no time left for GET")
                    return ProbeOutcome.FAILED
                with session.get(url, timeout=remaining, allow_redirects=True, stream=True) as response:
                    status_code = response.status_code
                if is_alive_status(status_code):
                    return ProbeOutcome.ALIVE

            logger.debug(f"{url} answered {status_code}")
            return ProbeOutcome.DEAD

        except (requests.RequestException, ValueError) as e:
            logger.debug(f"{url} failed: {type(e).__name__}: {e}")
            return ProbeOutcome.FAILED

    def probe(self, url: str, session: Optional[requests.Session] = None, timeout: Optional[float] = None) -> bool:
        """Return True when the URL answers with a 2xx/3xx status"""
        if session is None:
            session = self.direct_session
        return self.attempt(session, url, timeout) is ProbeOutcome.ALIVE

    def probe_either(self, url: str, timeout: Optional[float] = None) -> bool:
        """Try the proxy (if configured), then the direct session.

        The direct result is final. Nothing is retried through the proxy
        after a direct failure.
        """
        if self.has_proxy:
            outcome = self.attempt(self.proxy_session, url, timeout)
            if outcome is ProbeOutcome.ALIVE:
                return True
            logger.debug(f"Proxy attempt for {url} gave {outcome.value}, trying direct")

        return self.attempt(self.direct_session, url, timeout) is ProbeOutcome.ALIVE

    def close(self):
        self.direct_session.close()
        if self.proxy_session is not None:
            self.proxy_session.close()
