"""
Website probe.

A HEAD request with a hard timeout decides whether the site is reachable
(any 2xx-3xx) and whether it answered over HTTPS. No exception leaves
this module: network errors, timeouts and error statuses all become
reachable=False. If HTTPS fails at the connection level (often a broken
certificate on a small-business site) the probe retries once over HTTP.

fetch_homepage() is the single GET used by the signal extractor.
"""

import logging
import re
import time
from typing import Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

import httpx

from .cache import TTLCache
from .models import SiteProbeResult

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
HEADERS = {"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml"}
MAX_HOMEPAGE_BYTES = 2_000_000

_REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL, ValueError)


def normalize_url(url: Optional[str]) -> Optional[str]:
    """Default to https:// and collapse duplicate trailing slashes."""
    raw = (url or "").strip()
    if not raw:
        return None
    if not re.match(r"^[a-z][a-z0-9+.-]*://", raw, re.IGNORECASE):
        raw = "https://" + raw.lstrip("/")
    raw = re.sub(r"/{2,}$", "/", raw)
    parts = urlsplit(raw)
    if not parts.netloc:
        return None
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, ""))


def _to_http(url: str) -> str:
    return "http://" + url[len("https://"):]


def _is_ok(status: int) -> bool:
    return 200 <= status < 400


class WebsiteProbe:
    def __init__(self, http: httpx.AsyncClient, timeout: float = 4.0, homepage_timeout: float = 6.0,
                 cache: Optional[TTLCache] = None, check_contact: bool = True):
        self.http = http
        self.timeout = timeout
        self.homepage_timeout = homepage_timeout
        self.cache = cache
        self.check_contact = check_contact

    async def _head(self, url: str) -> int:
        response = await self.http.head(url, headers=HEADERS, timeout=self.timeout, follow_redirects=False)
        if response.status_code in (405, 501):
            # Some hosts refuse HEAD; a GET without redirects answers the same question
            response = await self.http.get(url, headers=HEADERS, timeout=self.timeout, follow_redirects=False)
        return response.status_code

    async def _contact_reachable(self, url: str) -> Optional[bool]:
        parts = urlsplit(url)
        contact_url = urlunsplit((parts.scheme, parts.netloc, "/contact", "", ""))
        try:
            return _is_ok(await self._head(contact_url))
        except _REQUEST_ERRORS as e:
            logger.debug("Contact check failed for %s: %s", contact_url, type(e).__name__)
            return False

    async def probe(self, url: Optional[str], no_cache: bool = False) -> SiteProbeResult:
        normalized = normalize_url(url)
        if not normalized:
            return SiteProbeResult(url=url or "", reachable=False, error="invalid_url")

        if self.cache is not None and not no_cache:
            cached = self.cache.get(normalized)
            if cached is not None:
                return cached

        result = await self._probe(normalized)
        if self.cache is not None:
            self.cache.set(normalized, result)
        if not result.reachable:
            logger.warning("Site unreachable: %s (%s)", normalized, result.error or result.status_code)
        return result

    async def _probe(self, url: str) -> SiteProbeResult:
        start = time.monotonic()
        target = url
        status: Optional[int] = None
        error: Optional[str] = None

        try:
            status = await self._head(target)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            error = type(e).__name__
            if target.startswith("https://"):
                target = _to_http(target)
                logger.debug("HTTPS connect failed for %s, trying HTTP", url)
                try:
                    status = await self._head(target)
                    error = None
                except _REQUEST_ERRORS as e2:
                    error = type(e2).__name__
        except _REQUEST_ERRORS as e:
            error = type(e).__name__

        elapsed_ms = int((time.monotonic() - start) * 1000)
        reachable = status is not None and _is_ok(status)
        contact = None
        if reachable and self.check_contact:
            contact = await self._contact_reachable(target)

        return SiteProbeResult(
            url=target,
            reachable=reachable,
            is_https=target.startswith("https://"),
            status_code=status,
            elapsed_ms=elapsed_ms,
            contact_reachable=contact,
            error=error if not reachable else None,
        )

    async def fetch_homepage(self, url: str) -> Optional[Tuple[str, str]]:
        """
        GET the homepage, following redirects.

        Returns:
            (html, final_url), or None when the fetch fails or is not HTML
        """
        try:
            response = await self.http.get(url, headers=HEADERS, timeout=self.homepage_timeout, follow_redirects=True)
        except _REQUEST_ERRORS as e:
            logger.warning("Homepage fetch failed for %s: %s", url, type(e).__name__)
            return None
        if response.status_code != 200:
            logger.warning("Homepage returned %s: %s", response.status_code, url)
            return None
        content_type = response.headers.get("content-type", "")
        if content_type and "html" not in content_type.lower():
            logger.warning("Homepage is not HTML (%s): %s", content_type, url)
            return None
        return response.text[:MAX_HOMEPAGE_BYTES], str(response.url)
