"""
Ad-transparency scrape.

Uses Playwright to search the public ads transparency page for a domain
and returns the text of up to 3 ad cards.

- Optional: active only when ENABLE_AD_SCRAPE is true
- Falls back gracefully if Playwright is not installed
- Any failure or timeout yields []
"""

import asyncio
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)

TRANSPARENCY_URL = "https://adstransparency.google.com/"
SEARCH_INPUT = 'input[placeholder="Advertiser name, topic or website"]'
AD_CARD = '[data-test-id="ad-creative-card"]'
MAX_ADS = 3
STEP_TIMEOUT_MS = 5000

_playwright_available: Optional[bool] = None


def _check_playwright() -> bool:
    """Lazy-check whether Playwright is importable."""
    global _playwright_available
    if _playwright_available is not None:
        return _playwright_available
    try:
        from playwright.async_api import async_playwright  # noqa: F401
        _playwright_available = True
    except ImportError:
        _playwright_available = False
        logger.info("Playwright not installed; ad scrape disabled")
    return _playwright_available


class AdScraper:
    def __init__(self, enabled: bool = False, timeout: float = 6.0):
        self.enabled = enabled
        self.timeout = timeout

    @property
    def available(self) -> bool:
        return self.enabled and _check_playwright()

    async def _scrape(self, domain: str) -> List[str]:
        from playwright.async_api import async_playwright

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=True)
            try:
                page = await browser.new_page(user_agent="Mozilla/5.0 (compatible; VisibilityEngine/1.0)")
                await page.goto(TRANSPARENCY_URL, wait_until="domcontentloaded", timeout=STEP_TIMEOUT_MS)
                await page.wait_for_selector(SEARCH_INPUT, timeout=STEP_TIMEOUT_MS)
                await page.fill(SEARCH_INPUT, domain)
                await page.keyboard.press("Enter")
                await page.wait_for_selector(AD_CARD, timeout=STEP_TIMEOUT_MS)
                cards = await page.query_selector_all(AD_CARD)
                texts = []
                for card in cards[:MAX_ADS]:
                    text = " ".join((await card.inner_text() or "").split())
                    if text:
                        texts.append(text)
                return texts
            finally:
                await browser.close()

    async def fetch_ads(self, domain: Optional[str]) -> List[str]:
        """Up to 3 ad-card texts for the domain; [] when disabled or on any failure."""
        if not domain or not self.available:
            return []
        try:
            return await asyncio.wait_for(self._scrape(domain), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Ad scrape timed out for %s", domain)
        except Exception as e:
            logger.warning("Ad scrape skipped for %s: %s", domain, e)
        return []
