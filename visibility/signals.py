"""
Homepage signal extraction (SEO and call-to-action rubric).

Parses one homepage document into two independently clamped 0-100
scores. Every point value comes from the weights table; each named
contribution is kept in the breakdown so a score can be explained line
by line.

Design:
- Observer only (never submit forms, never execute JS)
- One document, no crawling
- Deterministic: same HTML + same profile → same breakdown
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Comment

from .models import PlaceDetails, SignalBreakdown, SiteSignals
from .weights import DEFAULT_WEIGHTS, CtaPoints, RubricWeights, SeoPoints

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"(?:\+?1[\s.-]?)?\(?\b\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}\b")
STREET_ADDRESS_PATTERN = re.compile(
    r"\b\d{1,6}\s+(?:[A-Za-z0-9.'-]+\s+){0,4}"
    r"(?:st|street|ave|avenue|rd|road|blvd|boulevard|dr|drive|ln|lane|way|ct|court|"
    r"pl|place|pkwy|parkway|hwy|highway|route|rt|ter|terrace|cir|circle)\b\.?",
    re.IGNORECASE,
)
EMERGENCY_PATTERN = re.compile(r"\bemergency\b|\b24\s*/\s*7\b|\b24-7\b|\b24\s+hours?\b", re.IGNORECASE)
MAP_IFRAME_PATTERN = re.compile(r"google\.[a-z.]+/maps|maps\.google\.", re.IGNORECASE)
RESOURCE_HINT_RELS = {"preconnect", "preload", "dns-prefetch", "prefetch"}

# schema.org LocalBusiness and the subtypes a local service business uses
LOCAL_BUSINESS_TYPES = {
    "localbusiness", "homeandconstructionbusiness", "hvacbusiness", "plumber",
    "electrician", "roofingcontractor", "generalcontractor", "housepainter",
    "locksmith", "movingcompany", "professionalservice", "emergencyservice",
    "automotivebusiness", "autorepair", "dentist", "medicalbusiness",
    "legalservice", "attorney", "homegoodsstore", "store", "restaurant",
    "healthandbeautybusiness", "cleaningservice", "landscaper",
}


# =============================================================================
# DOCUMENT HELPERS
# =============================================================================

HIDDEN_TAGS = {"script", "style", "noscript", "template", "head", "title", "meta"}


def _visible_text(soup: BeautifulSoup) -> str:
    parts = [
        s for s in soup.find_all(string=True)
        if not isinstance(s, Comment) and s.parent is not None and s.parent.name not in HIDDEN_TAGS
    ]
    return " ".join(" ".join(parts).split())


def _jsonld_types(soup: BeautifulSoup) -> List[str]:
    types: List[str] = []

    def collect(node: Any):
        if isinstance(node, dict):
            value = node.get("@type")
            if isinstance(value, str):
                types.append(value)
            elif isinstance(value, list):
                types.extend(v for v in value if isinstance(v, str))
            for child in node.values():
                if isinstance(child, (dict, list)):
                    collect(child)
        elif isinstance(node, list):
            for item in node:
                collect(item)

    for script in soup.find_all("script", type=lambda t: t and "ld+json" in t.lower()):
        try:
            collect(json.loads(script.string or script.get_text() or ""))
        except (ValueError, TypeError):
            logger.debug("Skipping unparseable JSON-LD block")
    return types


def has_local_markup(soup: BeautifulSoup) -> bool:
    for type_name in _jsonld_types(soup):
        if type_name.split("/")[-1].lower() in LOCAL_BUSINESS_TYPES:
            return True
    for tag in soup.find_all(attrs={"itemtype": True}):
        itemtype = str(tag.get("itemtype") or "")
        if itemtype.rstrip("/").split("/")[-1].lower() in LOCAL_BUSINESS_TYPES:
            return True
    return False


def count_internal_links(soup: BeautifulSoup, base_url: str) -> int:
    host = (urlsplit(base_url).hostname or "").lower().removeprefix("www.")
    count = 0
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if not href or href.startswith(("#", "tel:", "mailto:", "javascript:", "sms:")):
            continue
        target = (urlsplit(urljoin(base_url, href)).hostname or "").lower().removeprefix("www.")
        if target == host:
            count += 1
    return count


def count_tel_links(soup: BeautifulSoup) -> int:
    return len(soup.select('a[href^="tel:"], a[href^="TEL:"]'))


def _has_action_word(text: str, words) -> bool:
    lowered = " ".join(text.lower().split())
    return any(re.search(r"\b" + re.escape(w) + r"\b", lowered) for w in words)


def _tier_points(value: int, tiers, floor: int = 0) -> int:
    for minimum, points in tiers:
        if value >= minimum:
            return points
    return floor


# =============================================================================
# CTA
# =============================================================================

def score_cta(
    soup: BeautifulSoup,
    text: str,
    profile: Optional[PlaceDetails] = None,
    points: CtaPoints = DEFAULT_WEIGHTS.cta,
) -> SignalBreakdown:
    """
    Call-to-action rubric.

    Counts tel: links, action words on links and buttons, forms, and
    emergency language; adds the profile's known phone and hours. A page
    with no phone, no form and no action words at all takes the friction
    penalty.
    """
    breakdown = SignalBreakdown()

    tel_links = count_tel_links(soup)
    breakdown.add("telLinks", 0 if not tel_links else
                  points.tel_link + min((tel_links - 1) * points.tel_link_extra_each, points.tel_link_extra_cap))

    clickables = soup.find_all(["a", "button"]) + soup.find_all("input", type=re.compile(r"^(submit|button)$", re.I))
    cta_hits = 0
    for el in clickables:
        label = el.get("value", "") if el.name == "input" else el.get_text(" ")
        label = f"{label} {el.get('aria-label', '')} {el.get('title', '')}"
        if _has_action_word(label, points.action_words):
            cta_hits += 1
    breakdown.add("ctaWords", 0 if not cta_hits else
                  points.cta_words + min((cta_hits - 1) * points.cta_words_extra_each, points.cta_words_extra_cap))

    has_form = soup.find("form") is not None
    breakdown.add("forms", points.form if has_form else 0)

    breakdown.add("knownPhone", points.known_phone if profile and profile.phone else 0)
    breakdown.add("knownHours", points.known_hours if profile and profile.has_hours else 0)
    breakdown.add("emergency", points.emergency if EMERGENCY_PATTERN.search(text) else 0)

    phone_on_page = tel_links > 0 or PHONE_PATTERN.search(text) is not None
    frictionless = not phone_on_page and not has_form and not cta_hits
    breakdown.add("friction", points.friction_penalty if frictionless else 0)

    return breakdown.finalize()


# =============================================================================
# SEO
# =============================================================================

def score_seo(
    soup: BeautifulSoup,
    text: str,
    html: str,
    base_url: str,
    points: SeoPoints = DEFAULT_WEIGHTS.seo,
) -> SignalBreakdown:
    breakdown = SignalBreakdown()

    title = " ".join((soup.title.get_text() if soup.title else "").split())
    if points.title_min <= len(title) <= points.title_max:
        breakdown.add("titleLength", points.title_sweet_spot)
    elif not title or len(title) > points.title_absurd:
        breakdown.add("titleLength", points.title_bad)
    else:
        breakdown.add("titleLength", points.title_present)

    meta = soup.find("meta", attrs={"name": re.compile(r"^description$", re.I)})
    description = " ".join(str(meta.get("content") or "").split()) if meta else ""
    if points.meta_min <= len(description) <= points.meta_max:
        breakdown.add("metaDescription", points.meta_sweet_spot)
    elif points.meta_adjacent_min <= len(description) <= points.meta_adjacent_max:
        breakdown.add("metaDescription", points.meta_adjacent)
    elif not description:
        breakdown.add("metaDescription", points.meta_missing)
    else:
        breakdown.add("metaDescription", 0)

    h1_count = len(soup.find_all("h1"))
    h1_points = points.h1_present if h1_count >= 1 else 0
    if h1_count > points.h1_too_many_threshold:
        h1_points += points.h1_too_many
    breakdown.add("h1Count", h1_points)

    breakdown.add("wordCount", _tier_points(len(text.split()), points.word_tiers, points.word_floor))
    breakdown.add("internalLinks", _tier_points(count_internal_links(soup, base_url), points.internal_link_tiers))

    nav_ok = any(len(nav.find_all("a")) >= points.nav_min_links for nav in soup.find_all("nav"))
    breakdown.add("navLinks", points.nav_bonus if nav_ok else 0)

    breakdown.add("localMarkup", points.local_markup if has_local_markup(soup) else 0)

    has_map = any(MAP_IFRAME_PATTERN.search(str(f.get("src") or "")) for f in soup.find_all("iframe"))
    breakdown.add("mapEmbed", points.map_embed if has_map else 0)

    nap = PHONE_PATTERN.search(text) is not None and STREET_ADDRESS_PATTERN.search(text) is not None
    breakdown.add("napText", points.nap_text if nap else 0)

    bulk = sum(len(str(tag)) for tag in soup.find_all(["script", "style"]))
    bulky = bool(html) and bulk / len(html) > points.script_bulk_ratio
    breakdown.add("scriptBulk", points.script_bulk_penalty if bulky else 0)

    images = soup.find_all("img")
    alt_points = 0
    if images:
        coverage = sum(1 for img in images if str(img.get("alt") or "").strip()) / len(images)
        if coverage >= points.alt_full_ratio:
            alt_points = points.alt_full
        elif coverage >= points.alt_partial_ratio:
            alt_points = points.alt_partial
    breakdown.add("altText", alt_points)

    hints = any(
        RESOURCE_HINT_RELS & {r.lower() for r in (link.get("rel") or [])}
        for link in soup.find_all("link")
    )
    breakdown.add("resourceHints", points.resource_hints if hints else 0)

    return breakdown.finalize()


def extract_signals(
    html: str,
    base_url: str,
    profile: Optional[PlaceDetails] = None,
    weights: RubricWeights = DEFAULT_WEIGHTS,
) -> SiteSignals:
    """
    Parse a homepage into SEO and CTA breakdowns.

    Args:
        html: Raw homepage HTML
        base_url: Final URL the HTML came from (for internal-link detection)
        profile: Directory profile, when one resolved (known phone / hours)
        weights: Rubric to score with

    Returns:
        SiteSignals with both clamped breakdowns and a few raw facts
    """
    html = html or ""
    soup = BeautifulSoup(html, "html.parser")
    text = _visible_text(soup)

    seo = score_seo(soup, text, html, base_url, weights.seo)
    cta = score_cta(soup, text, profile, weights.cta)

    facts: Dict[str, Any] = {
        "title": " ".join((soup.title.get_text() if soup.title else "").split()),
        "wordCount": len(text.split()),
        "h1Count": len(soup.find_all("h1")),
        "telLinks": count_tel_links(soup),
        "hasForm": soup.find("form") is not None,
        "localMarkup": seo.contributions.get("localMarkup", 0) > 0,
    }
    logger.debug("Signals for %s: seo=%s cta=%s", base_url, seo.total, cta.total)
    return SiteSignals(seo=seo, cta=cta, facts=facts)
