"""
Business name handling.

- expand_name_variants: alternate spellings of a business name (legal
  suffixes stripped, brand aliases substituted), original first.
- expand_trade: search synonyms for a trade / business type.
- name_similarity: token-overlap + length-proximity score used to rank
  directory candidates.

Pure string work, no network calls.
"""

import re
from typing import Dict, List, Optional, Set, Tuple

from .weights import DEFAULT_WEIGHTS, RankingWeights

# Legal suffixes are stripped from the end of a name, repeatedly
# ("Acme Co., Inc." -> "Acme").
LEGAL_SUFFIX_PATTERN = re.compile(
    r"[\s,]+(inc|incorporated|llc|l\.l\.c|co|company|corp|corporation|ltd|limited|pllc|lp)\.?$",
    re.IGNORECASE,
)

# Two-way substitutions; each pair is tried in both directions.
BRAND_ALIASES: Tuple[Tuple[str, str], ...] = (
    ("All State", "Allstate"),
    ("&", "and"),
    ("Saint", "St."),
    ("Mount", "Mt."),
    ("A-1", "A1"),
    ("Bros.", "Brothers"),
)

# Tokens that carry no identity when comparing names
NOISE_TOKENS = {
    "inc", "incorporated", "llc", "co", "company", "corp", "corporation",
    "ltd", "limited", "pllc", "lp", "the",
}

# Trade keyword expansion mappings
TRADE_SYNONYMS: Dict[str, List[str]] = {
    "hvac": [
        "HVAC",
        "heating and cooling",
        "air conditioning contractor",
        "furnace repair",
    ],
    "plumber": [
        "plumber",
        "plumbing contractor",
        "plumbing service",
        "drain cleaning",
    ],
    "electrician": [
        "electrician",
        "electrical contractor",
        "electrical service",
    ],
    "roofing": [
        "roofing contractor",
        "roof repair",
        "roofer",
    ],
    "landscaping": [
        "landscaping",
        "lawn care",
        "landscaper",
    ],
    "cleaning": [
        "cleaning service",
        "house cleaning",
        "janitorial service",
    ],
    "painting": [
        "painter",
        "painting contractor",
    ],
    "pest control": [
        "pest control",
        "exterminator",
    ],
}

TRADE_ALIASES = {
    "plumbing": "plumber",
    "electrical": "electrician",
    "roofer": "roofing",
    "roof": "roofing",
    "heating": "hvac",
    "air conditioning": "hvac",
    "landscaper": "landscaping",
    "lawn care": "landscaping",
    "painter": "painting",
    "exterminator": "pest control",
    "house cleaning": "cleaning",
}


def _dedupe(values: List[str]) -> List[str]:
    seen: Set[str] = set()
    out = []
    for v in values:
        key = v.lower()
        if v and key not in seen:
            seen.add(key)
            out.append(v)
    return out


def strip_legal_suffixes(name: str) -> str:
    stripped = name.strip()
    while True:
        shorter = LEGAL_SUFFIX_PATTERN.sub("", stripped).strip(" ,")
        if shorter == stripped:
            return stripped
        stripped = shorter


def _alias_substitutions(name: str, aliases: Tuple[Tuple[str, str], ...]) -> List[str]:
    out = []
    for a, b in aliases:
        for src, dst in ((a, b), (b, a)):
            if src.isalnum() or src[-1].isalnum():
                pattern = re.compile(r"(?<!\w)" + re.escape(src) + r"(?!\w)", re.IGNORECASE)
            else:
                pattern = re.compile(r"(?<!\w)" + re.escape(src) + r"(?=\s|$)", re.IGNORECASE)
            if pattern.search(name):
                out.append(" ".join(pattern.sub(dst, name).split()))
    return out


def expand_name_variants(
    name: str,
    aliases: Tuple[Tuple[str, str], ...] = BRAND_ALIASES,
) -> List[str]:
    """
    Generate ordered, de-duplicated spellings of a business name.

    Order: original, legal-suffix-stripped, then alias substitutions of
    each. Never returns an empty-string variant.

    Args:
        name: Raw business name as typed by the user
        aliases: Two-way substitution pairs

    Returns:
        List of name variants; empty only when name is blank
    """
    original = " ".join((name or "").split())
    if not original:
        return []

    variants = [original]
    stripped = strip_legal_suffixes(original)
    if stripped:
        variants.append(stripped)

    for base in list(variants):
        variants.extend(_alias_substitutions(base, aliases))

    return _dedupe([v for v in variants if v.strip()])


def canonical_trade(business_type: Optional[str]) -> Optional[str]:
    if not business_type:
        return None
    key = " ".join(business_type.lower().split())
    if key in TRADE_SYNONYMS:
        return key
    return TRADE_ALIASES.get(key)


def expand_trade(business_type: Optional[str], limit: int = 3) -> List[str]:
    """
    Get search synonyms for a trade.

    Returns [business_type] when the trade is not in the mappings and an
    empty list when no trade was supplied.
    """
    if not business_type:
        return []
    trade = canonical_trade(business_type)
    if trade is None:
        return [business_type.strip()]
    return _dedupe([business_type.strip()] + TRADE_SYNONYMS[trade])[:limit]


def name_tokens(name: str) -> List[str]:
    tokens = re.findall(r"[a-z0-9]+", (name or "").lower().replace("&", " and "))
    return [t for t in tokens if t not in NOISE_TOKENS]


def name_similarity(
    query: str,
    candidate: str,
    weights: RankingWeights = DEFAULT_WEIGHTS.ranking,
) -> float:
    """
    Score how closely a candidate name matches the queried name.

    token overlap count × 2 + length proximity (0..1), where proximity
    compares the lengths of the noise-stripped names. Proximity is rounded
    so names differing only by legal suffix or punctuation tie exactly.
    """
    q_tokens = name_tokens(query)
    c_tokens = name_tokens(candidate)
    overlap = len(set(q_tokens) & set(c_tokens))

    q_len = len("".join(q_tokens))
    c_len = len("".join(c_tokens))
    longest = max(q_len, c_len)
    proximity = 1.0 - abs(q_len - c_len) / longest if longest else 0.0

    return overlap * weights.token_overlap + round(proximity, weights.proximity_precision)
