"""
Optional LLM step for qualitative sub-scores.

Asks the model for pain-point resonance, CTA strength, website health and
on-page SEO estimates (0-100) plus a short narrative. The result is
reported alongside the deterministic score and never changes it. Missing
API key, timeout, request error or an unparseable reply all yield None;
a score that is missing or out of range is left absent, never zero.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .models import QualitativeScores

logger = logging.getLogger(__name__)

# Default model; override with OPENAI_MODEL
DEFAULT_MODEL = "gpt-4o-mini"

SCORE_FIELDS = {
    "painPointResonance": "pain_point_resonance",
    "ctaStrength": "cta_strength",
    "websiteHealth": "website_health",
    "onPageSEO": "on_page_seo",
}
TEXT_FIELDS = {
    "topPriority": "top_priority",
    "competitorAdAnalysis": "competitor_ad_analysis",
    "reviewSentiment": "review_sentiment",
}
MAX_TEXT_LENGTH = 600


def _get_client(api_key: str):
    """Lazy import so the engine loads without the openai package configured."""
    try:
        from openai import AsyncOpenAI
        return AsyncOpenAI(api_key=api_key)
    except ImportError:
        return None


@dataclass
class QualitativeContext:
    business_name: str
    market: str = ""
    trade: str = ""
    website: str = ""
    review_snippets: List[str] = field(default_factory=list)
    competitor_name: str = ""
    ad_snippets: List[str] = field(default_factory=list)


def build_prompt(context: QualitativeContext) -> str:
    reviews = "\n".join(f"- {r[:300]}" for r in context.review_snippets[:5]) or "- (none)"
    ads = "\n".join(f"- {a[:300]}" for a in context.ad_snippets[:3]) or "- (none found)"
    return (
        f"Business: {context.business_name}\n"
        f"Market: {context.market or 'unknown'}\n"
        f"Trade: {context.trade or 'unknown'}\n"
        f"Website: {context.website or 'none'}\n\n"
        f"Recent customer reviews:\n{reviews}\n\n"
        f"Top competitor: {context.competitor_name or 'unknown'}\n"
        f"Top competitor ad copy:\n{ads}\n\n"
        "Return JSON only, in exactly this shape:\n"
        '{"scores": {"painPointResonance": 0-100, "ctaStrength": 0-100, '
        '"websiteHealth": 0-100, "onPageSEO": 0-100}, '
        '"topPriority": "one sentence", "competitorAdAnalysis": "one sentence", '
        '"reviewSentiment": "one sentence"}'
    )


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    return text


def _valid_score(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not re.fullmatch(r"\d+(\.\d+)?", value):
            return None
        value = float(value)
    if not isinstance(value, (int, float)) or value != value:
        return None
    if 0 <= value <= 100:
        return int(round(value))
    return None


def parse_qualitative(text: Optional[str]) -> Optional[QualitativeScores]:
    """
    Parse a model reply into QualitativeScores.

    Returns None when no JSON object can be read or nothing valid is in it.
    """
    if not text:
        return None
    body = _strip_fences(text)
    match = re.search(r"\{.*\}", body, re.DOTALL)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("LLM response parse error: %s", e)
        return None
    if not isinstance(data, dict):
        return None

    scores = data.get("scores") if isinstance(data.get("scores"), dict) else data
    values: Dict[str, Any] = {}
    for key, attr in SCORE_FIELDS.items():
        values[attr] = _valid_score(scores.get(key))
    for key, attr in TEXT_FIELDS.items():
        value = data.get(key)
        values[attr] = value.strip()[:MAX_TEXT_LENGTH] if isinstance(value, str) and value.strip() else None

    result = QualitativeScores(**values)
    return None if result.is_empty() else result


class QualitativeScorer:
    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, timeout: float = 7.0, client=None):
        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self.timeout = timeout
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.api_key or self._client)

    def client(self):
        if self._client is None and self.api_key:
            self._client = _get_client(self.api_key)
        return self._client

    async def score(self, context: QualitativeContext) -> Optional[QualitativeScores]:
        if not self.enabled:
            logger.debug("OPENAI_API_KEY not set; skipping qualitative scores")
            return None
        client = self.client()
        if client is None:
            logger.warning("openai package not installed; skipping qualitative scores")
            return None

        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {
                            "role": "system",
                            "content": (
                                "You assess local service business marketing. "
                                "Output valid JSON only, no markdown."
                            ),
                        },
                        {"role": "user", "content": build_prompt(context)},
                    ],
                    temperature=0.2,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("LLM request timed out after %ss", self.timeout)
            return None
        except Exception as e:
            logger.warning("LLM request failed: %s", e)
            return None

        choice = response.choices[0] if response.choices else None
        if not choice or not getattr(choice, "message", None):
            return None
        return parse_qualitative(choice.message.content or "")
