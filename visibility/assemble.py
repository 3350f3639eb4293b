"""
Response assembly: AnalysisOutcome → (HTTP status, JSON body).
"""

from typing import Any, Dict, Tuple

from .competitors import CompetitiveSnapshot
from .engine import AnalysisOutcome
from .models import Status
from .weights import DEFAULT_WEIGHTS, RubricWeights

HTTP_STATUS = {
    Status.OK: 200,
    Status.NO_MATCH: 200,
    Status.AMBIGUOUS: 200,
    Status.NEEDS_INPUT: 200,
    Status.UPSTREAM_QUOTA: 429,
    Status.UPSTREAM_FAILURE: 502,
}


def _signals(outcome: AnalysisOutcome) -> Dict[str, Any]:
    result = outcome.score
    signals: Dict[str, Any] = {"gbp": None, "site": None}
    if result.gbp is not None:
        signals["gbp"] = {"score": result.gbp.score, "components": dict(result.gbp.components)}
    if result.site is not None:
        site = result.site
        signals["site"] = {
            "score": site.score,
            "seo": site.seo.to_dict(),
            "cta": site.cta.to_dict(),
            "health": site.health,
        }
    if outcome.probe is not None:
        signals["probe"] = {
            "url": outcome.probe.url,
            "reachable": outcome.probe.reachable,
            "isHttps": outcome.probe.is_https,
            "statusCode": outcome.probe.status_code,
            "elapsedMs": outcome.probe.elapsed_ms,
            "contactReachable": outcome.probe.contact_reachable,
        }
    return signals


def assemble(outcome: AnalysisOutcome, weights: RubricWeights = DEFAULT_WEIGHTS) -> Tuple[int, Dict[str, Any]]:
    """
    Build the /api/analyze response.

    Scored outcomes carry finalScore, place, signals and rationale. Every
    other status carries candidates and a message, and no score.
    """
    status = outcome.status
    body: Dict[str, Any] = {"success": status == Status.OK, "status": status.value}

    if status == Status.OK and outcome.score is not None:
        result = outcome.score
        body.update({
            "path": result.path.value,
            "finalScore": result.final_score,
            "place": outcome.place.to_public() if outcome.place else None,
            "signals": _signals(outcome),
            "siteStatus": outcome.site_status,
            "rationale": result.rationale,
            "rubric": weights.summary(),
        })
        if outcome.qualitative is not None:
            body["qualitative"] = outcome.qualitative.to_dict()
        body["topCompetitor"] = outcome.top_competitor.to_dict() if outcome.top_competitor else None
        if outcome.ad_snippets:
            body["adSnippets"] = list(outcome.ad_snippets)
        if outcome.map_embed_url:
            body["mapEmbedUrl"] = outcome.map_embed_url
        if outcome.candidates:
            body["candidates"] = [c.to_choice() for c in outcome.candidates]
        return 200, body

    if status in (Status.NEEDS_INPUT, Status.NO_MATCH):
        body["path"] = "NEEDS_INPUT"
        body["siteStatus"] = outcome.site_status
    body["candidates"] = [c.to_choice() for c in outcome.candidates]
    body["message"] = outcome.message or ""
    if outcome.suggestion:
        body["suggestion"] = outcome.suggestion
    return HTTP_STATUS[status], body


def assemble_snapshot(snapshot: CompetitiveSnapshot) -> Tuple[int, Dict[str, Any]]:
    body: Dict[str, Any] = {"success": snapshot.status == Status.OK, "status": snapshot.status.value}
    if snapshot.place is not None:
        body["place"] = snapshot.place.to_public()
    if snapshot.status == Status.OK:
        body["trade"] = snapshot.trade
        body["strategy"] = snapshot.strategy
        body["competitors"] = [c.to_dict() for c in snapshot.competitors]
    else:
        body["message"] = snapshot.message or ""
    return HTTP_STATUS[snapshot.status], body
