"""
Normalization of the n8n SEO workflow payload

The workflow answers with a large nested report whose shape we don't own.
Dashboards display the numbers derived here directly, so the formulas are
fixed:

    device score = max(0, 100 - LCP_seconds * 20)
    overall      = round((mobile + desktop) / 2)    (halves round up)
    page speed   = round(desktop)
"""
import json
import math
import random
from datetime import date, timedelta
from typing import Any, List, Optional

from seodash.models.analysis import (
    KeywordRanking,
    Recommendation,
    SeoAnalysisCreate,
    TechnicalSeo,
    TrafficPoint,
)
from seodash.utils.logger import log

LCP_PENALTY_PER_SECOND = 20
MOBILE_FRIENDLY_LCP_SECONDS = 4
RISING_KEYWORD_MAX_RANK = 5
TRAFFIC_DAYS = 30
TRAFFIC_JITTER = 0.2

PRIORITY_ALIASES = {
    "high": "high",
    "haute": "high",
    "élevée": "high",
    "elevee": "high",
    "medium": "medium",
    "moyenne": "medium",
    "low": "low",
    "basse": "low",
    "faible": "low",
}


def _section(data: Any, *path: str) -> Any:
    """Walk nested dicts; None as soon as a level is missing."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _as_number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", ".").strip())
    except (TypeError, ValueError):
        return default


def _as_int(value: Any) -> int:
    return int(round(_as_number(value)))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def device_score(lcp_seconds: float) -> float:
    """Linear penalty on Largest Contentful Paint, floored at 0."""
    return max(0.0, 100 - lcp_seconds * LCP_PENALTY_PER_SECOND)


def _normalize_priority(raw: Any) -> str:
    return PRIORITY_ALIASES.get(str(raw or "").strip().lower(), "medium")


def build_recommendations(actions: Any) -> List[Recommendation]:
    """One recommendation per 90-day action plan entry."""
    if not isinstance(actions, list):
        return []

    recommendations = []
    for index, action in enumerate(actions, start=1):
        if not isinstance(action, dict):
            continue
        priority = _normalize_priority(action.get("priority"))
        description = str(action.get("expectedImpact") or "")
        if action.get("kpi"):
            description = f"{description} (KPI: {action['kpi']})" if description else f"KPI: {action['kpi']}"
        recommendations.append(Recommendation(
            id=str(index),
            title=str(action.get("task") or f"Action {index}"),
            description=description,
            priority=priority,
            category="Technique" if priority == "high" else "Contenu",
        ))
    return recommendations


def build_keywords(brand: Any, non_brand: Any) -> List[KeywordRanking]:
    """Brand keywords first (always stable), then the non-brand top 10."""
    keywords = []
    for entries, is_brand in ((brand, True), (non_brand, False)):
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("keyword"):
                continue
            position = _as_int(entry.get("rank"))
            if is_brand:
                trend = "stable"
            else:
                trend = "up" if 0 < position <= RISING_KEYWORD_MAX_RANK else "stable"
            keywords.append(KeywordRanking(
                keyword=str(entry["keyword"]),
                position=position,
                volume=_as_int(entry.get("volume")),
                trend=trend,
            ))
    return keywords


def synthesize_traffic(
    monthly_visitors: int,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> List[TrafficPoint]:
    """
    Spread a monthly estimate over the last 30 days with +/-20% jitter.

    Display placeholder only; the workflow doesn't report daily traffic.
    """
    rng = rng or random.Random()
    today = today or date.today()
    daily = monthly_visitors / TRAFFIC_DAYS

    points = []
    for offset in range(TRAFFIC_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        factor = 1 + rng.uniform(-TRAFFIC_JITTER, TRAFFIC_JITTER)
        points.append(TrafficPoint(date=day.isoformat(), visitors=max(0, round(daily * factor))))
    return points


def normalize_webhook_payload(
    payload: Any,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> SeoAnalysisCreate:
    """
    Derive the flat analysis record from a raw workflow answer.

    n8n wraps "respond with all items" answers in a list; the first item
    is the report.
    """
    raw_json = json.dumps(payload, ensure_ascii=False)
    report = payload[0] if isinstance(payload, list) and payload else payload
    if not isinstance(report, dict):
        log.warning(f"Unexpected webhook payload type: {type(report).__name__}")
        report = {}

    vitals = _section(report, "technical", "coreWebVitals") or {}
    missing_lcp = [device for device in ("mobile", "desktop") if _section(vitals, device, "LCPs") is None]
    if missing_lcp:
        log.warning(
            f"Webhook payload has no LCP for {', '.join(missing_lcp)}; "
            f"scores assume 0s and will read as perfect"
        )
    mobile_lcp = _as_number(_section(vitals, "mobile", "LCPs"))
    desktop_lcp = _as_number(_section(vitals, "desktop", "LCPs"))
    mobile_score = device_score(mobile_lcp)
    desktop_score = device_score(desktop_lcp)

    metrics = _section(report, "domainMetrics")
    if not isinstance(metrics, dict):
        metrics = {}
    organic_traffic = _as_int(metrics.get("estOrganicTrafficMonthly"))

    # sitemap/robots are not reported by the workflow yet; assumed present
    # for any site it managed to crawl.
    technical = TechnicalSeo(
        mobile_friendly=mobile_lcp < MOBILE_FRIENDLY_LCP_SECONDS,
        https_secure=_as_int(_section(report, "technical", "httpStatus")) == 200,
        xml_sitemap=True,
        robots_txt=True,
    )

    keyword_stats = _section(report, "keywordStats")
    if not isinstance(keyword_stats, dict):
        keyword_stats = {}

    analysis = SeoAnalysisCreate(
        overall_score=round_half_up((mobile_score + desktop_score) / 2),
        organic_traffic=organic_traffic,
        keywords_ranking=_as_int(metrics.get("totalOrganicKeywords")),
        backlinks=_as_int(metrics.get("totalBacklinks")),
        page_speed=round_half_up(desktop_score),
        technical_seo=technical,
        recommendations=build_recommendations(report.get("actionPlan90Days")),
        keywords=build_keywords(keyword_stats.get("brandKeywords"), keyword_stats.get("nonBrandTop10FR")),
        traffic_data=synthesize_traffic(organic_traffic, rng=rng, today=today),
        raw_webhook_data=raw_json,
    )
    log.info(
        f"Normalized webhook payload: score={analysis.overall_score} "
        f"(mobile LCP {mobile_lcp}s, desktop LCP {desktop_lcp}s), "
        f"{len(analysis.recommendations)} recommendations, {len(analysis.keywords)} keywords"
    )
    return analysis
