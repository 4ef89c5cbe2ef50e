"""
Analytics Service
Fetches school and job analytics from the database functions and shapes
them into plain JSON objects with every numeric field present
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from hyrepro.core.config import settings
from hyrepro.services.analytics_cache import AnalyticsCache
from hyrepro.services.procedures import first_row, procedures

logger = logging.getLogger(__name__)

DATE_RANGES = ("day", "week", "month", "all")

KPI_FIELDS = (
    "total_active_campaigns",
    "total_successful_campaigns",
    "total_failed_campaigns",
    "candidates_assessment_stage",
    "candidates_interview_stage",
    "candidates_offered",
    "avg_time_to_hire",
    "offer_extended_vs_accepted",
    "offer_extended_vs_declined",
    "male_candidates",
    "female_candidates",
    "other_gender_candidates",
)
SECTION_FIELDS = ("pedagogy", "communication", "digital_literacy", "subject_knowledge")

OVERVIEW_FIELDS = ("demos_completed", "total_applicants", "assessment_completed", "interviews_completed")
FUNNEL_STAGES = (
    "hired", "appealed", "rejected", "suspended", "demo_failed", "demo_passed",
    "demo_submitted", "offers_extended", "assessment_failed", "assessment_passed",
    "assessment_started", "interview_completed", "interview_scheduled",
    "applications_submitted",
)
CONVERSION_RATES = (
    "hire_rate", "offer_rate", "demo_pass_rate", "assessment_pass_rate",
    "demo_submission_rate", "interview_conversion", "application_to_assessment",
)


class AnalyticsNotFound(Exception):
    """The analytics function ran but returned nothing"""


def as_number(value: Any, default=0):
    """Numeric coercion where missing or unparseable values become `default`"""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return int(number) if number.is_integer() else number


def numbers(source: Optional[dict], fields, default=0) -> Dict[str, Any]:
    source = source if isinstance(source, dict) else {}
    return {name: as_number(source.get(name), default) for name in fields}


def now_iso() -> str:
    return datetime.utcnow().isoformat() + "Z"


# ============== SHAPERS ==============

def normalize_kpis(data: Optional[dict]) -> Dict[str, Any]:
    data = data if isinstance(data, dict) else {}
    kpis = dict(data)
    for name in KPI_FIELDS:
        if kpis.get(name) is None:
            kpis[name] = 0
    sections = data.get("section_wise_performance") or {}
    kpis["section_wise_performance"] = {
        name: sections.get(name) if sections.get(name) is not None else 0
        for name in SECTION_FIELDS
    }
    return kpis


def shape_job_analytics(data: Any, job_id: str, analytics_type: str) -> Dict[str, Any]:
    analytics = first_row(data) or {}
    if analytics_type == "overview":
        shaped = {
            "type": analytics.get("type") or "overview",
            "job_id": analytics.get("job_id") or job_id,
            "generated_at": analytics.get("generated_at") or now_iso(),
        }
        shaped.update(numbers(analytics, OVERVIEW_FIELDS))
        return shaped

    return {
        "type": analytics.get("type") or "funnel",
        "job_id": analytics.get("job_id") or job_id,
        "stages": numbers(analytics.get("stages"), FUNNEL_STAGES),
        "generated_at": analytics.get("generated_at") or now_iso(),
        "conversion_rates": numbers(analytics.get("conversion_rates"), CONVERSION_RATES),
        "total_applicants": as_number(analytics.get("total_applicants")),
    }


def shape_demo_analytics(data: Any, job_id: str) -> Dict[str, Any]:
    analytics = first_row(data) or {}
    score_fields = ("avg_score", "max_score", "min_score", "evaluated_count")
    categories = analytics.get("category_scores") or {}
    return {
        "type": analytics.get("type") or "demo",
        "job_id": analytics.get("job_id") or job_id,
        "demo_funnel": numbers(analytics.get("demo_funnel"), ("failed", "passed", "started", "submitted")),
        "generated_at": analytics.get("generated_at") or now_iso(),
        "overall_scores": numbers(analytics.get("overall_scores"), score_fields),
        "category_scores": {name: numbers(scores, score_fields) for name, scores in categories.items()},
    }


def shape_mcq_analytics(data: Any, job_id: str) -> Dict[str, Any]:
    analytics = first_row(data) or {}
    metric_fields = ("avg_score", "avg_attempted", "avg_percentage", "avg_total_questions")
    categories = analytics.get("category_metrics") or {}
    return {
        "type": analytics.get("type") or "mcq_assessment",
        "job_id": analytics.get("job_id") or job_id,
        "metrics": numbers(analytics.get("metrics"), metric_fields),
        "summary": numbers(analytics.get("summary"), ("failed", "passed", "eligible", "attempted")),
        "generated_at": analytics.get("generated_at") or now_iso(),
        "category_metrics": {name: numbers(metrics, metric_fields) for name, metrics in categories.items()},
    }


def shape_interview_analytics(data: Any, job_id: str) -> Dict[str, Any]:
    analytics = first_row(data) or {}

    overview = []
    for item in analytics.get("panelist_overview") or []:
        item = item or {}
        overview.append({
            "type": item.get("type") or "numeric",
            "title": item.get("title") or "",
            "out_of": as_number(item.get("out_of"), 10) or 10,
            "average": as_number(item.get("average")),
            "description": item.get("description") or "",
            "evaluation_count": as_number(item.get("evaluation_count")),
        })

    performance = []
    for item in analytics.get("panelist_performance") or []:
        item = item or {}
        performance.append({
            "panelist_id": item.get("panelist_id") or "",
            "panelist_name": item.get("panelist_name") or "",
            "average_score": as_number(item.get("average_score")),
            "total_evaluations": as_number(item.get("total_evaluations")),
            "performance_metrics": [
                {
                    "category": (metric or {}).get("category") or "",
                    **numbers(metric, ("score", "max_score", "evaluation_count")),
                }
                for metric in item.get("performance_metrics") or []
            ],
        })

    return {
        "type": analytics.get("type") or "interview",
        "job_id": analytics.get("job_id") or job_id,
        "interview_funnel": numbers(
            analytics.get("interview_funnel"),
            ("hired", "offered", "eligible", "rejected", "completed", "scheduled"),
        ),
        "panelist_summary": numbers(
            analytics.get("panelist_summary"),
            ("total_panelists", "total_evaluations", "avg_panelist_score",
             "max_panelist_score", "total_score_available"),
        ),
        "score_statistics": numbers(
            analytics.get("score_statistics"),
            ("avg_score", "max_score", "total_score", "total_evaluations"),
        ),
        "panelist_overview": overview,
        "panelist_performance": performance,
        "generated_at": analytics.get("generated_at") or now_iso(),
    }


# ============== SCHOOL ANALYTICS (cached) ==============

class AnalyticsService:
    """School dashboard analytics, cached per (school, date range)"""

    def __init__(self, cache: Optional[AnalyticsCache] = None):
        self.cache = cache or AnalyticsCache(
            ttl=settings.ANALYTICS_CACHE_TTL_SECONDS,
            max_entries=settings.ANALYTICS_CACHE_MAX_ENTRIES,
        )

    @staticmethod
    def cache_key(school_id: str, date_range: str) -> str:
        return f"{school_id}-{date_range}"

    def get_school_kpis(self, db: Session, school_id: str, period: str = "all") -> Dict[str, Any]:
        data = procedures.call(db, "get_school_kpis", {"school_id": school_id, "period": period})
        return normalize_kpis(first_row(data))

    def get_school_analytics(self, db: Session, school_id: str, date_range: str = "week") -> Dict[str, Any]:
        def load():
            data = procedures.call(
                db, "get_school_analytics",
                {"input_school_id": school_id, "date_range": date_range},
            )
            data = first_row(data)
            if not data:
                raise AnalyticsNotFound("No data returned from analytics function")
            return data

        return self.cache.get_or_load(self.cache_key(school_id, date_range), load)

    def clear_analytics_cache(self, school_id: str, date_range: Optional[str] = None) -> int:
        """Drop one cached range, or every range for the school"""
        if date_range:
            self.cache.invalidate(self.cache_key(school_id, date_range))
            return 1
        return self.cache.invalidate_prefix(f"{school_id}-")


analytics_service = AnalyticsService()
