"""Deterministic shop-health scoring.

Aggregates classified repair-order lines into KPIs, top-repair rankings,
risk signals and a weighted 0-100 health score.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

from shop_boost.intelligence.rounding import clamp_0_100, round0, round2
from shop_boost.intelligence.suggestions import build_recommendations, build_suggestions
from shop_boost.schemas.shop_health import (
    ClassificationResult,
    ComebackRisk,
    ComponentScore,
    FleetMetric,
    HealthScores,
    Kpis,
    ShopHealthIssue,
    ShopHealthScores,
    ShopHealthScoringInput,
    TopRepair,
    TopTech,
)

COMPLETENESS_WEIGHT: Final[float] = 0.30
CLASSIFICATION_WEIGHT: Final[float] = 0.35
VOLUME_WEIGHT: Final[float] = 0.35

LOW_CONFIDENCE_THRESHOLD: Final[float] = 0.65
LOST_HOURS_PER_LOW_CONFIDENCE_LINE: Final[float] = 0.6
LOW_ARO_THRESHOLD: Final[float] = 420
MOST_COMMON_LIMIT: Final[int] = 8
HIGH_VALUE_LIMIT: Final[int] = 6
TOP_TECH_LIMIT: Final[int] = 5
MAX_ISSUES: Final[int] = 6

JOB_TYPE_LABELS: Final[dict[str, str]] = {
    "aftertreatment": "Aftertreatment / DPF",
    "brakes": "Brakes",
    "driveline": "Driveline",
    "maintenance": "Maintenance / PM",
    "tires": "Tires / Alignment",
    "suspension": "Suspension / Steering",
    "electrical": "Electrical",
    "cooling": "Cooling System",
    "hvac": "HVAC / A/C",
    "engine": "Engine",
    "transmission": "Transmission / Clutch",
    "inspection": "Inspections",
    "general": "General Repair",
}

SEVERITY_RANK: Final[dict[str, int]] = {"high": 3, "medium": 2, "low": 1}
WORD_START = re.compile(r"\b\w", re.ASCII)


@dataclass
class _RepairBucket:
    label: str
    count: int = 0
    revenue: float = 0.0
    labor_hours_sum: float = 0.0
    labor_hours_n: int = 0

    def to_top_repair(self) -> TopRepair:
        return TopRepair(
            label=self.label,
            count=self.count,
            revenue=round2(self.revenue),
            average_labor_hours=(
                round2(self.labor_hours_sum / self.labor_hours_n) if self.labor_hours_n else None
            ),
        )


def _finite(value: float | None) -> float | None:
    return value if value is not None and math.isfinite(value) else None


def pretty_type(job_type: str) -> str:
    if job_type in JOB_TYPE_LABELS:
        return JOB_TYPE_LABELS[job_type]
    return WORD_START.sub(lambda m: m.group().upper(), job_type.replace("_", " "))


def get_bool(obj: Any, key: str) -> bool:
    if not isinstance(obj, Mapping):
        return False
    value = obj.get(key)
    return value is True or value == "true" or value == 1 or value == "1"


def bucket(score: float) -> str:
    if score >= 80:
        return "green"
    if score >= 60:
        return "yellow"
    return "red"


# -------------------------------------------------------------------
# Component scores
# -------------------------------------------------------------------


def score_completeness(customers: int, vehicles: int, parts: int) -> int:
    """Presence of each export, plus a small bonus for enough volume."""
    score = 0
    if customers > 0:
        score += 35
    if vehicles > 0:
        score += 45
    if parts > 0:
        score += 20
    if vehicles >= 50:
        score += 5
    if customers >= 25:
        score += 5
    return int(clamp_0_100(score))


def score_classification(lines: list[ClassificationResult]) -> int:
    """Mean confidence mapped linearly from 0.5..0.95 onto 40..100."""
    if not lines:
        return 0
    avg = sum(line.confidence for line in lines) / len(lines)
    scaled = 40 + (avg - 0.5) * (60 / 0.45)
    return int(clamp_0_100(round0(scaled)))


def score_volume(total_repair_orders: int) -> int:
    if total_repair_orders <= 0:
        return 0
    if total_repair_orders >= 150:
        return 100
    if total_repair_orders >= 100:
        return 90
    if total_repair_orders >= 60:
        return 75
    if total_repair_orders >= 30:
        return 55
    return 40


def overall_score(completeness: float, classification: float, volume: float) -> int:
    return round0(
        completeness * COMPLETENESS_WEIGHT
        + classification * CLASSIFICATION_WEIGHT
        + volume * VOLUME_WEIGHT
    )


# -------------------------------------------------------------------
# Aggregations
# -------------------------------------------------------------------


def rank_repairs(lines: list[ClassificationResult]) -> dict[str, _RepairBucket]:
    by_type: dict[str, _RepairBucket] = {}
    for line in lines:
        key = line.job_type or "general"
        current = by_type.setdefault(key, _RepairBucket(label=pretty_type(key)))
        current.count += 1
        current.revenue += _finite(line.totals.total) or 0.0

        hours = _finite(line.totals.labor_hours)
        if hours is not None:
            current.labor_hours_sum += hours
            current.labor_hours_n += 1
    return by_type


def derive_top_techs(lines: list[ClassificationResult]) -> list[TopTech]:
    """Per-technician jobs, revenue and billed hours (a proxy for clocked time)."""
    by_name: dict[str, dict[str, float]] = {}
    for line in lines:
        name = " ".join((line.tech_name or "").split())
        if not name:
            continue
        current = by_name.setdefault(name, {"jobs": 0, "revenue": 0.0, "hours": 0.0})
        current["jobs"] += 1
        current["revenue"] += _finite(line.totals.total) or 0.0
        current["hours"] += _finite(line.totals.labor_hours) or 0.0

    techs = [
        TopTech(
            tech_id=name,
            name=name,
            role="tech",
            jobs=int(stats["jobs"]),
            revenue=round2(stats["revenue"]),
            clocked_hours=round2(stats["hours"]),
            revenue_per_hour=round2(stats["revenue"] / stats["hours"]) if stats["hours"] > 0 else 0,
        )
        for name, stats in by_name.items()
    ]
    techs.sort(key=lambda tech: tech.revenue, reverse=True)
    return techs[:TOP_TECH_LIMIT]


def detect_issues(
    total_repair_orders: int,
    average_ro: float,
    low_confidence_lines: int,
    top_techs: list[TopTech],
) -> list[ShopHealthIssue]:
    issues: list[ShopHealthIssue] = []

    # Vague write-ups are the comeback proxy.
    if low_confidence_lines >= 20:
        issues.append(
            ShopHealthIssue(
                key="comebacks",
                title="Job notes are too vague (risk of repeat work / poor reporting)",
                severity="medium",
                detail=(
                    "A large portion of rows have unclear descriptions (ex: misc, repair). This usually "
                    "correlates with comebacks, missed upsells, and poor accountability."
                ),
                evidence=f"{low_confidence_lines} low-confidence rows detected",
            )
        )
    elif low_confidence_lines >= 8:
        issues.append(
            ShopHealthIssue(
                key="comebacks",
                title="Some job notes are vague",
                severity="low",
                detail=(
                    "Several lines are hard to classify because the description is too generic. "
                    "Cleaner writeups improve analytics and AI suggestions."
                ),
                evidence=f"{low_confidence_lines} low-confidence rows detected",
            )
        )

    if total_repair_orders >= 20 and 0 < average_ro < LOW_ARO_THRESHOLD:
        issues.append(
            ShopHealthIssue(
                key="low_aro",
                title="Average RO looks low (missed packaging / inspections)",
                severity="high" if average_ro < 300 else "medium",
                detail=(
                    "Your average repair order value is below what we typically see for shops with "
                    "consistent inspections + service packages. Packaging common work into menus and "
                    "running MPI/PM checks can raise RO safely."
                ),
                evidence=f"Avg RO ≈ ${round0(average_ro):,}",
            )
        )

    attributed_jobs = sum(tech.jobs for tech in top_techs)
    if top_techs and attributed_jobs >= 25:
        top = top_techs[0]
        share = top.jobs / attributed_jobs
        if share >= 0.55:
            issues.append(
                ShopHealthIssue(
                    key="bay_imbalance",
                    title="Work may be imbalanced across bays",
                    severity="high" if share >= 0.7 else "medium",
                    detail=(
                        "One tech appears to carry a large share of the work. That can create "
                        "bottlenecks, longer cycle times, and uneven quality. Dispatch rules + clearer "
                        "job splitting can help."
                    ),
                    evidence=f"{top.name} ≈ {round0(share * 100)}% of attributed jobs",
                )
            )

    issues.sort(key=lambda issue: SEVERITY_RANK[issue.severity], reverse=True)
    return issues[:MAX_ISSUES]


def build_narrative(
    overall: int,
    total_revenue: float,
    average_ro: float,
    total_repair_orders: int,
    most_common: list[TopRepair],
    high_value: list[TopRepair],
) -> str:
    top_line = (
        f"Your most common work is **{most_common[0].label}**."
        if most_common
        else "We identified your most common job categories."
    )
    high_line = (
        f"Your highest revenue category is **{high_value[0].label}**."
        if high_value
        else "We identified your top revenue categories."
    )

    return "\n\n".join(
        [
            f"Overall Shop Health Score: **{overall}/100**",
            (
                f"Based on {total_repair_orders} repair-order rows and an estimated total revenue of "
                f"**${total_revenue:,.2f}** (avg RO **${average_ro:,.2f}**)."
            ),
            top_line,
            high_line,
            (
                "Next step: publish the suggested menus/inspections to standardize quoting and reduce "
                "misc lines. That improves accuracy and speeds onboarding."
            ),
        ]
    )


# -------------------------------------------------------------------
# Entry point
# -------------------------------------------------------------------


def compute_shop_health_scores(scoring_input: ShopHealthScoringInput) -> ShopHealthScores:
    """Score one intake. Deterministic apart from suggestion ids."""
    customers = scoring_input.customers_rows
    vehicles = scoring_input.vehicles_rows
    parts = scoring_input.parts_rows
    lines = scoring_input.classified_lines

    # Period inference
    dates = sorted(line.occurred_at for line in lines if line.occurred_at is not None)
    period_start = dates[0] if dates else None
    period_end = dates[-1] if dates else None
    time_range_description = (
        f"{period_start.date().isoformat()} – {period_end.date().isoformat()}"
        if period_start and period_end
        else "Recent history"
    )

    # KPIs; vehicle rows double as RO history rows in most exports.
    total_revenue = round2(sum(_finite(line.totals.total) or 0.0 for line in lines))
    total_repair_orders = max(len(vehicles), len(lines))
    average_ro = round2(total_revenue / total_repair_orders) if total_repair_orders > 0 else 0

    by_type = rank_repairs(lines)
    most_common_repairs = [
        b.to_top_repair()
        for b in sorted(by_type.values(), key=lambda b: b.count, reverse=True)[:MOST_COMMON_LIMIT]
    ]
    high_value_repairs = [
        b.to_top_repair()
        for b in sorted(by_type.values(), key=lambda b: b.revenue, reverse=True)[:HIGH_VALUE_LIMIT]
    ]

    low_confidence = sum(1 for line in lines if line.confidence < LOW_CONFIDENCE_THRESHOLD)
    comeback_risks: list[ComebackRisk] = []
    if low_confidence > 0:
        comeback_risks.append(
            ComebackRisk(
                label="Unclear / misc descriptions (low classification confidence)",
                count=low_confidence,
                estimated_lost_hours=round2(low_confidence * LOST_HOURS_PER_LOW_CONFIDENCE_LINE),
                note=(
                    "Many lines are vague (ex: misc, repair). Better job notes improves reporting "
                    "and AI accuracy."
                ),
            )
        )

    has_fleet_flag = get_bool(scoring_input.questionnaire, "hasFleets")
    fleet_metrics = [
        FleetMetric(
            label="Imports received",
            value=len(customers) + len(vehicles) + len(parts),
            unit="rows",
            note="Fleet mode enabled in questionnaire" if has_fleet_flag else None,
        )
    ]

    top_techs = derive_top_techs(lines)
    issues_detected = detect_issues(
        total_repair_orders=total_repair_orders,
        average_ro=average_ro,
        low_confidence_lines=low_confidence,
        top_techs=top_techs,
    )

    completeness = score_completeness(len(customers), len(vehicles), len(parts))
    classification = score_classification(lines)
    volume = score_volume(total_repair_orders)
    overall = overall_score(completeness, classification, volume)

    scores = HealthScores(
        overall=overall,
        status=bucket(overall),
        components={
            "completeness": ComponentScore(score=completeness, status=bucket(completeness)),
            "classification": ComponentScore(score=classification, status=bucket(classification)),
            "history_volume": ComponentScore(score=volume, status=bucket(volume)),
        },
    )

    metrics: dict[str, Any] = {
        "totals": {
            "total_repair_orders": total_repair_orders,
            "total_revenue": total_revenue,
            "average_ro": average_ro,
        },
        "import": {
            "customers_rows": len(customers),
            "vehicles_rows": len(vehicles),
            "parts_rows": len(parts),
        },
        "classification": {
            "total_lines": len(lines),
            "low_confidence_lines": low_confidence,
            "unique_job_types": len(by_type),
        },
        "tech": {"top_techs": [tech.model_dump() for tech in top_techs]},
        "issues_detected": [issue.model_dump() for issue in issues_detected],
    }

    suggestions = build_suggestions(
        most_common_repairs=most_common_repairs,
        average_ro=average_ro,
        has_fleet_flag=has_fleet_flag,
        total_repair_orders=total_repair_orders,
    )
    recommendations = build_recommendations(
        issues_detected=issues_detected,
        suggestions=suggestions,
        average_ro=average_ro,
        total_repair_orders=total_repair_orders,
    )

    narrative_summary = build_narrative(
        overall=overall,
        total_revenue=total_revenue,
        average_ro=average_ro,
        total_repair_orders=total_repair_orders,
        most_common=most_common_repairs,
        high_value=high_value_repairs,
    )

    return ShopHealthScores(
        period_start=period_start,
        period_end=period_end,
        time_range_description=time_range_description,
        kpis=Kpis(
            total_repair_orders=total_repair_orders,
            total_revenue=total_revenue,
            average_ro=average_ro,
        ),
        most_common_repairs=most_common_repairs,
        high_value_repairs=high_value_repairs,
        comeback_risks=comeback_risks,
        fleet_metrics=fleet_metrics,
        top_techs=top_techs,
        issues_detected=issues_detected,
        recommendations=recommendations,
        metrics=metrics,
        scores=scores,
        suggestions=suggestions,
        narrative_summary=narrative_summary,
    )
