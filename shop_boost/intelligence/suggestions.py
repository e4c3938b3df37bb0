"""Templated menu / inspection / staff suggestions and recommendations.

Nothing here is learned: the only per-shop variation is which job types
surface and the price and labor estimates derived from them.
"""

import uuid
from typing import Final

from shop_boost.intelligence.rounding import round0, round2
from shop_boost.schemas.shop_health import (
    InspectionSuggestion,
    MenuItemSuggestion,
    ShopHealthIssue,
    ShopHealthRecommendation,
    StaffInviteSuggestion,
    SuggestionsBlock,
    TopRepair,
)

MAX_MENU_SUGGESTIONS: Final[int] = 5
MIN_MENU_PRICE: Final[int] = 95
MENU_PRICE_SHARE_OF_RO: Final[float] = 0.18
DEFAULT_LABOR_HOURS: Final[float] = 1.2
MAX_MENU_CONFIDENCE: Final[float] = 0.92
MAX_RECOMMENDATIONS: Final[int] = 6


def _new_id() -> str:
    return str(uuid.uuid4())


def menu_price(average_ro: float) -> int:
    """18% of the average RO, rounded to the nearest $5, never below $95."""
    return max(MIN_MENU_PRICE, round0(average_ro * MENU_PRICE_SHARE_OF_RO / 5) * 5)


def menu_confidence(count: int, total_repair_orders: int) -> float:
    return round2(min(MAX_MENU_CONFIDENCE, 0.55 + count / max(40, total_repair_orders)))


def build_suggestions(
    most_common_repairs: list[TopRepair],
    average_ro: float,
    has_fleet_flag: bool,
    total_repair_orders: int,
) -> SuggestionsBlock:
    price = menu_price(average_ro)

    menu_items = [
        MenuItemSuggestion(
            id=_new_id(),
            name=f"{repair.label} Package",
            description="Pre-built service package based on your most common repair volume.",
            target_vehicle_ymm=None,
            estimated_labor_hours=(
                repair.average_labor_hours
                if repair.average_labor_hours is not None
                else DEFAULT_LABOR_HOURS
            ),
            recommended_price=price,
            based_on_jobs=[repair.label],
            confidence=menu_confidence(repair.count, total_repair_orders),
            reason=f"High repeat volume ({repair.count} occurrences) and consistent revenue driver.",
            category="auto-generated",
        )
        for repair in most_common_repairs[:MAX_MENU_SUGGESTIONS]
    ]

    inspections = [
        InspectionSuggestion(
            id=_new_id(),
            name="Fleet PM + DOT Walkaround" if has_fleet_flag else "Retail Multi-Point Inspection",
            usage_context="fleet" if has_fleet_flag else "retail",
            note="Auto-generated from observed job mix and intake questionnaire.",
            confidence=0.85,
        ),
        InspectionSuggestion(
            id=_new_id(),
            name="Brake & Tire Safety Check",
            usage_context="mixed" if has_fleet_flag else "retail",
            note="Ties to common brake/tire categories and comeback reduction.",
            confidence=0.78,
        ),
    ]

    staff_invites = [
        StaffInviteSuggestion(
            role="service_advisor",
            email=None,
            notes="Invite your service advisor to approve work and send estimates.",
        ),
        StaffInviteSuggestion(
            role="tech",
            email=None,
            notes="Invite your lead technician to start punch time + job tracking.",
        ),
    ]

    return SuggestionsBlock(
        menu_items=menu_items,
        inspections=inspections,
        staff_invites=staff_invites,
    )


def build_recommendations(
    issues_detected: list[ShopHealthIssue],
    suggestions: SuggestionsBlock,
    average_ro: float,
    total_repair_orders: int,
) -> list[ShopHealthRecommendation]:
    """Tie detected issues and generated suggestions to concrete next steps."""
    recs: list[ShopHealthRecommendation] = []
    issue_keys = {issue.key for issue in issues_detected}

    if suggestions.menu_items:
        recs.append(
            ShopHealthRecommendation(
                key="publish_menus",
                title="Publish your top service menus (1-click upsell packages)",
                why="Your history shows repeatable work categories. Menus standardize quoting and raise consistency.",
                action_steps=[
                    "Review the auto-generated menu packages",
                    "Adjust pricing/labor to match your shop",
                    "Publish to advisor + tech tablets",
                ],
                expected_impact="Higher ARO + faster estimates" if total_repair_orders >= 30 else None,
            )
        )

    if suggestions.inspections:
        recs.append(
            ShopHealthRecommendation(
                key="publish_inspections",
                title="Standardize inspections for every visit",
                why="Inspections catch safety/maintenance items early and reduce missed opportunities.",
                action_steps=[
                    "Enable the suggested inspection templates",
                    "Require an inspection on check-in (or at least for first-time customers)",
                    "Use fail-to-quote automation to build consistent estimates",
                ],
                expected_impact="More consistent work recommendations + better customer trust",
            )
        )

    if "comebacks" in issue_keys:
        recs.append(
            ShopHealthRecommendation(
                key="reduce_comebacks_qc",
                title="Reduce comebacks with QC + better job notes",
                why="Vague lines and inconsistent notes make repeat failures more likely and hurt reporting.",
                action_steps=[
                    "Add a required complaint/cause/correction structure for RO lines",
                    "Enable end-of-job QC checklist for safety-related work",
                    "Use advisor review before invoice close-out",
                ],
                expected_impact="Lower redo work + cleaner analytics",
            )
        )

    if "low_aro" in issue_keys:
        recs.append(
            ShopHealthRecommendation(
                key="raise_aro_packages",
                title="Raise ARO by bundling common work into packages",
                why=(
                    f"Avg RO is currently around ${round0(average_ro):,}. Packaging repeat work "
                    "reduces one-off quoting and increases approval rate."
                ),
                action_steps=[
                    "Bundle the top 3 repeat repairs into fixed-price packages",
                    "Attach the correct inspection to each package",
                    "Auto-suggest packages when matching job types appear",
                ],
                expected_impact="Higher approvals + safer maintenance compliance",
            )
        )

    if "bay_imbalance" in issue_keys:
        recs.append(
            ShopHealthRecommendation(
                key="dispatch_balance",
                title="Balance dispatch across bays to reduce bottlenecks",
                why="If one bay is overloaded, cycle times increase and quality can drop.",
                action_steps=[
                    "Use a dispatcher view with WIP limits per tech",
                    "Split jobs into clear sub-lines (brakes, diag, parts, road test)",
                    "Track clocked vs billed hours per tech to identify blockers",
                ],
                expected_impact="Faster throughput + more predictable delivery times",
            )
        )

    deduped: dict[str, ShopHealthRecommendation] = {}
    for rec in recs:
        deduped.setdefault(rec.key, rec)
    return list(deduped.values())[:MAX_RECOMMENDATIONS]
