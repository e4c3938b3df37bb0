"""Typed records flowing through the shop-health pipeline."""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Status = Literal["green", "yellow", "red"]
IssueSeverity = Literal["low", "medium", "high"]
StaffRole = Literal["owner", "service_advisor", "tech"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


def _as_utc(value: datetime | None) -> datetime | None:
    """Naive timestamps are UTC; aware ones are converted so periods compare."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# -------------------------------------------------------------------
# Classification
# -------------------------------------------------------------------


class VehicleInfo(_Frozen):
    year: int | None = None
    make: str = ""
    model: str = ""
    vin: str = ""


class LineText(_Frozen):
    complaint: str = ""
    cause: str = ""
    correction: str = ""
    description: str = ""
    joined: str = ""


class LineTotals(_Frozen):
    labor_hours: float | None = None
    labor_total: float | None = None
    parts_total: float | None = None
    total: float | None = None


class ClassificationInput(_Frozen):
    """One historical repair-order line built from a CSV row."""

    key: str
    occurred_at: datetime | None = None
    vehicle: VehicleInfo = Field(default_factory=VehicleInfo)
    text: LineText = Field(default_factory=LineText)
    totals: LineTotals = Field(default_factory=LineTotals)
    tech_name: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @field_validator("occurred_at")
    @classmethod
    def normalize_occurred_at(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class ClassificationResult(_Frozen):
    key: str
    occurred_at: datetime | None = None
    job_type: str
    job_scope: str
    confidence: float = Field(ge=0.0, le=1.0)
    signals: tuple[str, ...] = ()
    totals: LineTotals = Field(default_factory=LineTotals)
    tech_name: str | None = None

    @field_validator("occurred_at")
    @classmethod
    def normalize_occurred_at(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


# -------------------------------------------------------------------
# Scoring
# -------------------------------------------------------------------


class ShopHealthScoringInput(_Frozen):
    shop_id: str
    intake_id: str
    questionnaire: dict[str, Any] = Field(default_factory=dict)
    customers_rows: list[dict[str, Any]] = Field(default_factory=list)
    vehicles_rows: list[dict[str, Any]] = Field(default_factory=list)
    parts_rows: list[dict[str, Any]] = Field(default_factory=list)
    classified_lines: list[ClassificationResult] = Field(default_factory=list)


class TopRepair(_Frozen):
    label: str
    count: int
    revenue: float
    average_labor_hours: float | None = None


class ComebackRisk(_Frozen):
    label: str
    count: int
    estimated_lost_hours: float
    note: str | None = None


class FleetMetric(_Frozen):
    label: str
    value: float
    unit: str | None = None
    note: str | None = None


class TopTech(_Frozen):
    tech_id: str
    name: str
    role: str = "tech"
    jobs: int
    revenue: float
    clocked_hours: float
    revenue_per_hour: float


class ShopHealthIssue(_Frozen):
    key: str
    title: str
    severity: IssueSeverity
    detail: str
    evidence: str | None = None


class ShopHealthRecommendation(_Frozen):
    key: str
    title: str
    why: str
    action_steps: list[str] = Field(default_factory=list)
    expected_impact: str | None = None


class Kpis(_Frozen):
    total_repair_orders: int
    total_revenue: float
    average_ro: float


class ComponentScore(_Frozen):
    score: int
    status: Status


class HealthScores(_Frozen):
    overall: int
    status: Status
    components: dict[str, ComponentScore]


# -------------------------------------------------------------------
# Suggestions
# -------------------------------------------------------------------


class MenuItemSuggestion(_Frozen):
    id: str
    name: str
    description: str
    target_vehicle_ymm: str | None = None
    estimated_labor_hours: float
    recommended_price: float
    based_on_jobs: list[str] = Field(default_factory=list)
    confidence: float
    reason: str | None = None
    category: str | None = None


class InspectionSuggestion(_Frozen):
    id: str
    name: str
    usage_context: Literal["fleet", "retail", "mixed"]
    note: str | None = None
    confidence: float


class StaffInviteSuggestion(_Frozen):
    role: StaffRole
    email: str | None = None
    notes: str | None = None


class SuggestionsBlock(_Frozen):
    menu_items: list[MenuItemSuggestion] = Field(default_factory=list)
    inspections: list[InspectionSuggestion] = Field(default_factory=list)
    staff_invites: list[StaffInviteSuggestion] = Field(default_factory=list)


class ShopHealthScores(_Frozen):
    """Everything the scorer derives from one intake."""

    period_start: datetime | None = None
    period_end: datetime | None = None
    time_range_description: str
    kpis: Kpis
    most_common_repairs: list[TopRepair]
    high_value_repairs: list[TopRepair]
    comeback_risks: list[ComebackRisk]
    fleet_metrics: list[FleetMetric]
    top_techs: list[TopTech]
    issues_detected: list[ShopHealthIssue]
    recommendations: list[ShopHealthRecommendation]
    metrics: dict[str, Any]
    scores: HealthScores
    suggestions: SuggestionsBlock
    narrative_summary: str


class ShopHealthSnapshot(_Frozen):
    """Caller-facing result of one pipeline run."""

    shop_id: str
    intake_id: str
    snapshot_id: str | None = None
    period_start: datetime | None = None
    period_end: datetime | None = None
    time_range_description: str
    total_repair_orders: int
    total_revenue: float
    average_ro: float
    most_common_repairs: list[TopRepair]
    high_value_repairs: list[TopRepair]
    comeback_risks: list[ComebackRisk]
    fleet_metrics: list[FleetMetric]
    top_techs: list[TopTech]
    issues_detected: list[ShopHealthIssue]
    recommendations: list[ShopHealthRecommendation]
    scores: HealthScores
    menu_suggestions: list[MenuItemSuggestion]
    inspection_suggestions: list[InspectionSuggestion]
    staff_invites: list[StaffInviteSuggestion]
    narrative_summary: str
