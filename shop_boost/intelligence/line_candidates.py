"""Turn loosely-typed repair-order CSV rows into classification inputs.

Column names vary across shop-management exports, so every field is looked
up through a list of known aliases and coerced defensively.
"""

import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any, Final

from shop_boost.core.config import MAX_LINE_CANDIDATES
from shop_boost.schemas.shop_health import (
    ClassificationInput,
    LineText,
    LineTotals,
    VehicleInfo,
)

COMPLAINT_COLUMNS: Final[tuple[str, ...]] = ("complaint", "customer_complaint", "concern", "symptom")
CAUSE_COLUMNS: Final[tuple[str, ...]] = ("cause", "root_cause")
CORRECTION_COLUMNS: Final[tuple[str, ...]] = ("correction", "repair", "fix", "resolution")
DESCRIPTION_COLUMNS: Final[tuple[str, ...]] = (
    "description",
    "job_description",
    "line_description",
    "service",
    "op_description",
)
DATE_COLUMNS: Final[tuple[str, ...]] = (
    "date",
    "ro_date",
    "repair_order_date",
    "created_at",
    "opened_at",
    "invoice_date",
)
TECH_COLUMNS: Final[tuple[str, ...]] = ("technician", "tech", "tech_name", "advisor", "writer")

DATE_FORMATS: Final[tuple[str, ...]] = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M %p",
    "%Y/%m/%d",
    "%d-%b-%Y",
    "%b %d, %Y",
    "%B %d, %Y",
)


def safe_num(value: Any) -> float | None:
    """Coerce numbers and numeric strings ("$1,204.50") to a finite float."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace(",", "")
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def norm_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def pick_first_non_empty(row: Mapping[str, Any], columns: Iterable[str]) -> str:
    for column in columns:
        text = norm_str(row.get(column))
        if text:
            return text
    return ""


def first_num(row: Mapping[str, Any], columns: Iterable[str]) -> float | None:
    for column in columns:
        number = safe_num(row.get(column))
        if number is not None:
            return number
    return None


def to_lower_keys(row: Mapping[str, Any]) -> dict[str, Any]:
    return {str(key).strip().lower(): value for key, value in row.items()}


def parse_date(raw: str) -> datetime | None:
    """Parse the date formats common in RO exports; naive values are UTC."""
    raw = raw.strip()
    if not raw:
        return None

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(raw, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def guess_totals(row: Mapping[str, Any]) -> LineTotals:
    labor_hours = first_num(row, ("labor_hours", "hours", "billed_hours"))
    labor_total = first_num(row, ("labor_total", "labor_amount", "labor"))
    parts_total = first_num(row, ("parts_total", "parts_amount", "parts"))

    total = first_num(row, ("total", "grand_total", "invoice_total"))
    if total is None and (labor_total is not None or parts_total is not None):
        total = (labor_total or 0.0) + (parts_total or 0.0)

    return LineTotals(
        labor_hours=labor_hours,
        labor_total=labor_total,
        parts_total=parts_total,
        total=total,
    )


def build_line_candidate(row: Mapping[str, Any], index: int) -> ClassificationInput:
    """Build one classification input from a raw vehicle/RO history row."""
    lowered = to_lower_keys(row)

    complaint = pick_first_non_empty(lowered, COMPLAINT_COLUMNS)
    cause = pick_first_non_empty(lowered, CAUSE_COLUMNS)
    correction = pick_first_non_empty(lowered, CORRECTION_COLUMNS)
    description = pick_first_non_empty(lowered, DESCRIPTION_COLUMNS)
    joined = " | ".join(part for part in (complaint, cause, correction, description) if part)

    year = first_num(lowered, ("year", "vehicle_year"))
    tech_name = pick_first_non_empty(lowered, TECH_COLUMNS)

    return ClassificationInput(
        key=f"row:{index}",
        occurred_at=parse_date(pick_first_non_empty(lowered, DATE_COLUMNS)),
        vehicle=VehicleInfo(
            year=int(year) if year is not None else None,
            make=pick_first_non_empty(lowered, ("make", "vehicle_make")),
            model=pick_first_non_empty(lowered, ("model", "vehicle_model")),
            vin=pick_first_non_empty(lowered, ("vin", "vehicle_vin")),
        ),
        text=LineText(
            complaint=complaint,
            cause=cause,
            correction=correction,
            description=description,
            joined=joined,
        ),
        totals=guess_totals(lowered),
        tech_name=tech_name or None,
        raw=lowered,
    )


def build_line_candidates(
    rows: list[Mapping[str, Any]],
    limit: int = MAX_LINE_CANDIDATES,
) -> list[ClassificationInput]:
    """Build candidates from the first `limit` rows, skipping rows with no text."""
    candidates = [build_line_candidate(row, idx) for idx, row in enumerate(rows[:limit])]
    return [candidate for candidate in candidates if candidate.text.joined]
