"""Shop Boost intake pipeline.

One run reads an intake and its CSV exports, stores sampled import rows,
classifies repair-order lines, scores shop health, and writes the snapshot
plus suggestions. Steps run strictly in order; there is no transaction
spanning the run, so a failure midway leaves earlier writes in place and
only marks the intake as failed.
"""

import logging
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shop_boost.core.config import (
    IMPORT_ROW_BATCH,
    MAX_STORED_CLASSIFICATIONS,
    MAX_STORED_IMPORT_ROWS,
)
from shop_boost.core.domain_exceptions import IntakeNotFoundError, PersistenceError
from shop_boost.db import models
from shop_boost.intelligence.csv_ingest import decode_csv_bytes, parse_csv_text
from shop_boost.intelligence.health_scoring import compute_shop_health_scores
from shop_boost.intelligence.job_classifier import classify_batch
from shop_boost.intelligence.line_candidates import build_line_candidates
from shop_boost.schemas.shop_health import (
    ClassificationResult,
    ShopHealthScores,
    ShopHealthScoringInput,
    ShopHealthSnapshot,
)
from shop_boost.services.storage import ObjectStorage

logger = logging.getLogger(__name__)

FILE_KINDS = ("customers", "vehicles", "parts")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def load_intake(db: Session, shop_id: str, intake_id: str) -> models.ShopBoostIntake:
    intake = db.scalar(
        select(models.ShopBoostIntake)
        .where(models.ShopBoostIntake.id == intake_id)
        .where(models.ShopBoostIntake.shop_id == shop_id)
    )
    if intake is None:
        raise IntakeNotFoundError(shop_id, intake_id)
    return intake


def update_intake_status(
    db: Session,
    shop_id: str,
    intake_id: str,
    status: str,
    *,
    processed_at: datetime | None = None,
    error: str | None = None,
) -> None:
    if status not in models.INTAKE_STATUSES:
        raise ValueError(f"Unknown intake status: {status}")

    db.execute(
        update(models.ShopBoostIntake)
        .where(models.ShopBoostIntake.id == intake_id)
        .where(models.ShopBoostIntake.shop_id == shop_id)
        .values(
            status=status,
            processed_at=processed_at or (_now() if status == "complete" else None),
            error=error,
        )
    )
    db.commit()


def download_csv_if_present(storage: ObjectStorage, path: str | None) -> str | None:
    if not path:
        return None
    return decode_csv_bytes(storage.download(path))


def _best_effort_insert(db: Session, table: str, rows: Sequence[models.Base]) -> None:
    """Insert rows, logging and rolling back on failure instead of raising."""
    if not rows:
        return
    try:
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Insert into %s failed (%d rows); continuing.", table, len(rows))


def _chunks(rows: list[Any], size: int) -> Iterable[list[Any]]:
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


def _store_import_files(
    db: Session,
    shop_id: str,
    intake: models.ShopBoostIntake,
    rows_by_kind: dict[str, list[dict[str, str]]],
) -> None:
    paths = {
        "customers": intake.customers_file_path,
        "vehicles": intake.vehicles_file_path,
        "parts": intake.parts_file_path,
    }
    files = [
        models.ShopImportFile(
            shop_id=shop_id,
            intake_id=intake.id,
            kind=kind,
            storage_path=paths[kind],
            row_count=len(rows_by_kind[kind]),
        )
        for kind in FILE_KINDS
        if paths[kind]
    ]
    _best_effort_insert(db, "shop_import_files", files)


def _store_import_rows(
    db: Session,
    shop_id: str,
    intake_id: str,
    rows_by_kind: dict[str, list[dict[str, str]]],
) -> None:
    import_rows = [
        models.ShopImportRow(
            shop_id=shop_id,
            intake_id=intake_id,
            kind=kind,
            row_index=idx,
            raw=raw,
        )
        for kind in FILE_KINDS
        for idx, raw in enumerate(rows_by_kind[kind][:MAX_STORED_IMPORT_ROWS])
    ]
    for chunk in _chunks(import_rows, IMPORT_ROW_BATCH):
        _best_effort_insert(db, "shop_import_rows", chunk)


def _store_classifications(
    db: Session,
    shop_id: str,
    intake_id: str,
    classifications: list[ClassificationResult],
) -> None:
    lines = [
        models.WorkOrderLineAI(
            shop_id=shop_id,
            intake_id=intake_id,
            source_key=c.key,
            job_type=c.job_type,
            job_scope=c.job_scope,
            confidence=c.confidence,
            signals=list(c.signals),
            occurred_at=c.occurred_at,
            totals=c.totals.model_dump(),
        )
        for c in classifications[:MAX_STORED_CLASSIFICATIONS]
    ]
    _best_effort_insert(db, "work_order_line_ai", lines)


def _store_suggestions(db: Session, shop_id: str, intake_id: str, scored: ShopHealthScores) -> None:
    suggestions = scored.suggestions
    _best_effort_insert(
        db,
        "menu_item_suggestions",
        [
            models.MenuItemSuggestion(
                id=m.id,
                shop_id=shop_id,
                intake_id=intake_id,
                title=m.name,
                category=m.category,
                price_suggestion=m.recommended_price,
                labor_hours_suggestion=m.estimated_labor_hours,
                confidence=m.confidence,
                reason=m.reason,
                based_on=m.based_on_jobs,
            )
            for m in suggestions.menu_items
        ],
    )
    _best_effort_insert(
        db,
        "inspection_template_suggestions",
        [
            models.InspectionTemplateSuggestion(
                id=i.id,
                shop_id=shop_id,
                intake_id=intake_id,
                name=i.name,
                usage_context=i.usage_context,
                confidence=i.confidence,
                note=i.note,
            )
            for i in suggestions.inspections
        ],
    )
    _best_effort_insert(
        db,
        "staff_invite_suggestions",
        [
            models.StaffInviteSuggestion(
                shop_id=shop_id,
                intake_id=intake_id,
                role=s.role,
                email=s.email,
                notes=s.notes,
            )
            for s in suggestions.staff_invites
        ],
    )


def to_api_snapshot(
    shop_id: str,
    intake_id: str,
    snapshot_id: str,
    scored: ShopHealthScores,
) -> ShopHealthSnapshot:
    return ShopHealthSnapshot(
        shop_id=shop_id,
        intake_id=intake_id,
        snapshot_id=snapshot_id,
        period_start=scored.period_start,
        period_end=scored.period_end,
        time_range_description=scored.time_range_description,
        total_repair_orders=scored.kpis.total_repair_orders,
        total_revenue=scored.kpis.total_revenue,
        average_ro=scored.kpis.average_ro,
        most_common_repairs=scored.most_common_repairs,
        high_value_repairs=scored.high_value_repairs,
        comeback_risks=scored.comeback_risks,
        fleet_metrics=scored.fleet_metrics,
        top_techs=scored.top_techs,
        issues_detected=scored.issues_detected,
        recommendations=scored.recommendations,
        scores=scored.scores,
        menu_suggestions=scored.suggestions.menu_items,
        inspection_suggestions=scored.suggestions.inspections,
        staff_invites=scored.suggestions.staff_invites,
        narrative_summary=scored.narrative_summary,
    )


def _insert_snapshot(
    db: Session,
    shop_id: str,
    intake_id: str,
    scored: ShopHealthScores,
) -> ShopHealthSnapshot:
    snapshot_id = str(uuid.uuid4())
    api_snapshot = to_api_snapshot(shop_id, intake_id, snapshot_id, scored)
    row = models.ShopHealthSnapshot(
        id=snapshot_id,
        shop_id=shop_id,
        intake_id=intake_id,
        period_start=scored.period_start,
        period_end=scored.period_end,
        metrics=scored.metrics,
        scores=scored.scores.model_dump(mode="json"),
        narrative_summary=scored.narrative_summary,
        payload=api_snapshot.model_dump(mode="json"),
    )
    try:
        db.add(row)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"Failed to write shop_health_snapshots: {exc}") from exc
    return api_snapshot


def _specialty(questionnaire: dict[str, Any]) -> str:
    specialty = questionnaire.get("specialty")
    return specialty if isinstance(specialty, str) else "general"


def build_shop_boost_profile(
    db: Session,
    storage: ObjectStorage,
    *,
    shop_id: str,
    intake_id: str,
    questionnaire: dict[str, Any] | None = None,
) -> ShopHealthSnapshot:
    """Run the full intake pipeline and return the caller-facing snapshot."""
    logger.info("Shop Boost run started (shop_id=%s, intake_id=%s)", shop_id, intake_id)
    update_intake_status(db, shop_id, intake_id, "processing")

    try:
        intake = load_intake(db, shop_id, intake_id)
        answers = questionnaire if questionnaire is not None else (intake.questionnaire or {})

        rows_by_kind: dict[str, list[dict[str, str]]] = {}
        for kind in FILE_KINDS:
            text = download_csv_if_present(storage, getattr(intake, f"{kind}_file_path"))
            rows_by_kind[kind] = parse_csv_text(text) if text else []
        logger.info(
            "Parsed exports: %d customers, %d vehicles, %d parts rows",
            len(rows_by_kind["customers"]),
            len(rows_by_kind["vehicles"]),
            len(rows_by_kind["parts"]),
        )

        _store_import_files(db, shop_id, intake, rows_by_kind)
        _store_import_rows(db, shop_id, intake_id, rows_by_kind)

        candidates = build_line_candidates(rows_by_kind["vehicles"])
        classifications = classify_batch(candidates, shop_specialty=_specialty(answers))
        logger.info("Classified %d repair-order lines", len(classifications))
        _store_classifications(db, shop_id, intake_id, classifications)

        scored = compute_shop_health_scores(
            ShopHealthScoringInput(
                shop_id=shop_id,
                intake_id=intake_id,
                questionnaire=answers,
                customers_rows=rows_by_kind["customers"],
                vehicles_rows=rows_by_kind["vehicles"],
                parts_rows=rows_by_kind["parts"],
                classified_lines=classifications,
            )
        )
        snapshot = _insert_snapshot(db, shop_id, intake_id, scored)
        _store_suggestions(db, shop_id, intake_id, scored)

        update_intake_status(db, shop_id, intake_id, "complete", processed_at=_now())
    except Exception as exc:
        db.rollback()
        logger.exception("Shop Boost run failed (shop_id=%s, intake_id=%s)", shop_id, intake_id)
        update_intake_status(db, shop_id, intake_id, "failed", error=str(exc) or "Unknown error")
        raise

    logger.info(
        "Shop Boost run complete (snapshot_id=%s, overall=%s)",
        snapshot.snapshot_id,
        snapshot.scores.overall,
    )
    return snapshot


def get_latest_snapshot(db: Session, *, shop_id: str) -> ShopHealthSnapshot | None:
    row = db.scalar(
        select(models.ShopHealthSnapshot)
        .where(models.ShopHealthSnapshot.shop_id == shop_id)
        .order_by(models.ShopHealthSnapshot.created_at.desc(), models.ShopHealthSnapshot.id.desc())
        .limit(1)
    )
    if row is None:
        return None
    return ShopHealthSnapshot.model_validate(row.payload)
