"""Tests for the end-to-end intake pipeline."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from shop_boost.core.domain_exceptions import IntakeNotFoundError, PersistenceError, StorageFetchError
from shop_boost.db import models
from shop_boost.services import shop_boost_service
from shop_boost.services.shop_boost_service import (
    build_shop_boost_profile,
    get_latest_snapshot,
    update_intake_status,
)

from .conftest import INTAKE_ID, SHOP_ID


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


def _fail_commit_when_pending(monkeypatch, db, model) -> None:
    original_commit = db.commit

    def failing_commit() -> None:
        if any(isinstance(obj, model) for obj in db.new):
            raise SQLAlchemyError("disk full")
        original_commit()

    monkeypatch.setattr(db, "commit", failing_commit)


class TestBuildShopBoostProfile:
    def test_full_run(self, db_session, storage, seeded_intake) -> None:
        snapshot = build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)

        assert snapshot.shop_id == SHOP_ID
        assert snapshot.intake_id == INTAKE_ID
        assert snapshot.snapshot_id
        assert snapshot.total_repair_orders == 3
        assert snapshot.total_revenue == 1470
        assert snapshot.average_ro == 490
        assert snapshot.time_range_description == "2024-01-05 – 2024-03-01"
        assert snapshot.scores.overall == 64
        assert snapshot.scores.status == "yellow"
        assert len(snapshot.comeback_risks) == 1
        assert [t.name for t in snapshot.top_techs] == ["Sam", "Alex"]
        assert len(snapshot.menu_suggestions) == 3

    def test_intake_marked_complete(self, db_session, storage, seeded_intake) -> None:
        build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)
        intake = db_session.get(models.ShopBoostIntake, INTAKE_ID)
        assert intake.status == "complete"
        assert intake.processed_at is not None
        assert intake.error is None

    def test_rows_written(self, db_session, storage, seeded_intake) -> None:
        build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)
        assert _count(db_session, models.ShopImportFile) == 2
        assert _count(db_session, models.ShopImportRow) == 5
        assert _count(db_session, models.WorkOrderLineAI) == 3
        assert _count(db_session, models.ShopHealthSnapshot) == 1
        assert _count(db_session, models.MenuItemSuggestion) == 3
        assert _count(db_session, models.InspectionTemplateSuggestion) == 2
        assert _count(db_session, models.StaffInviteSuggestion) == 2

        files = db_session.scalars(select(models.ShopImportFile).order_by(models.ShopImportFile.kind)).all()
        assert [(f.kind, f.row_count) for f in files] == [("customers", 2), ("vehicles", 3)]

    def test_classifications_stored(self, db_session, storage, seeded_intake) -> None:
        build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)
        lines = db_session.scalars(
            select(models.WorkOrderLineAI).order_by(models.WorkOrderLineAI.source_key)
        ).all()
        assert [(line.source_key, line.job_type) for line in lines] == [
            ("row:0", "aftertreatment"),
            ("row:1", "brakes"),
            ("row:2", "general"),
        ]
        assert lines[0].signals == ["aftertreatment:dpf"]
        assert lines[0].totals["total"] == 900.0

    def test_snapshot_ids_match_stored_suggestions(self, db_session, storage, seeded_intake) -> None:
        snapshot = build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)
        stored = set(db_session.scalars(select(models.MenuItemSuggestion.id)).all())
        assert {m.id for m in snapshot.menu_suggestions} == stored

    def test_questionnaire_override(self, db_session, storage, seeded_intake) -> None:
        build_shop_boost_profile(
            db_session,
            storage,
            shop_id=SHOP_ID,
            intake_id=INTAKE_ID,
            questionnaire={"specialty": "diesel"},
        )
        line = db_session.scalar(
            select(models.WorkOrderLineAI).where(models.WorkOrderLineAI.source_key == "row:2")
        )
        assert line.job_scope == "General heavy-duty service/repair"

    def test_rerun_appends(self, db_session, storage, seeded_intake) -> None:
        build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)
        build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)
        assert _count(db_session, models.ShopHealthSnapshot) == 2
        assert _count(db_session, models.ShopImportFile) == 4

    def test_import_rows_capped(self, db_session, storage, seeded_intake, monkeypatch) -> None:
        monkeypatch.setattr(shop_boost_service, "MAX_STORED_IMPORT_ROWS", 1)
        monkeypatch.setattr(shop_boost_service, "MAX_STORED_CLASSIFICATIONS", 2)
        build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)
        assert _count(db_session, models.ShopImportRow) == 2
        assert _count(db_session, models.WorkOrderLineAI) == 2


class TestFailures:
    def test_missing_intake(self, db_session, storage) -> None:
        with pytest.raises(IntakeNotFoundError):
            build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)
        assert _count(db_session, models.ShopHealthSnapshot) == 0

    def test_other_shop_cannot_run_intake(self, db_session, storage, seeded_intake) -> None:
        with pytest.raises(IntakeNotFoundError):
            build_shop_boost_profile(db_session, storage, shop_id="shop-2", intake_id=INTAKE_ID)
        assert db_session.get(models.ShopBoostIntake, INTAKE_ID).status == "pending"

    def test_missing_file_marks_failed(self, db_session, storage, seeded_intake) -> None:
        seeded_intake.parts_file_path = f"shops/{SHOP_ID}/{INTAKE_ID}/parts-missing.csv"
        db_session.commit()

        with pytest.raises(StorageFetchError):
            build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)

        intake = db_session.get(models.ShopBoostIntake, INTAKE_ID)
        assert intake.status == "failed"
        assert intake.error.startswith("Failed to download CSV")
        assert _count(db_session, models.ShopHealthSnapshot) == 0

    def test_snapshot_write_failure_is_fatal(self, db_session, storage, seeded_intake, monkeypatch) -> None:
        _fail_commit_when_pending(monkeypatch, db_session, models.ShopHealthSnapshot)

        with pytest.raises(PersistenceError):
            build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)

        intake = db_session.get(models.ShopBoostIntake, INTAKE_ID)
        assert intake.status == "failed"
        assert intake.error.startswith("Failed to write shop_health_snapshots")
        # Earlier steps are not rolled back.
        assert _count(db_session, models.WorkOrderLineAI) == 3
        assert _count(db_session, models.MenuItemSuggestion) == 0

    def test_import_row_failure_is_not_fatal(self, db_session, storage, seeded_intake, monkeypatch) -> None:
        _fail_commit_when_pending(monkeypatch, db_session, models.ShopImportRow)

        snapshot = build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)

        assert snapshot.total_repair_orders == 3
        assert _count(db_session, models.ShopImportRow) == 0
        assert _count(db_session, models.ShopHealthSnapshot) == 1
        assert db_session.get(models.ShopBoostIntake, INTAKE_ID).status == "complete"


class TestUpdateIntakeStatus:
    def test_unknown_status(self, db_session, seeded_intake) -> None:
        with pytest.raises(ValueError):
            update_intake_status(db_session, SHOP_ID, INTAKE_ID, "done")

    def test_processing_clears_error(self, db_session, seeded_intake) -> None:
        update_intake_status(db_session, SHOP_ID, INTAKE_ID, "failed", error="boom")
        update_intake_status(db_session, SHOP_ID, INTAKE_ID, "processing")
        intake = db_session.get(models.ShopBoostIntake, INTAKE_ID)
        assert intake.status == "processing"
        assert intake.error is None


class TestGetLatestSnapshot:
    def test_none_before_first_run(self, db_session) -> None:
        assert get_latest_snapshot(db_session, shop_id=SHOP_ID) is None

    def test_returns_newest(self, db_session, storage, seeded_intake) -> None:
        build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)
        second = build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)

        latest = get_latest_snapshot(db_session, shop_id=SHOP_ID)
        assert latest.snapshot_id == second.snapshot_id
        assert latest.total_revenue == 1470
        assert latest.period_start.year == 2024

    def test_scoped_to_shop(self, db_session, storage, seeded_intake) -> None:
        build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)
        assert get_latest_snapshot(db_session, shop_id="shop-2") is None
