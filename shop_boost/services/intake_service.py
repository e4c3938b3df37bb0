"""Intake creation and export uploads."""

import logging
import re
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shop_boost.core.domain_exceptions import ValidationError
from shop_boost.db.models import ShopBoostIntake
from shop_boost.services.storage import ObjectStorage

logger = logging.getLogger(__name__)

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
FILE_KINDS = ("customers", "vehicles", "parts")


def safe_file_name(name: str | None) -> str:
    cleaned = UNSAFE_FILENAME_CHARS.sub("_", (name or "upload.csv").strip())
    return cleaned or "upload.csv"


def is_shop_scoped_path(shop_id: str, path: str | None) -> bool:
    if not path:
        return True
    return path.startswith(f"shops/{shop_id}/")


def _require_uuid(intake_id: str) -> None:
    if not UUID_RE.match(intake_id):
        raise ValidationError("Invalid intake_id format (must be UUID).")


def store_upload(
    storage: ObjectStorage,
    *,
    shop_id: str,
    intake_id: str,
    kind: str,
    filename: str | None,
    data: bytes,
) -> str:
    """Store one uploaded export under the shop's prefix and return its path."""
    if kind not in FILE_KINDS:
        raise ValidationError(f"Unknown file kind: {kind}")
    _require_uuid(intake_id)
    if not data:
        raise ValidationError(f"Uploaded {kind} file is empty.")

    path = f"shops/{shop_id}/{intake_id}/{kind}-{safe_file_name(filename or f'{kind}.csv')}"
    storage.upload(path, data)
    return path


def _latest_intake(db: Session, shop_id: str) -> ShopBoostIntake | None:
    return db.scalar(
        select(ShopBoostIntake)
        .where(ShopBoostIntake.shop_id == shop_id)
        .order_by(ShopBoostIntake.created_at.desc())
        .limit(1)
    )


def create_intake(
    db: Session,
    *,
    shop_id: str,
    questionnaire: dict[str, Any] | None = None,
    intake_id: str | None = None,
    customers_path: str | None = None,
    vehicles_path: str | None = None,
    parts_path: str | None = None,
) -> ShopBoostIntake:
    """Create a pending intake.

    With no file paths at all, the paths of the shop's most recent intake are
    reused so an intake can be re-run without uploading again.
    """
    if intake_id is not None:
        _require_uuid(intake_id)
    intake_id = intake_id or str(uuid.uuid4())

    paths = {"customers": customers_path, "vehicles": vehicles_path, "parts": parts_path}
    if not any(paths.values()):
        latest = _latest_intake(db, shop_id)
        if latest is not None:
            paths = {
                "customers": latest.customers_file_path,
                "vehicles": latest.vehicles_file_path,
                "parts": latest.parts_file_path,
            }

    if not all(is_shop_scoped_path(shop_id, path) for path in paths.values()):
        raise ValidationError("Invalid file path (must start with shops/<shop_id>/).")

    if not any(paths.values()):
        raise ValidationError(
            "No uploads found and no previous intake files exist yet. Upload at least one CSV first."
        )

    intake = ShopBoostIntake(
        id=intake_id,
        shop_id=shop_id,
        questionnaire=questionnaire or {},
        customers_file_path=paths["customers"],
        vehicles_file_path=paths["vehicles"],
        parts_file_path=paths["parts"],
        status="pending",
    )
    try:
        db.add(intake)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create intake %s for shop %s", intake_id, shop_id)
        raise ValidationError(f"Failed to create intake: {exc}") from exc

    db.refresh(intake)
    logger.info("Created intake %s for shop %s", intake.id, shop_id)
    return intake


def get_intake(db: Session, *, shop_id: str, intake_id: str) -> ShopBoostIntake | None:
    return db.scalar(
        select(ShopBoostIntake)
        .where(ShopBoostIntake.id == intake_id)
        .where(ShopBoostIntake.shop_id == shop_id)
    )
