"""SQLAlchemy ORM models."""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shop_boost.db.session import Base

INTAKE_STATUSES = ("pending", "processing", "complete", "failed")


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShopBoostIntake(Base):
    """One submitted batch of shop history files plus a questionnaire."""

    __tablename__ = "shop_boost_intakes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    shop_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    questionnaire: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    customers_file_path: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    vehicles_file_path: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    parts_file_path: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="pending",
        server_default=text("'pending'"),
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    snapshots: Mapped[list["ShopHealthSnapshot"]] = relationship(back_populates="intake")


class ShopImportFile(Base):
    """Metadata for one CSV file consumed by an intake run."""

    __tablename__ = "shop_import_files"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    shop_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    intake_id: Mapped[str] = mapped_column(
        ForeignKey("shop_boost_intakes.id"),
        nullable=False,
        index=True,
    )

    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(512), nullable=False)
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class ShopImportRow(Base):
    """Sampled raw CSV row kept for audit."""

    __tablename__ = "shop_import_rows"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    shop_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    intake_id: Mapped[str] = mapped_column(
        ForeignKey("shop_boost_intakes.id"),
        nullable=False,
        index=True,
    )

    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    row_index: Mapped[int] = mapped_column(Integer, nullable=False)
    raw: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)


class WorkOrderLineAI(Base):
    """Classification of one repair-order line produced by an intake run."""

    __tablename__ = "work_order_line_ai"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    shop_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    intake_id: Mapped[str] = mapped_column(
        ForeignKey("shop_boost_intakes.id"),
        nullable=False,
        index=True,
    )

    source_key: Mapped[str] = mapped_column(String(64), nullable=False)
    job_type: Mapped[str] = mapped_column(String(32), nullable=False)
    job_scope: Mapped[str] = mapped_column(String(255), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    signals: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    occurred_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    totals: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class ShopHealthSnapshot(Base):
    """Scored result of one intake run. Rows are never updated."""

    __tablename__ = "shop_health_snapshots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    shop_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    intake_id: Mapped[str] = mapped_column(
        ForeignKey("shop_boost_intakes.id"),
        nullable=False,
        index=True,
    )

    period_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    period_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    metrics: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    scores: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    narrative_summary: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Caller-facing snapshot as returned by the run endpoint.
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    intake: Mapped["ShopBoostIntake"] = relationship(back_populates="snapshots")


class MenuItemSuggestion(Base):
    __tablename__ = "menu_item_suggestions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    shop_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    intake_id: Mapped[str] = mapped_column(ForeignKey("shop_boost_intakes.id"), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    price_suggestion: Mapped[float] = mapped_column(Float, nullable=False)
    labor_hours_suggestion: Mapped[float] = mapped_column(Float, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    based_on: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class InspectionTemplateSuggestion(Base):
    __tablename__ = "inspection_template_suggestions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    shop_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    intake_id: Mapped[str] = mapped_column(ForeignKey("shop_boost_intakes.id"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    usage_context: Mapped[str] = mapped_column(String(32), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class StaffInviteSuggestion(Base):
    __tablename__ = "staff_invite_suggestions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    shop_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    intake_id: Mapped[str] = mapped_column(ForeignKey("shop_boost_intakes.id"), nullable=False)

    role: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class MenuItem(Base):
    """A shop's published, priced service offering."""

    __tablename__ = "menu_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    shop_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    total_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    labor_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("1"),
    )
    source: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class InspectionTemplate(Base):
    __tablename__ = "inspection_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    shop_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    template_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sections: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    vehicle_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    is_public: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("0"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
