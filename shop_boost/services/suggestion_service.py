"""Turn accepted Shop Boost suggestions into real shop records."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shop_boost.core.domain_exceptions import (
    ForbiddenError,
    PersistenceError,
    SuggestionNotFoundError,
    ValidationError,
)
from shop_boost.db.models import (
    InspectionTemplate,
    InspectionTemplateSuggestion,
    MenuItem,
    MenuItemSuggestion,
    StaffInviteSuggestion,
)
from shop_boost.schemas.intake import AcceptSuggestionResponse

logger = logging.getLogger(__name__)


def _commit(db: Session, record: MenuItem | InspectionTemplate) -> None:
    try:
        db.add(record)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"Failed to save accepted suggestion: {exc}") from exc
    db.refresh(record)


def accept_suggestion(db: Session, *, shop_id: str, suggestion_id: str) -> AcceptSuggestionResponse:
    """Create a menu item or inspection template from a stored suggestion."""
    menu = db.scalar(select(MenuItemSuggestion).where(MenuItemSuggestion.id == suggestion_id))
    inspection = None if menu else db.scalar(
        select(InspectionTemplateSuggestion).where(InspectionTemplateSuggestion.id == suggestion_id)
    )
    staff = None if menu or inspection else db.scalar(
        select(StaffInviteSuggestion).where(StaffInviteSuggestion.id == suggestion_id)
    )

    found = menu or inspection or staff
    if found is None:
        raise SuggestionNotFoundError(suggestion_id)
    if found.shop_id != shop_id:
        raise ForbiddenError("Suggestion not in your shop")

    if menu is not None:
        item = MenuItem(
            shop_id=shop_id,
            name=menu.title.strip() or "Untitled Menu Item",
            category=menu.category,
            total_price=menu.price_suggestion,
            labor_hours=menu.labor_hours_suggestion,
            description=menu.reason,
            is_active=True,
            source="shop_boost",
        )
        _commit(db, item)
        logger.info("Accepted menu suggestion %s as menu item %s", suggestion_id, item.id)
        return AcceptSuggestionResponse(created_type="menu_item", created_id=item.id, name=item.name)

    if inspection is not None:
        template = InspectionTemplate(
            shop_id=shop_id,
            template_name=inspection.name.strip() or "Shop Boost Inspection",
            sections={},
            description=inspection.note,
            tags=["shop_boost"],
            vehicle_type=inspection.usage_context,
            is_public=False,
        )
        _commit(db, template)
        logger.info("Accepted inspection suggestion %s as template %s", suggestion_id, template.id)
        return AcceptSuggestionResponse(
            created_type="inspection_template",
            created_id=template.id,
            name=template.template_name,
        )

    raise ValidationError("Staff invite suggestions must be accepted through user provisioning.")
