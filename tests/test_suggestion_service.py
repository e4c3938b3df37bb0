"""Tests for accepting stored suggestions."""

import pytest
from sqlalchemy import select

from shop_boost.core.domain_exceptions import ForbiddenError, SuggestionNotFoundError, ValidationError
from shop_boost.db import models
from shop_boost.services.shop_boost_service import build_shop_boost_profile
from shop_boost.services.suggestion_service import accept_suggestion

from .conftest import INTAKE_ID, SHOP_ID


@pytest.fixture
def snapshot(db_session, storage, seeded_intake):
    return build_shop_boost_profile(db_session, storage, shop_id=SHOP_ID, intake_id=INTAKE_ID)


class TestAcceptSuggestion:
    def test_menu_suggestion_creates_menu_item(self, db_session, snapshot) -> None:
        suggestion = snapshot.menu_suggestions[0]
        created = accept_suggestion(db_session, shop_id=SHOP_ID, suggestion_id=suggestion.id)

        assert created.created_type == "menu_item"
        assert created.name == suggestion.name
        item = db_session.get(models.MenuItem, created.created_id)
        assert item.shop_id == SHOP_ID
        assert item.total_price == suggestion.recommended_price
        assert item.labor_hours == suggestion.estimated_labor_hours
        assert item.source == "shop_boost"
        assert item.is_active is True

    def test_inspection_suggestion_creates_template(self, db_session, snapshot) -> None:
        suggestion = snapshot.inspection_suggestions[0]
        created = accept_suggestion(db_session, shop_id=SHOP_ID, suggestion_id=suggestion.id)

        assert created.created_type == "inspection_template"
        template = db_session.get(models.InspectionTemplate, created.created_id)
        assert template.template_name == "Retail Multi-Point Inspection"
        assert template.vehicle_type == "retail"
        assert template.tags == ["shop_boost"]
        assert template.is_public is False

    def test_staff_invite_not_supported(self, db_session, snapshot) -> None:
        staff_id = db_session.scalar(select(models.StaffInviteSuggestion.id))
        with pytest.raises(ValidationError):
            accept_suggestion(db_session, shop_id=SHOP_ID, suggestion_id=staff_id)

    def test_unknown_suggestion(self, db_session) -> None:
        with pytest.raises(SuggestionNotFoundError):
            accept_suggestion(db_session, shop_id=SHOP_ID, suggestion_id="missing")

    def test_other_shop_forbidden(self, db_session, snapshot) -> None:
        with pytest.raises(ForbiddenError):
            accept_suggestion(db_session, shop_id="shop-2", suggestion_id=snapshot.menu_suggestions[0].id)
        assert db_session.scalar(select(models.MenuItem)) is None
