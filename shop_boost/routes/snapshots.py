"""Shop health snapshot and suggestion routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from shop_boost.db.session import get_db
from shop_boost.schemas.common import APIResponse
from shop_boost.schemas.intake import AcceptSuggestionResponse
from shop_boost.schemas.shop_health import ShopHealthSnapshot
from shop_boost.services.shop_boost_service import get_latest_snapshot
from shop_boost.services.suggestion_service import accept_suggestion

router = APIRouter(prefix="/shops/{shop_id}", tags=["shop-health"])


@router.get("/snapshots/latest", response_model=APIResponse[ShopHealthSnapshot])
def api_latest_snapshot(
    shop_id: str,
    db: Session = Depends(get_db),
):
    snapshot = get_latest_snapshot(db=db, shop_id=shop_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No shop health snapshot yet.")
    return APIResponse(success=True, data=snapshot)


@router.post(
    "/suggestions/{suggestion_id}/accept",
    response_model=APIResponse[AcceptSuggestionResponse],
)
def api_accept_suggestion(
    shop_id: str,
    suggestion_id: str,
    db: Session = Depends(get_db),
):
    created = accept_suggestion(db=db, shop_id=shop_id, suggestion_id=suggestion_id)
    return APIResponse(success=True, data=created)
