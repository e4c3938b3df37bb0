"""Shop Boost intake routes.

Transport layer only. Intake and pipeline logic live in services.
"""

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from shop_boost.core.domain_exceptions import IntakeNotFoundError
from shop_boost.db.models import ShopBoostIntake
from shop_boost.db.session import get_db
from shop_boost.schemas.common import APIResponse
from shop_boost.schemas.intake import (
    IntakeCreateRequest,
    IntakeResponse,
    IntakeRunRequest,
    UploadResponse,
)
from shop_boost.schemas.shop_health import ShopHealthSnapshot
from shop_boost.services.intake_service import create_intake, get_intake, store_upload
from shop_boost.services.shop_boost_service import build_shop_boost_profile
from shop_boost.services.storage import ObjectStorage, get_storage

router = APIRouter(prefix="/shops/{shop_id}/intakes", tags=["intakes"])


def _intake_response(intake: ShopBoostIntake) -> IntakeResponse:
    return IntakeResponse(
        intake_id=intake.id,
        shop_id=intake.shop_id,
        status=intake.status,
        customers_file_path=intake.customers_file_path,
        vehicles_file_path=intake.vehicles_file_path,
        parts_file_path=intake.parts_file_path,
        processed_at=intake.processed_at,
        error=intake.error,
    )


@router.post("", response_model=APIResponse[IntakeResponse], status_code=201)
def api_create_intake(
    shop_id: str,
    payload: IntakeCreateRequest,
    db: Session = Depends(get_db),
):
    intake = create_intake(
        db=db,
        shop_id=shop_id,
        questionnaire=payload.questionnaire,
        intake_id=payload.intake_id,
        customers_path=payload.customers_path,
        vehicles_path=payload.vehicles_path,
        parts_path=payload.parts_path,
    )
    return APIResponse(success=True, data=_intake_response(intake))


@router.get("/{intake_id}", response_model=APIResponse[IntakeResponse])
def api_get_intake(
    shop_id: str,
    intake_id: str,
    db: Session = Depends(get_db),
):
    intake = get_intake(db=db, shop_id=shop_id, intake_id=intake_id)
    if intake is None:
        raise IntakeNotFoundError(shop_id, intake_id)
    return APIResponse(success=True, data=_intake_response(intake))


@router.put("/{intake_id}/files/{kind}", response_model=APIResponse[UploadResponse])
async def api_upload_file(
    shop_id: str,
    intake_id: str,
    kind: str,
    request: Request,
    filename: str | None = Query(default=None, description="Original file name"),
    storage: ObjectStorage = Depends(get_storage),
):
    data = await request.body()
    # Disk writes run in the threadpool, off the event loop.
    path = await run_in_threadpool(
        store_upload,
        storage,
        shop_id=shop_id,
        intake_id=intake_id,
        kind=kind,
        filename=filename,
        data=data,
    )
    return APIResponse(
        success=True,
        data=UploadResponse(kind=kind, storage_path=path, size_bytes=len(data)),
    )


@router.post("/{intake_id}/run", response_model=APIResponse[ShopHealthSnapshot])
def api_run_intake(
    shop_id: str,
    intake_id: str,
    payload: IntakeRunRequest | None = Body(default=None),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    snapshot = build_shop_boost_profile(
        db,
        storage,
        shop_id=shop_id,
        intake_id=intake_id,
        questionnaire=payload.questionnaire if payload else None,
    )
    return APIResponse(success=True, data=snapshot)
