from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

FileKind = Literal["customers", "vehicles", "parts"]


class IntakeCreateRequest(BaseModel):
    intake_id: str | None = None
    questionnaire: dict[str, Any] = Field(default_factory=dict)
    customers_path: str | None = None
    vehicles_path: str | None = None
    parts_path: str | None = None


class IntakeRunRequest(BaseModel):
    questionnaire: dict[str, Any] | None = None


class IntakeResponse(BaseModel):
    intake_id: str
    shop_id: str
    status: str
    customers_file_path: str | None = None
    vehicles_file_path: str | None = None
    parts_file_path: str | None = None
    processed_at: datetime | None = None
    error: str | None = None


class UploadResponse(BaseModel):
    kind: FileKind
    storage_path: str
    size_bytes: int


class AcceptSuggestionResponse(BaseModel):
    created_type: Literal["menu_item", "inspection_template"]
    created_id: str
    name: str
