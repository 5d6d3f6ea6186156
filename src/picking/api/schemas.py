"""Pydantic API schemas for the Picking domain.

These are the external API contracts — separate from the domain objects.
The routes translate between these schemas and the order lifecycle.
"""

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class IngestDocumentRequest(BaseModel):
    content_base64: str
    mime_type: str


class ResolveDuplicateRequest(BaseModel):
    action: str


class OrderKeyRequest(BaseModel):
    order_id: str
    timestamp: str


class ToggleItemRequest(BaseModel):
    item_no: str


class SelectUserRequest(BaseModel):
    user_id: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class SwitchOperatorRequest(BaseModel):
    name: str


class SaveUserRequest(BaseModel):
    name: str
    role: str
    user_id: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    item_no: str
    code: str | None = None
    description: str | None = None
    location: str | None = None
    quantity_ordered: float
    unit: str | None = None


class OrderResponse(BaseModel):
    order_id: str
    timestamp: str
    requester: str | None = None
    destination_sector: str | None = None
    status: str
    items: list[OrderItemResponse]
    picked_items: list[str]
    completion_status: str | None = None
    completion_timestamp: str | None = None
    separator: str | None = None
    confirmer: str | None = None
    cancellation_reason: str | None = None


class DuplicateCandidateResponse(BaseModel):
    order_id: str
    existing: OrderResponse
    status_label: str
    can_resume: bool


class IngestResponse(BaseModel):
    outcome: str
    order: OrderResponse | None = None
    duplicate: DuplicateCandidateResponse | None = None


class SessionResponse(BaseModel):
    order: OrderResponse
    items_by_location: list[OrderItemResponse]
    picked_items: list[str]
    picked_count: int
    total_items: int
    progress: float
    ledger_locked: bool
    picker_confirmed: bool
    checker_confirmed: bool
    selected_separator_id: str | None = None
    selected_confirmer_id: str | None = None
    missing_steps: list[str]


class UserResponse(BaseModel):
    id: str
    name: str
    role: str


class UsersResponse(BaseModel):
    users: list[UserResponse]
    separators: list[UserResponse]
    confirmers: list[UserResponse]


class StatusResponse(BaseModel):
    status: str
