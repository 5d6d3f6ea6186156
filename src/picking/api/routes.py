"""FastAPI routes for the Picking domain."""

import base64
import binascii

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from picking.api.schemas import (
    CancelOrderRequest,
    DuplicateCandidateResponse,
    IngestDocumentRequest,
    IngestResponse,
    OrderItemResponse,
    OrderKeyRequest,
    OrderResponse,
    ResolveDuplicateRequest,
    SaveUserRequest,
    SelectUserRequest,
    SessionResponse,
    StatusResponse,
    SwitchOperatorRequest,
    ToggleItemRequest,
    UserResponse,
    UsersResponse,
)
from picking.extraction.port import ExtractionError, ExtractionQuotaExceeded
from picking.order.duplicates import DuplicateAction, DuplicateCandidate, DuplicateConflict
from picking.order.lifecycle import PickingSession, get_lifecycle
from picking.order.order import Order
from picking.store.port import OrderNotFound, PersistenceError


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------
def _item_response(item) -> OrderItemResponse:
    return OrderItemResponse(
        item_no=item.item_no,
        code=item.code,
        description=item.description,
        location=item.location,
        quantity_ordered=item.quantity_ordered,
        unit=item.unit,
    )


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=order.order_id,
        timestamp=order.timestamp,
        requester=order.requester,
        destination_sector=order.destination_sector,
        status=order.status,
        items=[_item_response(item) for item in order.items],
        picked_items=list(order.picked_items or []),
        completion_status=order.completion_status,
        completion_timestamp=order.completion_timestamp,
        separator=order.separator,
        confirmer=order.confirmer,
        cancellation_reason=order.cancellation_reason,
    )


def _candidate_response(candidate: DuplicateCandidate) -> DuplicateCandidateResponse:
    return DuplicateCandidateResponse(
        order_id=candidate.order_id,
        existing=_order_response(candidate.existing),
        status_label=candidate.status_label,
        can_resume=candidate.can_resume,
    )


def _session_response(session: PickingSession) -> SessionResponse:
    ledger, workflow = session.ledger, session.workflow
    return SessionResponse(
        order=_order_response(session.order),
        items_by_location=[_item_response(item) for item in session.order.items_by_location()],
        picked_items=ledger.picked_in_order(),
        picked_count=ledger.picked_count,
        total_items=ledger.total,
        progress=ledger.progress(),
        ledger_locked=ledger.locked,
        picker_confirmed=workflow.picker_confirmed,
        checker_confirmed=workflow.checker_confirmed,
        selected_separator_id=workflow.selected_separator_id,
        selected_confirmer_id=workflow.selected_confirmer_id,
        missing_steps=workflow.missing_steps(),
    )


def _user_response(user) -> UserResponse:
    return UserResponse(id=str(user.id), name=user.name, role=user.role)


def _current_session_response() -> SessionResponse:
    session = get_lifecycle().session
    if session is None:
        raise HTTPException(status_code=404, detail="No order is open for picking")
    return _session_response(session)


# ---------------------------------------------------------------------------
# Orders Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/queue", response_model=list[OrderResponse])
async def list_queue() -> list[OrderResponse]:
    """Orders waiting to be picked, most recent first."""
    return [_order_response(order) for order in get_lifecycle().queue]


@order_router.get("/history", response_model=list[OrderResponse])
async def list_history() -> list[OrderResponse]:
    """Completed and canceled orders, most recent first."""
    return [_order_response(order) for order in get_lifecycle().history]


@order_router.post("/ingest", status_code=201, response_model=IngestResponse)
async def ingest_document(body: IngestDocumentRequest) -> IngestResponse:
    """Extract an order from an uploaded document and queue it."""
    try:
        content = base64.b64decode(body.content_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail="content_base64 is not valid base64") from exc

    result = get_lifecycle().ingest_file(content, body.mime_type)
    if isinstance(result, DuplicateCandidate):
        return IngestResponse(outcome="duplicate", duplicate=_candidate_response(result))
    return IngestResponse(outcome="queued", order=_order_response(result))


@order_router.get("/duplicate", response_model=DuplicateCandidateResponse)
async def get_duplicate() -> DuplicateCandidateResponse:
    candidate = get_lifecycle().pending_duplicate
    if candidate is None:
        raise HTTPException(status_code=404, detail="There is no duplicate awaiting a decision")
    return _candidate_response(candidate)


@order_router.post("/duplicate/resolve", response_model=IngestResponse)
async def resolve_duplicate(body: ResolveDuplicateRequest) -> IngestResponse:
    """Resume the historical order, import the draft as new, or discard it."""
    try:
        action = DuplicateAction(body.action)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Unknown duplicate action: {body.action}") from exc

    result = get_lifecycle().resolve_duplicate(action)
    if isinstance(result, PickingSession):
        return IngestResponse(outcome="resumed", order=_order_response(result.order))
    if isinstance(result, Order):
        return IngestResponse(outcome="queued", order=_order_response(result))
    return IngestResponse(outcome="discarded")


@order_router.post("/open", response_model=SessionResponse)
async def open_order(body: OrderKeyRequest) -> SessionResponse:
    """Bring a queued order to the picking stage."""
    return _session_response(get_lifecycle().open_order(body.order_id, body.timestamp))


@order_router.post("/continue", response_model=SessionResponse)
async def continue_picking(body: OrderKeyRequest) -> SessionResponse:
    """Reopen an incompletely picked order from history."""
    return _session_response(get_lifecycle().continue_picking(body.order_id, body.timestamp))


@order_router.post("/cancel-from-history", response_model=OrderResponse)
async def cancel_from_history(body: OrderKeyRequest) -> OrderResponse:
    return _order_response(get_lifecycle().cancel_from_history(body.order_id, body.timestamp))


# ---------------------------------------------------------------------------
# Session Router
# ---------------------------------------------------------------------------
session_router = APIRouter(prefix="/session", tags=["session"])


@session_router.get("", response_model=SessionResponse)
async def get_session() -> SessionResponse:
    return _current_session_response()


@session_router.post("/toggle", response_model=SessionResponse)
async def toggle_item(body: ToggleItemRequest) -> SessionResponse:
    """Mark an item picked or unpicked; ignored once separation is confirmed."""
    get_lifecycle().toggle_item(body.item_no)
    return _current_session_response()


@session_router.put("/separator", response_model=SessionResponse)
async def select_separator(body: SelectUserRequest) -> SessionResponse:
    get_lifecycle().select_separator(body.user_id)
    return _current_session_response()


@session_router.post("/separator/confirm", response_model=SessionResponse)
async def confirm_separation() -> SessionResponse:
    get_lifecycle().confirm_separation()
    return _current_session_response()


@session_router.put("/confirmer", response_model=SessionResponse)
async def select_confirmer(body: SelectUserRequest) -> SessionResponse:
    get_lifecycle().select_confirmer(body.user_id)
    return _current_session_response()


@session_router.post("/confirmer/confirm", response_model=SessionResponse)
async def confirm_checking() -> SessionResponse:
    get_lifecycle().confirm_checking()
    return _current_session_response()


@session_router.post("/finalize", response_model=OrderResponse)
async def finalize_order() -> OrderResponse:
    """Complete the open order after both sign-off steps."""
    return _order_response(get_lifecycle().finalize())


@session_router.post("/cancel", response_model=OrderResponse)
async def cancel_order(body: CancelOrderRequest) -> OrderResponse:
    return _order_response(get_lifecycle().cancel(body.reason))


@session_router.delete("", response_model=StatusResponse)
async def close_session() -> StatusResponse:
    get_lifecycle().close_session()
    return StatusResponse(status="closed")


# ---------------------------------------------------------------------------
# Users Router
# ---------------------------------------------------------------------------
user_router = APIRouter(prefix="/users", tags=["users"])


def _users_response() -> UsersResponse:
    lifecycle = get_lifecycle()
    return UsersResponse(
        users=[_user_response(user) for user in lifecycle.users],
        separators=[_user_response(user) for user in lifecycle.separators],
        confirmers=[_user_response(user) for user in lifecycle.confirmers],
    )


@user_router.get("", response_model=UsersResponse)
async def list_users() -> UsersResponse:
    return _users_response()


@user_router.post("", status_code=201, response_model=UserResponse)
async def save_user(body: SaveUserRequest) -> UserResponse:
    """Create a user, or update it when ``user_id`` is given."""
    return _user_response(get_lifecycle().save_user(body.name, body.role, user_id=body.user_id))


@user_router.delete("/{user_id}", response_model=UsersResponse)
async def delete_user(user_id: str) -> UsersResponse:
    get_lifecycle().delete_user(user_id)
    return _users_response()


@user_router.put("/operator", response_model=StatusResponse)
async def switch_operator(body: SwitchOperatorRequest) -> StatusResponse:
    """Switch the operator stamped on canceled orders."""
    get_lifecycle().switch_operator(body.name)
    return StatusResponse(status="switched")


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
def register_picking_exception_handlers(app: FastAPI) -> None:
    """Map picking errors to HTTP responses; protean errors are handled separately."""

    @app.exception_handler(ExtractionQuotaExceeded)
    async def _quota_exceeded(request: Request, exc: ExtractionQuotaExceeded):
        return JSONResponse(status_code=429, content={"error": str(exc), "kind": "extraction_quota"})

    @app.exception_handler(ExtractionError)
    async def _extraction_failed(request: Request, exc: ExtractionError):
        return JSONResponse(status_code=422, content={"error": str(exc), "kind": "extraction"})

    @app.exception_handler(DuplicateConflict)
    async def _duplicate_conflict(request: Request, exc: DuplicateConflict):
        return JSONResponse(
            status_code=409,
            content={"error": str(exc), "kind": "duplicate", "order_id": exc.order_id},
        )

    @app.exception_handler(OrderNotFound)
    async def _order_not_found(request: Request, exc: OrderNotFound):
        return JSONResponse(
            status_code=404,
            content={"error": str(exc), "kind": "not_found", "order_id": exc.order_id, "timestamp": exc.timestamp},
        )

    @app.exception_handler(PersistenceError)
    async def _persistence_failed(request: Request, exc: PersistenceError):
        return JSONResponse(status_code=503, content={"error": str(exc), "kind": "persistence"})
