"""Picking FastAPI application.

Web server exposing the order lifecycle over HTTP. Each request is wrapped in
the picking domain context so aggregates can be created and validated.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied.
from picking.domain import picking

picking.init()

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Picking API",
    description="Warehouse pick orders with two-person verification",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the picking domain context for each request."""
    with picking.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from picking.api.routes import (  # noqa: E402
    order_router,
    register_picking_exception_handlers,
    session_router,
    user_router,
)
from picking.extraction import get_extractor  # noqa: E402
from picking.store import get_store  # noqa: E402
from protean.integrations.fastapi import register_exception_handlers  # noqa: E402

app.include_router(order_router)
app.include_router(session_router)
app.include_router(user_router)

register_exception_handlers(app)
register_picking_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    store = get_store()
    return JSONResponse(
        content={
            "status": "ok",
            "domain": picking.name,
            "store": type(store).__name__,
            "multi_writer": store.multi_writer,
            "extractor": type(get_extractor()).__name__,
        }
    )
