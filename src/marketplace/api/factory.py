"""FastAPI application factory.

Builds the HTTP surface for an already initialized domain. The served
application in ``app.py`` and the HTTP tests both use it.
"""

from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.api.admin import admin_router
from marketplace.api.carts import cart_router, my_cart_router
from marketplace.api.errors import register_error_handlers
from marketplace.api.orders import order_router
from marketplace.api.store import store_router
from marketplace.utils.logging import add_context, clear_context


def create_app(domain) -> FastAPI:
    app = FastAPI(
        title="Marketplace API",
        description="Multi-seller marketplace: carts, checkout, orders and returns",
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
        """Push the domain context and bind per-request logging context."""
        request_id = request.headers.get("x-request-id") or uuid4().hex
        clear_context()
        add_context(request_id=request_id, path=request.url.path, method=request.method)

        with domain.domain_context():
            response = await call_next(request)

        response.headers["X-Request-Id"] = request_id
        return response

    app.include_router(cart_router)
    app.include_router(my_cart_router)
    app.include_router(order_router)
    app.include_router(store_router)
    app.include_router(admin_router)

    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": domain.name})

    return app
