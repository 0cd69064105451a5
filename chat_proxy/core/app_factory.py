"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from chat_proxy.api.routes import chat_router, health_router
from chat_proxy.core.config import settings
from chat_proxy.core.exception_handlers import setup_exception_handlers
from chat_proxy.core.logging import configure_logging
from chat_proxy.core.middleware import request_id_middleware
from chat_proxy.core.validation import get_denylist


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Raises:
        ConfigurationAppError: If the denylist contains an invalid pattern.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    # Fail at startup rather than on the first request
    get_denylist(tuple(settings.app.denylist_patterns))

    app = FastAPI(
        title="Chat Proxy",
        description=(
            "Forwards a chat message to an LLM completion API and relays the "
            "reply, behind input validation, a denylist filter, per-caller "
            "rate limiting and an upstream timeout."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(chat_router, prefix="/api")
    app.include_router(health_router)

    return app
