"""FastAPI application for the Responses bridge."""

import logging
from typing import Optional

from fastapi import FastAPI

from .api.routes import health, responses_endpoint
from .config_loader import load_config
from .core.invoker import HttpUpstreamInvoker, UpstreamInvoker
from .logging import setup_logging
from .responses import ResponsesStreamAggregator, TransportReconciler
from .responses.aggregator import StreamAggregator
from .settings import BridgeSettings

logger = logging.getLogger("responses-bridge")


def create_app(
    config: Optional[dict] = None,
    invoker: Optional[UpstreamInvoker] = None,
    aggregator: Optional[StreamAggregator] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Parsed configuration; loaded from disk when omitted
        invoker: Upstream invoker; an HTTP invoker over the configured
            providers when omitted
        aggregator: Stream aggregator; defaults to the Responses SSE one

    Returns:
        The configured FastAPI application instance.
    """
    if config is None:
        config = load_config()
    settings = BridgeSettings.from_config(config)
    setup_logging(settings.log_level)

    if invoker is None:
        invoker = HttpUpstreamInvoker(settings.providers, settings.default_provider)

    app = FastAPI(title="Responses Bridge")
    app.state.settings = settings
    app.state.reconciler = TransportReconciler(
        invoker,
        aggregator=aggregator or ResponsesStreamAggregator(),
        forced_stream_providers=settings.forced_stream_providers,
    )

    app.post("/v1/responses")(responses_endpoint)
    app.get("/health")(health)

    logger.info(
        f"Responses bridge created with providers={list(settings.providers)}, "
        f"default={settings.default_provider}, "
        f"forced_stream_providers={sorted(settings.forced_stream_providers)}"
    )
    return app


__all__ = ["create_app"]
