"""Responses Bridge

Serves the Responses API on top of upstream engines that speak Chat
Completions, returning each reply in the shape and transport the client
asked for.

This module provides:
- TransportReconciler: Matches upstream transport to the client's request
- chat_completion_to_response: Chat Completions → Responses conversion
- HttpUpstreamInvoker: httpx client for the configured providers

Example:
    >>> from responses_bridge import create_app
    >>> import uvicorn
    >>> uvicorn.run(create_app(), host="127.0.0.1", port=8000)
"""

from .config_loader import load_config
from .core import HttpUpstreamInvoker, InvocationContext, UpstreamResult
from .logging import logger, setup_logging
from .main import create_app
from .responses import TransportReconciler, chat_completion_to_response
from .settings import BridgeSettings

__all__ = [
    "BridgeSettings",
    "HttpUpstreamInvoker",
    "InvocationContext",
    "TransportReconciler",
    "UpstreamResult",
    "chat_completion_to_response",
    "create_app",
    "load_config",
    "logger",
    "setup_logging",
]
