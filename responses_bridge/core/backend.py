"""Upstream provider configuration and HTTP header utilities."""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .exceptions import ConfigurationError

logger = logging.getLogger("responses-bridge")

DEFAULT_TIMEOUT = 60
API_TYPES = {"chat", "responses"}

HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}


@dataclass(frozen=True)
class Provider:
    """An upstream chat engine the bridge can call."""

    name: str
    base_url: str
    api_key: str
    timeout: Optional[float]
    api_type: str = "chat"

    @property
    def endpoint_path(self) -> str:
        if self.api_type == "responses":
            return "/responses"
        return "/chat/completions"

    def build_url(self, path: Optional[str] = None) -> str:
        """Build the full URL for an upstream request."""
        base = self.base_url.rstrip("/")
        normalized_path = path if path is not None else self.endpoint_path
        if not normalized_path.startswith("/"):
            normalized_path = f"/{normalized_path}"
        return f"{base}{normalized_path}"


def parse_providers(entries: Any) -> dict[str, Provider]:
    """Build providers from the ``providers`` config list."""
    providers: dict[str, Provider] = {}
    if not entries:
        return providers
    if not isinstance(entries, list):
        raise ConfigurationError("'providers' must be a list")

    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Invalid provider entry: {entry!r}")
        name = str(entry.get("name") or "").strip()
        if not name:
            raise ConfigurationError("Provider entry is missing 'name'")
        base_url = str(entry.get("api_base") or "").strip()
        if not base_url:
            raise ConfigurationError(f"Provider '{name}' is missing 'api_base'")
        api_type = str(entry.get("api_type") or "chat").strip().lower()
        if api_type not in API_TYPES:
            raise ConfigurationError(
                f"Provider '{name}' has unknown api_type '{api_type}'"
            )
        timeout_raw = entry.get("timeout")
        try:
            timeout = float(timeout_raw) if timeout_raw is not None else None
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"Provider '{name}' has invalid timeout {timeout_raw!r}"
            ) from exc

        providers[name] = Provider(
            name=name,
            base_url=base_url,
            api_key=str(entry.get("api_key") or ""),
            timeout=timeout,
            api_type=api_type,
        )
    return providers


def format_httpx_error(exc: Any, provider: Provider, url: Optional[str] = None) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    import httpx

    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    try:
        request = getattr(exc, "request", None)
    except RuntimeError:
        # httpx raises when the request was never attached to the error
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")

    if isinstance(exc, httpx.TimeoutException):
        timeout = provider.timeout or DEFAULT_TIMEOUT
        parts.append(f"timeout={timeout}s")

    return "; ".join(parts)


def build_outbound_headers(
    incoming: Mapping[str, str], api_key: str
) -> dict[str, str]:
    """Build headers for outbound requests to an upstream provider."""
    headers: dict[str, str] = {}
    normalized_keys: set[str] = set()
    for key, value in incoming.items():
        key_lower = key.lower()
        # Strip hop-by-hop headers and anything tied to the inbound connection
        if key_lower in HOP_BY_HOP_HEADERS or key_lower in {
            "authorization",
            "host",
            "content-length",
            "accept-encoding",
            "content-type",
        }:
            continue
        if key_lower in normalized_keys:
            continue
        headers[key] = value
        normalized_keys.add(key_lower)

    headers["Content-Type"] = "application/json"
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    # Explicitly request uncompressed responses
    headers["Accept-Encoding"] = "identity"
    return headers


def filter_response_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Filter response headers, removing hop-by-hop headers."""
    filtered: dict[str, str] = {}
    for key, value in headers.items():
        key_lower = key.lower()
        # Drop headers Starlette will recompute or that no longer match the payload
        if key_lower in HOP_BY_HOP_HEADERS or key_lower in {
            "content-length",
            "transfer-encoding",
            "content-encoding",
        }:
            continue
        filtered[key] = value
    return filtered
