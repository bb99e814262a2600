"""Typed runtime settings parsed from the loaded configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from .core.backend import Provider, parse_providers
from .core.exceptions import ConfigurationError

logger = logging.getLogger("responses-bridge")

DEFAULT_FORCED_STREAM_PROVIDERS = frozenset({"codex"})


def _get(cfg: dict, *keys: str):
    cur = cfg
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _to_int(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_str(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class BridgeSettings:
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    forced_stream_providers: frozenset[str] = DEFAULT_FORCED_STREAM_PROVIDERS
    providers: dict[str, Provider] = field(default_factory=dict)
    default_provider: Optional[str] = None

    @classmethod
    def from_config(cls, cfg: Optional[dict]) -> "BridgeSettings":
        cfg = cfg or {}

        host = _to_str(_get(cfg, "bridge_settings", "server", "host")) or "127.0.0.1"
        port = _to_int(_get(cfg, "bridge_settings", "server", "port")) or 8000
        log_level = _to_str(_get(cfg, "bridge_settings", "log_level")) or "INFO"

        forced_raw = _get(cfg, "bridge_settings", "forced_stream_providers")
        if forced_raw is None:
            forced = DEFAULT_FORCED_STREAM_PROVIDERS
        elif isinstance(forced_raw, (list, tuple)):
            forced = frozenset(str(name) for name in forced_raw if name)
        else:
            raise ConfigurationError("'forced_stream_providers' must be a list")

        entries = cfg.get("providers") or []
        providers = parse_providers(entries)
        default_provider = None
        for entry in entries:
            if isinstance(entry, dict) and entry.get("default"):
                default_provider = str(entry.get("name"))
                break
        if default_provider is None and providers:
            default_provider = next(iter(providers))

        # Env overrides
        host = os.getenv("RESPONSES_BRIDGE_HOST", host)
        port = _to_int(os.getenv("RESPONSES_BRIDGE_PORT")) or port
        log_level = os.getenv("RESPONSES_BRIDGE_LOG_LEVEL", log_level)

        return cls(
            host=host,
            port=port,
            log_level=log_level,
            forced_stream_providers=forced,
            providers=providers,
            default_provider=default_provider,
        )
