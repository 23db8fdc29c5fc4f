"""
Service configuration.

Settings are read from an optional YAML document and then overridden by the
environment, so deployments can keep secrets such as the ICE allocator token
out of the file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import yaml

from .rtc.coordinator import DEFAULT_CLOSE_GRACE_SECONDS
from .rtc.ice_servers import DEFAULT_TIMEOUT_SECONDS, DEFAULT_UPSTREAM_URL
from .rtc.webrtc import IceServer

CONFIG_ENV_VAR = "SIGNALING_CONFIG"
TOKEN_ENV_VAR = "RESTSEND_TOKEN"
ICE_URL_ENV_VAR = "SIGNALING_ICE_URL"

LOG = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when the configuration document cannot be used."""


@dataclass
class SignalingConfig:
    host: str = "127.0.0.1"
    port: int = 8080
    ice_servers: List[IceServer] = field(default_factory=list)
    ice_token: Optional[str] = None
    ice_upstream_url: str = DEFAULT_UPSTREAM_URL
    ice_timeout: float = DEFAULT_TIMEOUT_SECONDS
    relay_rejects_unknown: bool = False
    close_grace_seconds: float = DEFAULT_CLOSE_GRACE_SECONDS
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, payload: dict) -> "SignalingConfig":
        config = cls()
        if "host" in payload:
            config.host = str(payload["host"])
        if "port" in payload:
            config.port = int(payload["port"])
        if "ice_servers" in payload:
            entries = payload.get("ice_servers") or []
            if not isinstance(entries, list):
                raise ConfigError("ice_servers must be a list")
            config.ice_servers = [IceServer.from_dict(entry) for entry in entries]
        if "ice_token" in payload:
            config.ice_token = payload.get("ice_token") or None
        if "ice_upstream_url" in payload:
            config.ice_upstream_url = str(payload["ice_upstream_url"])
        if "ice_timeout" in payload:
            config.ice_timeout = max(0.0, float(payload["ice_timeout"]))
        if "relay_rejects_unknown" in payload:
            config.relay_rejects_unknown = bool(payload["relay_rejects_unknown"])
        if "close_grace_seconds" in payload:
            config.close_grace_seconds = max(0.0, float(payload["close_grace_seconds"]))
        if "log_level" in payload:
            config.log_level = str(payload["log_level"]).upper()
        return config

    def apply_environment(self) -> "SignalingConfig":
        token = os.environ.get(TOKEN_ENV_VAR)
        if token:
            self.ice_token = token
        upstream = os.environ.get(ICE_URL_ENV_VAR)
        if upstream:
            self.ice_upstream_url = upstream
        return self


def load_config(path: Union[str, Path, None] = None) -> SignalingConfig:
    """
    Load configuration from ``path`` (or ``$SIGNALING_CONFIG``) and the environment.

    A missing file yields the defaults.
    """

    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None

    payload: dict = {}
    if path is not None:
        config_path = Path(path).expanduser()
        try:
            with config_path.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle) or {}
        except FileNotFoundError:
            LOG.warning("Config file %s not found; using defaults", config_path)
            payload = {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError(f"{config_path} must contain a mapping")

    try:
        config = SignalingConfig.from_dict(payload)
    except ConfigError:
        raise
    except (AttributeError, TypeError, ValueError) as exc:
        raise ConfigError(str(exc)) from exc
    return config.apply_environment()


__all__ = ["ConfigError", "SignalingConfig", "load_config"]
