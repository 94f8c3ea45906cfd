from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast

import boto3
from botocore.config import Config

log = logging.getLogger(__name__)

ENV_PREFIX = "DDB_PY_"


@dataclass(frozen=True)
class Settings:
    """Client construction and operation defaults.

    Retries belong to botocore; ``max_attempts`` is passed through to its
    retry config and nothing in this package retries on its own.
    """

    region: str | None = None
    endpoint_url: str | None = None
    connect_timeout: float = 15.0
    read_timeout: float = 30.0
    max_attempts: int = 3
    max_pool_connections: int = 10
    total_segments: int = 1

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> Settings:
        defaults = cls()
        settings = cls(
            region=environ.get(f"{ENV_PREFIX}REGION") or environ.get("AWS_REGION") or None,
            endpoint_url=environ.get(f"{ENV_PREFIX}ENDPOINT_URL") or None,
            connect_timeout=_env_float(environ, "CONNECT_TIMEOUT", defaults.connect_timeout),
            read_timeout=_env_float(environ, "READ_TIMEOUT", defaults.read_timeout),
            max_attempts=_env_int(environ, "MAX_ATTEMPTS", defaults.max_attempts),
            max_pool_connections=_env_int(environ, "MAX_POOL_CONNECTIONS", defaults.max_pool_connections),
            total_segments=_env_int(environ, "TOTAL_SEGMENTS", defaults.total_segments),
        )
        if settings.total_segments <= 0:
            raise ValueError(f"{ENV_PREFIX}TOTAL_SEGMENTS must be > 0")
        return settings

    def boto3_config(self) -> Config:
        # a parallel scan holds one connection per segment
        return Config(
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
            retries={"max_attempts": self.max_attempts, "mode": "standard"},
            max_pool_connections=max(self.max_pool_connections, self.total_segments),
        )


def create_client(settings: Settings | None = None, *, session: Any | None = None) -> Any:
    settings = settings or Settings.from_env()
    sess = session or boto3.session.Session(region_name=settings.region)
    log.debug("Creating dynamodb client (region=%s, endpoint=%s)", settings.region, settings.endpoint_url)
    return cast(Any, sess).client(
        "dynamodb",
        region_name=settings.region,
        endpoint_url=settings.endpoint_url,
        config=settings.boto3_config(),
    )


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(f"{ENV_PREFIX}{name}")
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as err:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number: {raw!r}") from err


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(f"{ENV_PREFIX}{name}")
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as err:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer: {raw!r}") from err
