"""Helper function to create Redis clients with SSL support for hosted providers."""

from __future__ import annotations

import ssl
from typing import Any

from redis import Redis

# Hosted Redis providers that only accept TLS but hand out redis:// URLs
TLS_ONLY_HOST_SUFFIXES = (".upstash.io",)


def _requires_tls(url: str) -> bool:
    return any(suffix in url for suffix in TLS_ONLY_HOST_SUFFIXES)


def create_redis_client(url: str, **kwargs: Any) -> Redis:
    """Create a Redis client, upgrading to TLS where the provider requires it.

    Args:
        url: Redis connection URL (redis:// or rediss://)
        **kwargs: Additional arguments (decode_responses, socket_connect_timeout, etc.)
    """
    if _requires_tls(url) and url.startswith("redis://"):
        url = url.replace("redis://", "rediss://", 1)

    client = Redis.from_url(url, **kwargs)

    # managed providers use certificates the container trust store lacks
    if url.startswith("rediss://"):
        pool_kwargs = getattr(client.connection_pool, "connection_kwargs", None)
        if pool_kwargs is not None:
            pool_kwargs["ssl_cert_reqs"] = ssl.CERT_NONE

    return client
