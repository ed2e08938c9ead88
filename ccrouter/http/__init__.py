"""Upstream HTTP transport."""

from .client import UpstreamClient, create_http_client


__all__ = ["UpstreamClient", "create_http_client"]
