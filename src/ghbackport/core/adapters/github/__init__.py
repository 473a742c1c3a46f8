"""GitHub adapters backed by the gh CLI."""

from ghbackport.core.adapters.github.api_client import GhApiClient

__all__ = ["GhApiClient"]
