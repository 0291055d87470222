from .base import RemoteBackend
from .database import DatabaseBackend
from .http import HttpBackend


def make_backend(config, app=None, token_store=None):
    """Pick the remote backend from configuration"""
    base_url = config.get("BACKEND_URL")
    if base_url:
        return HttpBackend(
            base_url,
            timeout=config.get("BACKEND_TIMEOUT", 15),
            token_store=token_store,
        )
    return DatabaseBackend(app)


__all__ = ["RemoteBackend", "DatabaseBackend", "HttpBackend", "make_backend"]
