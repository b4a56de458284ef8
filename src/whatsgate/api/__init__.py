"""HTTP control API for whatsgate."""

from whatsgate.api.server import create_app

__all__ = ["create_app"]
