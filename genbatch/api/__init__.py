"""HTTP API for genbatch."""

from genbatch.api.app import create_app

__all__ = ["create_app"]
