"""Routes for genbatch API."""

from genbatch.api.routes import batches, system, webhooks

__all__ = ["batches", "system", "webhooks"]
