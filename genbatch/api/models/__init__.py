"""API models for genbatch."""

from genbatch.api.models.requests import StartBatchRequest

__all__ = ["StartBatchRequest"]
