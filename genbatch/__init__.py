"""genbatch: batch image generation with webhook and poll reconciliation."""

__version__ = "1.0.0"
