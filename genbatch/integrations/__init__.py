"""External service integrations for genbatch."""
