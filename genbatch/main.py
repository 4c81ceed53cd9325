"""Main entry point for genbatch.

Initializes the FastAPI app and makes it runnable standalone.

Usage:
    Development: uvicorn genbatch.main:app --reload --port 4000
    Production: uvicorn genbatch.main:app --host 0.0.0.0 --port 4000
"""

from genbatch.api import create_app
from genbatch.config import config

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "genbatch.main:app",
        host="0.0.0.0",
        port=config.port(),
        log_level="info",
    )
