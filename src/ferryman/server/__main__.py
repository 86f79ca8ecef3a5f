"""Entry point for running the server as a module."""

import logging
import os

import uvicorn


def main() -> None:
    """Run the FastAPI server."""
    logging.basicConfig(
        level=os.getenv("FERRYMAN_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "ferryman.server.app:create_app",
        factory=True,
        host=os.getenv("FERRYMAN_HOST", "127.0.0.1"),
        port=int(os.getenv("FERRYMAN_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
