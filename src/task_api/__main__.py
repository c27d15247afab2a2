"""Entry point for running the API server as a module: ``python -m task_api``."""

import uvicorn

from .settings import get_settings


def main() -> None:
    """Run the application server."""
    settings = get_settings()
    uvicorn.run(
        "task_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
