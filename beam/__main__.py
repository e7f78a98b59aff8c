"""Run the server: ``python -m beam``."""

import uvicorn

from beam.core.config import get_settings
from beam.core.logging import setup_logging


def main() -> None:
    settings = get_settings()
    setup_logging(settings.logging.level)
    uvicorn.run(
        "beam.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.server.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
