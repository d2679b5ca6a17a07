# gts/main.py
import logging
import sys

import uvicorn

from .api import create_app
from .config import Settings
from .core import build_services


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    errors = settings.validate()
    if errors:
        for error in errors:
            logging.getLogger("gts").error("Invalid setting: %s", error)
        sys.exit(2)

    services = build_services(settings)
    if not services.remote.configured:
        logging.getLogger("gts").info("No remote backend configured - data stored locally only")
    if settings.auto_sync:
        services.sync.start_auto_sync()
    try:
        uvicorn.run(create_app(services), host=settings.host, port=settings.port,
                    log_level=settings.log_level.lower())
    finally:
        services.sync.stop_auto_sync()


if __name__ == "__main__":
    main()
