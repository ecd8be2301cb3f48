from __future__ import annotations

import logging
import sys

import uvicorn

from bookmark_ai import config
from bookmark_ai.api import create_app_from_settings


def main() -> None:
    try:
        settings = config.Settings.from_env()
    except ValueError as exc:
        logging.basicConfig(level=logging.INFO)
        logging.error("Missing configuration: %s", exc)
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )

    try:
        app = create_app_from_settings(settings)
        uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    except Exception as exc:  # noqa: BLE001
        logging.exception("Server failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
