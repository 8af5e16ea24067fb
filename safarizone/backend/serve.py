"""Run the Safari Zone API with uvicorn using environment settings."""

from __future__ import annotations

import logging

from safarizone.backend.config import BackendSettings, load_settings


def configure_logging(settings: BackendSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    import uvicorn

    settings = load_settings()
    configure_logging(settings)
    uvicorn.run("safarizone.backend.api:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
