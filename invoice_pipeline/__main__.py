"""Module entrypoint for running the invoice API server."""

from __future__ import annotations

import logging
import os
import sys

from .config import ConfigError, Settings
from .errors import DependencyError
from .server import run


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main() -> None:
    host = os.getenv("INVOICE_HOST", "0.0.0.0")
    port = int(os.getenv("INVOICE_PORT", "8080"))
    try:
        settings = Settings.from_env()
        configure_logging(settings.log_level)
        run(settings, host, port)
    except (ConfigError, DependencyError) as exc:
        print(str(exc), file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
