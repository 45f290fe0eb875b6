"""Shared logging helpers for personsync."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with a terse CLI format.

    ``force=True`` replaces handlers installed earlier, which tests and
    alternative entry points need.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(threadName)s %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
