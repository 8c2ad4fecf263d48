import logging
import sys

PACKAGE_LOGGER = "velocity_cache"
_LOCK_LOGGER = "filelock"


def configure_logging(*, verbose: bool = False) -> logging.Logger:
    """Send cache log records to stderr and return the package logger.

    Everything outside ``velocity_cache`` is held at WARNING. The package logs
    sweeps and degraded operations at INFO and above; ``verbose`` adds its
    per-key hit, miss and write lines plus filelock's acquire/release trace.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(name)s - %(message)s", datefmt="%H:%M:%S"))
    root.addHandler(handler)

    package = logging.getLogger(PACKAGE_LOGGER)
    package.setLevel(logging.DEBUG if verbose else logging.INFO)
    logging.getLogger(_LOCK_LOGGER).setLevel(logging.DEBUG if verbose else logging.NOTSET)
    return package
