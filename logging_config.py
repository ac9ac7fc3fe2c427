"""
Logging configuration for cleaner output.

Usage:
    import logging_config
    logging_config.setup()
"""

import logging
import sys

NOISY_LOGGERS = ("web3", "urllib3", "requests", "asyncio")


def setup(level=logging.INFO):
    """
    Configure console logging.

    - Short timestamp format (HH:MM:SS)
    - web3/urllib3 request chatter suppressed below WARNING
    """
    root = logging.getLogger()
    root.setLevel(level)

    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%H:%M:%S"
        )
    )
    root.addHandler(console)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("__main__").setLevel(level)
    logging.getLogger("multihop_arbitrage").setLevel(level)


def setup_minimal():
    """Only warnings and errors."""
    setup(level=logging.WARNING)


def setup_debug():
    """
    Verbose logging for debugging.
    Shows RPC requests as well.
    """
    setup(level=logging.DEBUG)
    logging.getLogger("web3").setLevel(logging.DEBUG)
