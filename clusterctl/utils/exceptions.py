"""Exception type tuples for narrow exception catching.

Use these in handlers instead of a broad ``except Exception:`` so that
programming errors (NameError, AttributeError, ...) bubble up immediately
while expected operational errors are handled.

Usage:
    from clusterctl.utils.exceptions import NETWORK_ERRORS

    try:
        reader, writer = await asyncio.open_connection(host, 22)
    except NETWORK_ERRORS as e:
        logger.debug(f"TCP probe failed: {e}")
"""

from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET

import yaml

# Connection refused/reset, socket and async timeouts
NETWORK_ERRORS: tuple[type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    OSError,
    asyncio.TimeoutError,
)

# Config and report parsing
PARSE_ERRORS: tuple[type[BaseException], ...] = (
    yaml.YAMLError,
    ET.ParseError,
    KeyError,
    TypeError,
    ValueError,
)

# File reads and path operations
FS_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    PermissionError,
    FileNotFoundError,
)

# External command execution
PROCESS_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    PermissionError,
    FileNotFoundError,
)


def log_and_continue(
    e: BaseException,
    context: str,
    logger_instance: logging.Logger,
    level: int = logging.WARNING,
) -> None:
    """Log an expected exception with context so the caller can continue.

    Args:
        e: The exception that was caught
        context: Short description of the operation (e.g., "probe:worker-1")
        logger_instance: Logger to use
        level: Logging level (default: WARNING)
    """
    logger_instance.log(level, f"[{context}] Caught {type(e).__name__}: {e}")
