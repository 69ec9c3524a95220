#!/usr/bin/env python3
"""
Network namespace switching

Moves the calling thread into a named network namespace created with
`ip netns add`. Only the calling thread (and threads it starts afterwards)
is affected, so this must run on the listener thread before its socket is
created.
"""

import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

NETNS_RUN_DIR = Path('/run/netns')


class NamespaceError(OSError):
    """Named network namespace is missing or could not be entered"""


def namespace_path(name: str) -> Path:
    return NETNS_RUN_DIR / name


def namespace_exists(name: str) -> bool:
    return namespace_path(name).exists()


def enter_namespace(name: str):
    """
    Switch the current thread into network namespace `name`.

    Raises:
        NamespaceError: if the namespace does not exist or setns() fails
    """
    path = namespace_path(name)
    try:
        fd = os.open(path, os.O_RDONLY)
    except FileNotFoundError:
        raise NamespaceError(
            f"The network namespace {name} doesn't exist ({path} not found)"
        ) from None
    except OSError as e:
        raise NamespaceError(f"Cannot open network namespace {name}: {e}") from e

    try:
        os.setns(fd, os.CLONE_NEWNET)
    except OSError as e:
        raise NamespaceError(
            f"Cannot enter network namespace {name}: {e} (CAP_SYS_ADMIN required)"
        ) from e
    finally:
        os.close(fd)

    logger.info(f"Entered network namespace {name}")
