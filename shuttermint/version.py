"""Version information for the running package."""

from __future__ import annotations

import platform
import sys
from importlib import metadata

_DISTRIBUTION = "shuttermint"


def _package_version() -> str:
    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "(devel)"


def version() -> str:
    """Return the version string together with interpreter and platform details."""
    return (
        f"{_package_version()} "
        f"(python {platform.python_version()}, {sys.platform}-{platform.machine()})"
    )