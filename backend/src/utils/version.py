"""
Application version lookup.

The version reported by the API and the health check comes from, in order:
1. FAMHUB_VERSION environment variable (explicit override for builds)
2. Installed distribution metadata for the familyhub package
3. "0.0.0-dev" when running from an uninstalled checkout
"""

import os
from importlib import metadata


DISTRIBUTION_NAME = "familyhub"
DEV_VERSION = "0.0.0-dev"


def get_version() -> str:
    """Return the running application version string."""
    override = os.environ.get("FAMHUB_VERSION")
    if override:
        return override
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return DEV_VERSION
