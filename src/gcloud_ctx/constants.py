"""Global constants and store location resolution."""

from __future__ import annotations

import os
import pathlib
import re
import sys
from typing import Mapping, Optional

# Environment variable gcloud itself honours for its configuration root
CONFIG_ENV_VAR = "CLOUDSDK_CONFIG"

CONFIGURATIONS_DIR = "configurations"
CONFIGURATION_PREFIX = "config_"
ACTIVE_MARKER_FILE = "active_config"
HISTORY_FILE = "gctx_history.log"

NAME_PATTERN = re.compile(r"^[a-z][-a-z0-9_]*$")

DEFAULT_HISTORY_TAIL = 20


def default_location(environ: Optional[Mapping[str, str]] = None) -> pathlib.Path:
    """Return the gcloud configuration root for this machine.

    Search order:
      1. ``$CLOUDSDK_CONFIG``
      2. ``%APPDATA%\\gcloud`` on Windows
      3. ``~/.config/gcloud``
    """
    env = environ if environ is not None else os.environ

    override = env.get(CONFIG_ENV_VAR)
    if override:
        return pathlib.Path(override).expanduser()

    if sys.platform == "win32" and env.get("APPDATA"):
        return pathlib.Path(env["APPDATA"]) / "gcloud"

    return pathlib.Path.home() / ".config" / "gcloud"
