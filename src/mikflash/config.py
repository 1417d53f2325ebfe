from __future__ import annotations

import os
from typing import Mapping, Optional

# Environment variables
UPLOADER_ENV = "MIK32_UPLOADER_PATH"
OPENOCD_ENV = "MIK32_OPENOCD_PATH"

# Project layout (relative to the project root)
PROJECT_MARKER = "Cargo.toml"
FLASH_DIR = "flash"
ARTIFACT_NAME = "app.hex"
UPLOADER_DIR_NAME = "mik32-uploader"
UPLOADER_SCRIPT = "mik32_upload.py"
OPENOCD_SCRIPTS_DIR = "openocd-scripts"
OPENOCD_PROJECT_EXEC = os.path.join("openocd", "bin", "openocd")

# External tools
OBJCOPY_TOOL = "cargo-objcopy"
PYTHON = "python3"
OPENOCD = "openocd"
HEX_FORMAT = "ihex"


class EnvironmentProvider:
    """
    Read-only view of the process environment.

    Pass a mapping to read from it instead of os.environ. Empty values are
    treated as unset.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = os.environ if environ is None else environ

    def get(self, name: str) -> Optional[str]:
        value = self._environ.get(name)
        return value or None

    def is_set(self, name: str) -> bool:
        return self.get(name) is not None
