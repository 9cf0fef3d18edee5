"""
normstate configuration — all environment variables in one place.

Read from environment at import time. Settings only change how much the
diagnostic sink reports; they never change what the reducer returns.
"""

from __future__ import annotations

import os

VERBOSITY_LEVELS: tuple[str, ...] = ("silent", "warning", "info")


class Settings:
    """Kernel settings from environment variables."""

    # Application
    ENVIRONMENT: str = os.environ.get("NORMSTATE_ENVIRONMENT", "development")

    # Name of the logger the default diagnostic sink writes to
    LOGGER_NAME: str = os.environ.get("NORMSTATE_LOGGER", "normstate.kernel.diagnostics")

    @property
    def DIAGNOSTICS(self) -> str:
        level = os.environ.get("NORMSTATE_DIAGNOSTICS", "").strip().lower()
        if level in VERBOSITY_LEVELS:
            return level
        return "silent" if self.ENVIRONMENT == "production" else "warning"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


# Singleton instance
settings = Settings()
