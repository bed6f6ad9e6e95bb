"""
Server configuration for OpenRFC.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from ..storage import MEMORY_URL


@dataclass
class ServerConfig:
    """Configuration for the OpenRFC server."""

    host: str = "0.0.0.0"
    port: int = 8000

    # None or "memory://" keeps everything in process memory.
    database_url: Optional[str] = None

    cors_origins: list = field(default_factory=lambda: ["*"])

    debug: bool = False

    log_level: str = "info"

    @property
    def uses_memory(self) -> bool:
        return self.database_url is None or self.database_url == MEMORY_URL

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Create configuration from environment variables."""
        return cls(
            host=os.environ.get("OPENRFC_HOST", "0.0.0.0"),
            port=int(os.environ.get("OPENRFC_PORT", "8000")),
            database_url=os.environ.get("OPENRFC_DATABASE_URL"),
            debug=os.environ.get("OPENRFC_DEBUG", "").lower() == "true",
            log_level=os.environ.get("OPENRFC_LOG_LEVEL", "info"),
        )
