"""Infrastructure configuration module.

Runtime settings via Pydantic Settings and the JSON database descriptor.
"""

from dbjob.infrastructure.config.database_config import (
    DatabaseConfig,
    load_database_config,
    parse_database_config,
)
from dbjob.infrastructure.config.settings import (
    Settings,
    get_settings,
    reset_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
    "DatabaseConfig",
    "load_database_config",
    "parse_database_config",
]
