# Core module exports
from vetted.core.config import Settings, settings, get_settings
from vetted.core.logging import (
    configure_logging,
    get_logger,
    registry_logger,
    frontend_logger,
)
