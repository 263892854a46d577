from rental_repairs.config.settings import (
    LoggingSettings,
    SchedulingSettings,
    Settings,
    get_settings,
)

__all__ = ["LoggingSettings", "SchedulingSettings", "Settings", "get_settings"]
