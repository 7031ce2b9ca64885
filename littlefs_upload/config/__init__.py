"""Configuration package for littlefs-upload."""

from .models import DEFAULT_PARTITION_FLOOR, UserConfigData
from .user_config import UserConfig, create_user_config


__all__ = [
    "DEFAULT_PARTITION_FLOOR",
    "UserConfig",
    "UserConfigData",
    "create_user_config",
]
