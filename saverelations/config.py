# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import os

from enum import Enum
from functools import cached_property

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from saverelations.dependencies import get_service, has_service, register_service
from saverelations.logger import LogFormat, LogLevel, LogOutput


class RelationKeyName(str, Enum):
    """Key under which relation data is looked up by `load_relations_for_save`."""

    FORM_NAME = "form_name"
    RELATION_NAME = "relation_name"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_prefix="SAVE_RELATIONS_",
        env_file=".env",
        extra="ignore",
    )

    # Logging
    log_level: LogLevel = LogLevel.INFO
    log_output: LogOutput = LogOutput.CONSOLE
    log_format: LogFormat | str = LogFormat.TEXT_LIGHT
    log_file: str = ""

    # Relations
    relation_key_name: RelationKeyName = RelationKeyName.FORM_NAME
    only_safe_attributes: bool = False

    @classmethod
    def from_env_file(cls, env_file: str):
        """Create Settings with custom env file path."""
        return cls(_env_file=env_file)

    @cached_property
    def log_path(self) -> str:
        if not self.log_file:
            return os.path.join(os.getcwd(), "logs", "saverelations.log")

        if os.path.isabs(self.log_file):
            return self.log_file

        return os.path.join(os.getcwd(), self.log_file)

    @field_validator("log_format")
    def validate_log_format(cls, v):
        if isinstance(v, str) and v in [item.value for item in LogFormat]:
            return LogFormat(v)
        return v


def init_settings(env_file: str | None = None) -> Settings:
    """Create and register the settings, once."""
    if has_service(Settings):
        return get_service(Settings)

    settings = Settings.from_env_file(env_file) if env_file else Settings()
    register_service(settings, Settings)

    return settings


def get_settings() -> Settings:
    return init_settings()


__all__ = [
    "RelationKeyName",
    "Settings",
    "init_settings",
    "get_settings",
]
