from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from creditadmin.core.exceptions import ConfigurationError


class BalanceConfig(BaseModel):
    """The `balance:` section of the YAML config file (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    enabled: bool = False
    auto_refill_enabled: bool = False
    refill_interval_value: int = 30
    refill_interval_unit: str = "days"
    refill_amount: int = 0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    debug: bool = Field(default=False, description="DEBUG")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="creditadmin", alias="MONGODB_DB_NAME")

    # Balance feature gate; the YAML balance section wins when present
    balance_enabled: bool = Field(default=False, alias="BALANCE_ENABLED")
    config_path: str = Field(default="creditadmin.yaml", alias="CONFIG_PATH")


def _load_yaml_section(path: Path, section: str) -> dict[str, Any]:
    try:
        with path.open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    value = data.get(section) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{section}' in {path} must be a mapping")
    return value


def get_balance_config(settings: Settings) -> BalanceConfig:
    """Balance settings: env defaults, overridden by the YAML file if it exists."""
    values: dict[str, Any] = {"enabled": settings.balance_enabled}
    path = Path(settings.config_path)
    if path.is_file():
        values.update(_load_yaml_section(path, "balance"))
    return BalanceConfig.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings()
