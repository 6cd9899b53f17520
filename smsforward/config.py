"""Configuration loader for the SMS forwarder.

Loads behavior config from a JSON (or YAML) file and lets secrets in the
environment / .env override the channel keys stored in that file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from smsforward.errors import ConfigError
from smsforward.models import ChannelKind

DEFAULT_BARK_API_URL = "https://api.day.app"
DEFAULT_HISMSG_API_URL = "https://hismsg.com"


class DeviceConfig(BaseModel):
    mmcli_path: str = "mmcli"
    command_timeout: float = Field(default=10.0, gt=0)


class HttpConfig(BaseModel):
    timeout: float = Field(default=10.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)


class LoggingConfig(BaseModel):
    dir: str = "logs"
    file_prefix: str = "sms-forward"
    retention_days: int = Field(default=3, ge=1)
    utc_offset_hours: int = Field(default=8, ge=-12, le=14)
    level: str = "INFO"


class DedupConfig(BaseModel):
    enabled: bool = False
    db_path: str = "data/sms-forward.db"
    max_age_days: int = Field(default=30, ge=1)


class ChannelConfig(BaseModel):
    """One notification channel's enablement and credentials."""
    kind: ChannelKind
    enabled: bool
    key: str
    api_url: str
    device_id: str = ""


class AppConfig(BaseModel):
    """Full application configuration.

    The flat keys keep the historical config.json layout; the nested
    sections are optional tuning knobs.
    """
    modem_id: str = "0"

    bark_key: str = ""
    bark_api_url: str = DEFAULT_BARK_API_URL
    enable_bark: bool = True

    hismsg_key: str = ""
    hismsg_api_url: str = DEFAULT_HISMSG_API_URL
    hismsg_device_id: str = ""
    enable_hismsg: bool = False

    sleep_duration: int = Field(default=3, gt=0)  # seconds between poll cycles

    device: DeviceConfig = Field(default_factory=DeviceConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    dedup: DedupConfig = Field(default_factory=DedupConfig)

    @field_validator("modem_id")
    @classmethod
    def _modem_id_is_numeric(cls, v: str) -> str:
        v = v.strip()
        if not (v.isascii() and v.isdigit()):
            raise ValueError(f"modem_id must be numeric, got {v!r}")
        return v

    @model_validator(mode="after")
    def _enabled_channels_have_credentials(self) -> "AppConfig":
        if self.enable_bark:
            if not self.bark_key:
                raise ValueError("bark_key is required when enable_bark is true")
            if not self.bark_api_url:
                raise ValueError("bark_api_url is required when enable_bark is true")
        if self.enable_hismsg:
            if not self.hismsg_key:
                raise ValueError("hismsg_key is required when enable_hismsg is true")
            if not self.hismsg_api_url:
                raise ValueError("hismsg_api_url is required when enable_hismsg is true")
        return self

    def channels(self) -> list[ChannelConfig]:
        """Channel configs in dispatch order (Bark, then Hismsg)."""
        return [
            ChannelConfig(
                kind=ChannelKind.BARK,
                enabled=self.enable_bark,
                key=self.bark_key,
                api_url=self.bark_api_url,
            ),
            ChannelConfig(
                kind=ChannelKind.HISMSG,
                enabled=self.enable_hismsg,
                key=self.hismsg_key,
                api_url=self.hismsg_api_url,
                device_id=self.hismsg_device_id,
            ),
        ]


class Secrets(BaseSettings):
    """Environment-variable secrets (SMS_FORWARD_BARK_KEY, SMS_FORWARD_HISMSG_KEY)."""
    model_config = SettingsConfigDict(env_prefix="SMS_FORWARD_", case_sensitive=False)

    bark_key: str = ""
    hismsg_key: str = ""


def _load_file(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be an object")
    return data


def _apply_secrets(data: dict[str, Any], secrets: Optional[Secrets]) -> dict[str, Any]:
    if secrets is None:
        return data
    merged = dict(data)
    if secrets.bark_key:
        merged["bark_key"] = secrets.bark_key
    if secrets.hismsg_key:
        merged["hismsg_key"] = secrets.hismsg_key
    return merged


def load_config(path: Union[str, Path], secrets: Optional[Secrets] = None) -> AppConfig:
    """Load and validate a config file.

    Raises:
        ConfigError: missing file, unreadable or malformed content, or
            failed validation.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file does not exist: {path}")
    try:
        data = _load_file(path)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    try:
        return AppConfig(**_apply_secrets(data, secrets))
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e


def legacy_config(modem_id: str, bark_key: str) -> AppConfig:
    """Config for the two-argument invocation: Bark only, everything else default."""
    try:
        return AppConfig(modem_id=modem_id, bark_key=bark_key, enable_bark=True)
    except ValidationError as e:
        raise ConfigError(f"Invalid arguments: {e}") from e


def save_config(config: AppConfig, path: Union[str, Path]) -> None:
    """Write config as indented JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(config.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )


def load_secrets() -> Secrets:
    """Load secrets from environment variables."""
    return Secrets()


def mask_key(key: str) -> str:
    """Hide all but the first and last four characters of a key."""
    if not key:
        return ""
    if len(key) <= 8:
        return "****"
    return f"{key[:4]}****{key[-4:]}"
