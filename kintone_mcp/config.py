"""Gateway settings loaded from a settings file and/or the environment."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from kintone_mcp.access.policy import AccessPolicy, AllowDenyPolicy, PermissionSetPolicy, Permissions

__all__ = ["AppSettings", "ConfigurationError", "GatewayConfig", "build_policy", "load_config"]

LOGGER = logging.getLogger(__name__)

ENVIRONMENT_KEYS: dict[str, str] = {
    "KINTONE_BASE_URL": "url",
    "KINTONE_USERNAME": "username",
    "KINTONE_PASSWORD": "password",
    "KINTONE_API_TOKEN": "token",
    "KINTONE_ALLOW_APPS": "allowApps",
    "KINTONE_DENY_APPS": "denyApps",
    "KINTONE_DOWNLOAD_DIR": "downloadDir",
    "KINTONE_TIMEOUT": "timeout",
}


class ConfigurationError(Exception):
    """Raised when the settings cannot be used to start the gateway."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        lines = ["Invalid kintone MCP server configuration:"]
        lines.extend(f"  - {problem}" for problem in self.problems)
        super().__init__("\n".join(lines))


def _split_ids(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() if isinstance(item, int) else item for item in value]
    return value


class AppSettings(BaseModel):
    """An app listed in the settings file with its permissions."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    description: str = ""
    permissions: Permissions = Field(default_factory=Permissions)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class GatewayConfig(BaseModel):
    """Validated, read-only gateway settings."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str
    username: str | None = None
    password: str | None = None
    token: str | None = None
    apps: tuple[AppSettings, ...] | None = None
    allow_apps: tuple[str, ...] = Field(default=(), alias="allowApps")
    deny_apps: tuple[str, ...] = Field(default=(), alias="denyApps")
    download_dir: Path = Field(default_factory=Path.cwd, alias="downloadDir")
    timeout: float = Field(default=30.0, gt=0)

    @field_validator("url")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        try:
            parsed = httpx.URL(value.strip())
        except (httpx.InvalidURL, TypeError) as exc:
            raise ValueError(f"'{value}' is not a valid URL: {exc}") from exc
        if parsed.scheme not in {"http", "https"} or not parsed.host:
            raise ValueError(
                f"'{value}' must be an absolute http(s) URL such as https://example.cybozu.com"
            )
        return str(parsed).rstrip("/")

    @field_validator("allow_apps", "deny_apps", mode="before")
    @classmethod
    def _comma_separated(cls, value: Any) -> Any:
        return _split_ids(value)

    @field_validator("username", "password", "token", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> GatewayConfig:
        problems: list[str] = []
        has_password_pair = bool(self.username and self.password)
        has_partial_pair = bool(self.username) != bool(self.password)
        if not has_password_pair and not self.token:
            problems.append("Either username/password or token must be provided")
            if has_partial_pair:
                problems.append("username and password must be provided together")
        elif has_partial_pair:
            LOGGER.warning("Ignoring incomplete username/password pair; using the API token")

        if self.apps is not None:
            if not self.apps:
                problems.append("At least one app must be provided in 'apps'")
            ids = [app.id for app in self.apps]
            duplicates = sorted({app_id for app_id in ids if ids.count(app_id) > 1})
            if duplicates:
                problems.append(f"Duplicate app IDs in 'apps': {', '.join(duplicates)}")
            if self.allow_apps or self.deny_apps:
                problems.append(
                    "'apps' cannot be combined with 'allowApps'/'denyApps'; "
                    "configure per-app permissions or global allow/deny lists, not both"
                )
        if problems:
            raise ValueError("\n".join(problems))
        return self

    def client_options(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "password": self.password,
            "token": self.token,
            "timeout": self.timeout,
        }


def build_policy(config: GatewayConfig) -> AccessPolicy:
    """Select the access policy implied by the shape of ``config``."""

    if config.apps is not None:
        return PermissionSetPolicy(
            {app.id: app.permissions for app in config.apps},
            {app.id: app.description for app in config.apps},
        )
    return AllowDenyPolicy(allow=config.allow_apps, deny=config.deny_apps)


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> GatewayConfig:
    """Load settings from ``path`` (YAML or JSON) overlaid with the environment."""

    data: dict[str, Any] = {}
    if path is not None:
        data.update(_read_settings_file(Path(path)))

    env = os.environ if environ is None else environ
    for variable, key in ENVIRONMENT_KEYS.items():
        value = env.get(variable)
        if value:
            data[key] = value

    if "url" not in data:
        raise ConfigurationError(
            ["The kintone URL must be provided ('url' in the settings file or KINTONE_BASE_URL)"]
        )
    try:
        return GatewayConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc)) from exc


def _read_settings_file(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            document = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigurationError([f"Failed to read config file {path}: {exc}"]) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError([f"Failed to parse config file {path}: {exc}"]) from exc
    if document is None:
        return {}
    if not isinstance(document, Mapping):
        raise ConfigurationError([f"Config file {path} must contain a mapping"])
    return document


def _describe(exc: ValidationError) -> list[str]:
    problems: list[str] = []
    for error in exc.errors(include_url=False):
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = str(error.get("msg", "invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        for line in message.splitlines():
            problems.append(f"{location}: {line}" if location else line)
    return problems
