"""Settings resolution with workspace profile support."""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

CONFIG_PATH = Path.home() / ".config" / "linctl" / "config.toml"

DEFAULT_GRAPHQL_URL = "https://api.linear.app/graphql"


class LinctlSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LINCTL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_workspace: str | None = None  # profile name

    # Linear API
    linear_api_key: SecretStr | None = None
    linear_graphql_url: str = DEFAULT_GRAPHQL_URL

    # Webhook server
    server_name: str = "linctl"
    webhook_secret: SecretStr | None = None  # inbound verification; absent rejects every delivery
    forward_url: str | None = None
    forward_signing_secret: SecretStr | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # profile values arrive as init kwargs and sit below env and .env
        return env_settings, dotenv_settings, init_settings, file_secret_settings


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/linctl/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def get_settings(workspace: str | None = None, require_api_key: bool = True) -> LinctlSettings:
    """Resolve the active workspace profile and return a fully populated LinctlSettings.

    Precedence (highest to lowest):
    1. workspace argument (--workspace CLI flag)
    2. LINCTL_DEFAULT_WORKSPACE env var
    3. default_workspace key in ~/.config/linctl/config.toml
    4. First profile defined in ~/.config/linctl/config.toml
    """
    toml_config = _load_toml()

    active = (
        workspace
        or os.environ.get("LINCTL_DEFAULT_WORKSPACE")
        or toml_config.get("default_workspace")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = dict(toml_config[active])
        elif active not in toml_config:
            profiles = _list_profiles(toml_config)
            typer.echo(f"Workspace '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")
            raise typer.Exit(1)

    # env vars + .env override profile values (see settings_customise_sources)
    settings = LinctlSettings(**profile_defaults)

    if require_api_key and not settings.linear_api_key:
        typer.echo(
            "Missing Linear credentials. Set LINCTL_LINEAR_API_KEY or "
            f"linear_api_key in the [{active or 'workspace'}] section of {CONFIG_PATH}"
        )
        raise typer.Exit(1)

    return settings
