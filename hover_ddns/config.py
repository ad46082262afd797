import os
from pathlib import Path
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .errors import ConfigurationError
from .types import DomainTarget

_CONFIG_PATH = os.getenv("HOVER_DDNS_CONFIG", "hover-ddns.yaml")
_ENV_PATH = os.getenv("HOVER_DDNS_ENV", ".env")


class DomainConfig(BaseModel):
    domain_name: str
    hosts: Annotated[list[str], Field(min_length=1)]

    @field_validator("hosts")
    @classmethod
    def _unique_hosts(cls, hosts: list[str]) -> list[str]:
        # keep configuration order, drop repeats
        return list(dict.fromkeys(host.strip() for host in hosts))

    def to_target(self) -> DomainTarget:
        return DomainTarget(self.domain_name, tuple(self.hosts))


class FamilyConfig(BaseModel):
    enabled: bool = True
    manual_address: Optional[str] = None


class TextEndpointProviderConfig(BaseModel):
    type: Literal["ipify", "icanhazip", "amazon"] = "ipify"
    retries: Annotated[int, Field(ge=1, le=10)] = 3
    retry_delay: Annotated[float, Field(ge=0)] = 1.0


class OpenDNSProviderConfig(BaseModel):
    type: Literal["opendns"] = "opendns"


class LocalInterfaceProviderConfig(BaseModel):
    type: Literal["local_interface"] = "local_interface"
    interface_name: str


class ManualProviderConfig(BaseModel):
    type: Literal["manual"] = "manual"
    ipv4: Optional[str] = None
    ipv6: Optional[str] = None


PublicIPProviderConfig = Annotated[
    TextEndpointProviderConfig
    | OpenDNSProviderConfig
    | LocalInterfaceProviderConfig
    | ManualProviderConfig,
    Field(discriminator="type"),
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HOVER_DDNS_",
        env_nested_delimiter="__",
        yaml_file=_CONFIG_PATH,
        env_file=_ENV_PATH,
        extra="ignore",
    )

    username: str
    password: str
    domains: Annotated[list[DomainConfig], Field(min_length=1)]

    force_update: bool = False
    dry_run: bool = False

    ipv4: FamilyConfig = Field(default_factory=FamilyConfig)
    ipv6: FamilyConfig = Field(default_factory=lambda: FamilyConfig(enabled=False))

    dns_server: str = "ns1.hover.com:53"
    public_ip_provider: PublicIPProviderConfig = Field(
        default_factory=TextEndpointProviderConfig
    )

    cron_expression: Optional[str] = None

    http_timeout: Annotated[float, Field(gt=0)] = 10.0
    dns_timeout: Annotated[float, Field(gt=0)] = 5.0

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    log_file: Optional[Path] = None

    @field_validator("cron_expression")
    @classmethod
    def _five_field_cron(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value.split()) != 5:
            raise ValueError(
                "Cron expression must have exactly 5 fields (minute hour day month day_of_week)"
            )
        return value

    @property
    def targets(self) -> list[DomainTarget]:
        return [domain.to_target() for domain in self.domains]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Source order: init args > OS env > .env > yaml config > secrets
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_settings(config_path: str | Path | None = None, **overrides) -> Settings:
    """
    Load settings from ``config_path`` (or the default location) plus the
    environment.

    Raises:
        ConfigurationError: the file is missing or the values do not validate
    """
    settings_cls = Settings
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.is_file():
            raise ConfigurationError(f"Config file {config_path} does not exist")

        class _FileSettings(Settings):
            model_config = SettingsConfigDict(yaml_file=config_path)

        settings_cls = _FileSettings

    try:
        return settings_cls(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
