"""
Configuration management for the cosmos metrics agent.

This module uses Pydantic Settings for environment-based configuration with
support for .env files. Configuration is organized into logical sections:
- Docker settings
- Collector (destination and cycle) settings
- Logging settings

The destination URL is the only required value; it is read once at startup
and its absence is fatal.
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cosmos_agent.common.exceptions import ConfigurationError


class DockerSettings(BaseSettings):
    """
    Docker daemon connection settings.

    Parameters
    ----------
    docker_host : str
        Docker daemon URL (default: unix:///var/run/docker.sock)
    request_timeout_seconds : float, optional
        Timeout for a single runtime request (default: none)

    Environment Variables
    ---------------------
    DOCKER_HOST : str
        Override Docker daemon URL
    REQUEST_TIMEOUT_SECONDS : float
        Per-request timeout

    Examples
    --------
    >>> config = DockerSettings()
    >>> config.docker_host
    'unix:///var/run/docker.sock'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    docker_host: str = Field(
        default="unix:///var/run/docker.sock",
        description="Docker daemon URL",
    )
    request_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Per-request timeout (s)",
    )

    @field_validator("docker_host")
    @classmethod
    def validate_docker_host(cls, v: str) -> str:
        """Validate Docker host URL format."""
        valid_schemes = ("unix://", "tcp://", "http://", "https://")
        if not any(v.startswith(scheme) for scheme in valid_schemes):
            raise ValueError(f"Docker host must start with one of: {valid_schemes}. Got: {v}")
        return v


class CollectorSettings(BaseSettings):
    """
    Report destination and cycle settings.

    Parameters
    ----------
    cosmos_host : str
        URL the report is POSTed to (required)
    report_interval_seconds : float
        Pause between the end of one cycle and the start of the next
    sampling_window_seconds : float
        Extra delay between the baseline and advanced samples (0 = request latency)
    max_concurrency : int
        Containers sampled concurrently (1 = strictly sequential)
    delivery_timeout_seconds : float
        Timeout for one report delivery
    error_policy : str
        "skip" logs a failed cycle and continues, "abort" stops the agent

    Environment Variables
    ---------------------
    COSMOS_HOST or HOST : str
        Destination URL
    REPORT_INTERVAL_SECONDS : float
        Cycle interval
    ERROR_POLICY : str
        Failure policy

    Examples
    --------
    >>> config = CollectorSettings(cosmos_host="http://collector:8080/containers")
    >>> config.report_interval_seconds
    5.0
    >>> config.error_policy
    'skip'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    cosmos_host: str = Field(
        ...,
        validation_alias=AliasChoices("cosmos_host", "host"),
        description="Report destination URL",
    )
    report_interval_seconds: float = Field(default=5.0, gt=0, description="Cycle interval")
    sampling_window_seconds: float = Field(
        default=0.0,
        ge=0,
        le=60,
        description="Delay between baseline and advanced samples",
    )
    max_concurrency: int = Field(default=1, ge=1, le=64, description="Concurrent containers")
    delivery_timeout_seconds: float = Field(default=10.0, gt=0, description="Delivery timeout")
    error_policy: Literal["skip", "abort"] = Field(
        default="skip",
        description="Failed cycle policy",
    )

    @field_validator("cosmos_host")
    @classmethod
    def validate_cosmos_host(cls, v: str) -> str:
        """Validate destination URL format."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Destination must be an http(s) URL. Got: {v!r}")
        return v


class LoggingSettings(BaseSettings):
    """
    Logging configuration.

    Parameters
    ----------
    log_level : str
        Logging level ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    log_format : str
        Log format ("json", "console")
    log_file : Path, optional
        Log file path (None for stderr only)

    Examples
    --------
    >>> config = LoggingSettings()
    >>> config.log_level
    'INFO'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log format",
    )
    log_file: Path | None = Field(None, description="Log file path")


class AgentConfig(BaseSettings):
    """
    Main agent configuration aggregating all settings.

    Parameters
    ----------
    docker : DockerSettings
        Docker configuration
    collector : CollectorSettings
        Destination and cycle configuration
    logging : LoggingSettings
        Logging configuration
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    docker: DockerSettings = Field(default_factory=DockerSettings)
    collector: CollectorSettings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Convenience functions
# =============================================================================


def load_config(env_file: Path | str | None = None) -> AgentConfig:
    """
    Load agent configuration from environment and optional .env file.

    Parameters
    ----------
    env_file : Path or str, optional
        Path to .env file (default: .env in current directory)

    Returns
    -------
    AgentConfig
        Loaded configuration

    Raises
    ------
    ConfigurationError
        If the destination URL is missing or any value is invalid
    """
    kwargs = {"_env_file": str(env_file)} if env_file else {}
    try:
        return AgentConfig(
            docker=DockerSettings(**kwargs),
            collector=CollectorSettings(**kwargs),
            logging=LoggingSettings(**kwargs),
        )
    except ValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigurationError(
            f"Invalid agent configuration: {', '.join(fields)}",
            details={"errors": e.errors(include_url=False)},
        ) from e
