"""
Telescope MCP Server - Configuration

Pydantic Settings for all configuration via environment variables.
Invalid values are not fatal: a ConfigurationWarning is emitted and the
documented default is used.
"""

import math
import warnings
from typing import Any, Literal, Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from telescope.errors import ConfigurationWarning
from telescope.schemas.search import SearchConfiguration

DEFAULT_HOST_CAP = 2
DEFAULT_MAX_BODY_CHARS = 20_000
DEFAULT_MIN_RESULTS = 10
DEFAULT_MAX_RESULTS = 20
DEFAULT_FETCH_TIMEOUT = 15.0
DEFAULT_FETCH_CONCURRENCY = 5
DEFAULT_MAX_PAGE_BYTES = 2 * 1024 * 1024
DEFAULT_PORT = 8080

UNCAPPED_VALUES = ("", "none", "off", "unlimited", "uncapped")
TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")
SAFESEARCH_VALUES = ("on", "moderate", "off")
TRANSPORTS = ("stdio", "sse", "http")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS = ("json", "text")


def _fall_back(value: Any, name: str, default: Any) -> Any:
    warnings.warn(
        f"Invalid {name}={value!r}; using default {default}",
        ConfigurationWarning,
        stacklevel=3,
    )
    return default


def _positive_int(value: Any, name: str, default: int) -> int:
    """Parse a positive integer, warning and falling back to default."""
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        number = None
    if number is None or number <= 0:
        return _fall_back(value, name, default)
    return number


def _positive_float(value: Any, name: str, default: float) -> float:
    """Parse a positive finite float, warning and falling back to default."""
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        number = None
    if number is None or not math.isfinite(number) or number <= 0:
        return _fall_back(value, name, default)
    return number


def _boolean(value: Any, name: str, default: bool) -> bool:
    """Parse the usual true/false spellings."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return _fall_back(value, name, default)


def _choice(value: Any, name: str, choices: Tuple[str, ...], default: str) -> str:
    """Case-insensitive match of value against choices."""
    text = str(value).strip().lower()
    for choice in choices:
        if text == choice.lower():
            return choice
    return _fall_back(value, name, default)


class SearchSettings(BaseSettings):
    """Search pipeline configuration."""
    rerank_enabled: bool = Field(True, alias="TELESCOPE_RERANK_ENABLED")
    host_cap: Optional[int] = Field(DEFAULT_HOST_CAP, alias="TELESCOPE_HOST_CAP")
    max_body_chars: int = Field(
        DEFAULT_MAX_BODY_CHARS, alias="TELESCOPE_MAX_BODY_CHARS"
    )
    min_results: int = Field(DEFAULT_MIN_RESULTS, alias="TELESCOPE_MIN_RESULTS")
    max_results: int = Field(DEFAULT_MAX_RESULTS, alias="TELESCOPE_MAX_RESULTS")

    model_config = {"env_prefix": "", "extra": "ignore", "populate_by_name": True}

    @field_validator("rerank_enabled", mode="before")
    @classmethod
    def _check_rerank_enabled(cls, value: Any) -> bool:
        return _boolean(value, "rerank_enabled", True)

    @field_validator("host_cap", mode="before")
    @classmethod
    def _check_host_cap(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        if isinstance(value, str) and value.strip().lower() in UNCAPPED_VALUES:
            return None
        return _positive_int(value, "host_cap", DEFAULT_HOST_CAP)

    @field_validator("max_body_chars", mode="before")
    @classmethod
    def _check_max_body_chars(cls, value: Any) -> int:
        return _positive_int(value, "max_body_chars", DEFAULT_MAX_BODY_CHARS)

    @field_validator("min_results", mode="before")
    @classmethod
    def _check_min_results(cls, value: Any) -> int:
        return _positive_int(value, "min_results", DEFAULT_MIN_RESULTS)

    @field_validator("max_results", mode="before")
    @classmethod
    def _check_max_results(cls, value: Any) -> int:
        return _positive_int(value, "max_results", DEFAULT_MAX_RESULTS)

    @model_validator(mode="after")
    def _check_result_range(self) -> "SearchSettings":
        if self.min_results > self.max_results:
            warnings.warn(
                f"Invalid result range [{self.min_results}, {self.max_results}]; "
                f"using default [{DEFAULT_MIN_RESULTS}, {DEFAULT_MAX_RESULTS}]",
                ConfigurationWarning,
                stacklevel=2,
            )
            self.min_results = DEFAULT_MIN_RESULTS
            self.max_results = DEFAULT_MAX_RESULTS
        return self

    def to_configuration(self) -> SearchConfiguration:
        """Freeze these settings into the configuration the service reads."""
        return SearchConfiguration(
            rerank_enabled=self.rerank_enabled,
            host_cap=self.host_cap,
            max_body_chars=self.max_body_chars,
            min_results=self.min_results,
            max_results=self.max_results,
        )


class ExtractorSettings(BaseSettings):
    """Web search and page fetching configuration."""
    fetch_timeout_seconds: float = Field(
        DEFAULT_FETCH_TIMEOUT, alias="TELESCOPE_FETCH_TIMEOUT_SECONDS"
    )
    fetch_concurrency: int = Field(
        DEFAULT_FETCH_CONCURRENCY, alias="TELESCOPE_FETCH_CONCURRENCY"
    )
    max_page_bytes: int = Field(DEFAULT_MAX_PAGE_BYTES, alias="TELESCOPE_MAX_PAGE_BYTES")
    user_agent: str = Field(
        "Mozilla/5.0 (compatible; TelescopeServer/0.1; +https://modelcontextprotocol.io)",
        alias="TELESCOPE_USER_AGENT",
    )
    search_region: str = Field("us-en", alias="TELESCOPE_SEARCH_REGION")
    safesearch: Literal["on", "moderate", "off"] = Field(
        "moderate", alias="TELESCOPE_SAFESEARCH"
    )
    search_backend: str = Field("auto", alias="TELESCOPE_SEARCH_BACKEND")

    model_config = {"env_prefix": "", "extra": "ignore", "populate_by_name": True}

    @field_validator("fetch_timeout_seconds", mode="before")
    @classmethod
    def _check_fetch_timeout(cls, value: Any) -> float:
        return _positive_float(value, "fetch_timeout_seconds", DEFAULT_FETCH_TIMEOUT)

    @field_validator("fetch_concurrency", mode="before")
    @classmethod
    def _check_fetch_concurrency(cls, value: Any) -> int:
        return _positive_int(value, "fetch_concurrency", DEFAULT_FETCH_CONCURRENCY)

    @field_validator("max_page_bytes", mode="before")
    @classmethod
    def _check_max_page_bytes(cls, value: Any) -> int:
        return _positive_int(value, "max_page_bytes", DEFAULT_MAX_PAGE_BYTES)

    @field_validator("safesearch", mode="before")
    @classmethod
    def _check_safesearch(cls, value: Any) -> str:
        return _choice(value, "safesearch", SAFESEARCH_VALUES, "moderate")


class MCPSettings(BaseSettings):
    """MCP server configuration."""
    transport: Literal["stdio", "sse", "http"] = Field("stdio", alias="MCP_TRANSPORT")
    port: int = Field(DEFAULT_PORT, alias="MCP_PORT")
    host: str = Field("127.0.0.1", alias="MCP_HOST")

    model_config = {"env_prefix": "", "extra": "ignore", "populate_by_name": True}

    @field_validator("transport", mode="before")
    @classmethod
    def _check_transport(cls, value: Any) -> str:
        return _choice(value, "transport", TRANSPORTS, "stdio")

    @field_validator("port", mode="before")
    @classmethod
    def _check_port(cls, value: Any) -> int:
        return _positive_int(value, "port", DEFAULT_PORT)


class LogSettings(BaseSettings):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", alias="LOG_LEVEL"
    )
    format: Literal["json", "text"] = Field("text", alias="LOG_FORMAT")

    model_config = {"env_prefix": "", "extra": "ignore", "populate_by_name": True}

    @field_validator("level", mode="before")
    @classmethod
    def _check_level(cls, value: Any) -> str:
        return _choice(value, "log level", LOG_LEVELS, "INFO")

    @field_validator("format", mode="before")
    @classmethod
    def _check_format(cls, value: Any) -> str:
        return _choice(value, "log format", LOG_FORMATS, "text")


class Settings(BaseSettings):
    """Main settings aggregating all configuration."""
    search: SearchSettings = Field(default_factory=SearchSettings)
    extractor: ExtractorSettings = Field(default_factory=ExtractorSettings)
    mcp: MCPSettings = Field(default_factory=MCPSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = {"env_prefix": "", "extra": "ignore"}


def get_settings() -> Settings:
    """Load settings from environment variables."""
    from dotenv import load_dotenv
    load_dotenv()
    return Settings()
