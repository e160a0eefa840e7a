"""
Configuration Module
====================

Loads enrichment settings from a YAML file. Secrets (API keys) always come
from the environment so the YAML file can be committed.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_MODEL = "claude-sonnet-4-20250514"


@dataclass
class PriceApiConfig:
    """Settings for the structured wine price API."""

    api_key: str = ""
    base_url: str = "https://api.wine-searcher.com/wine-select-api.lml"
    timeout: float = 5.0
    daily_limit: int = 95

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PriceApiConfig:
        """Create from dictionary, using defaults for missing values."""
        data = data or {}
        return cls(
            api_key=os.environ.get("WINE_SEARCHER_API_KEY", data.get("api_key", "")),
            base_url=data.get("base_url", cls.base_url),
            timeout=float(data.get("timeout", 5.0)),
            daily_limit=int(data.get("daily_limit", 95)),
        )

    @property
    def enabled(self) -> bool:
        """Check whether an API key is configured."""
        return bool(self.api_key)


@dataclass
class SearchAgentConfig:
    """Settings for the web-search price and rating agent."""

    model: str = DEFAULT_MODEL
    max_tokens: int = 2048
    timeout: float = 300.0
    max_searches: int = 5
    enable_fetch: bool = False
    max_fetches: int = 2
    max_continuations: int = 5
    requests_per_second: float = 2.0
    allowed_domains: list[str] = field(
        default_factory=lambda: ["wine-searcher.com", "cellartracker.com"]
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SearchAgentConfig:
        """Create from dictionary, using defaults for missing values."""
        data = data or {}
        return cls(
            model=os.environ.get("AI_MODEL") or data.get("model", DEFAULT_MODEL),
            max_tokens=int(data.get("max_tokens", 2048)),
            timeout=float(data.get("timeout", 300.0)),
            max_searches=int(data.get("max_searches", 5)),
            enable_fetch=bool(data.get("enable_fetch", False)),
            max_fetches=int(data.get("max_fetches", 2)),
            max_continuations=int(data.get("max_continuations", 5)),
            requests_per_second=float(data.get("requests_per_second", 2.0)),
            allowed_domains=list(
                data.get("allowed_domains", ["wine-searcher.com", "cellartracker.com"])
            ),
        )


@dataclass
class CommunityConfig:
    """Settings for the community score agent."""

    max_tokens: int = 512
    timeout: float = 120.0
    max_searches: int = 2
    max_continuations: int = 3
    site: str = "cellartracker.com"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CommunityConfig:
        """Create from dictionary, using defaults for missing values."""
        data = data or {}
        return cls(
            max_tokens=int(data.get("max_tokens", 512)),
            timeout=float(data.get("timeout", 120.0)),
            max_searches=min(int(data.get("max_searches", 2)), 2),
            max_continuations=int(data.get("max_continuations", 3)),
            site=data.get("site", "cellartracker.com"),
        )


@dataclass
class SchedulerConfig:
    """Settings for wave scheduling."""

    wave_size: int = 5
    retry_pass: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SchedulerConfig:
        """Create from dictionary."""
        data = data or {}
        wave_size = int(data.get("wave_size", 5))
        if wave_size < 1:
            raise ValueError(f"wave_size must be at least 1, got {wave_size}")
        return cls(wave_size=wave_size, retry_pass=bool(data.get("retry_pass", True)))


@dataclass
class CacheConfig:
    """Settings for the lookup result cache."""

    ttl_hours: float = 24.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CacheConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(ttl_hours=float(data.get("ttl_hours", 24.0)))


@dataclass
class SessionConfig:
    """Settings for the in-memory session store."""

    ttl_minutes: float = 60.0
    sweep_interval_minutes: float = 10.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SessionConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            ttl_minutes=float(data.get("ttl_minutes", 60.0)),
            sweep_interval_minutes=float(data.get("sweep_interval_minutes", 10.0)),
        )


@dataclass
class UploadConfig:
    """Settings for wine list uploads and parsing."""

    max_file_size_mb: int = 20
    upload_dir: str = ""
    parser_max_tokens: int = 16384
    parser_timeout: float = 300.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> UploadConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            max_file_size_mb=int(data.get("max_file_size_mb", 20)),
            upload_dir=os.environ.get("WINE_VALUE_UPLOAD_DIR", data.get("upload_dir", "")),
            parser_max_tokens=int(data.get("parser_max_tokens", 16384)),
            parser_timeout=float(data.get("parser_timeout", 300.0)),
        )


@dataclass
class AppConfig:
    """Top-level configuration."""

    anthropic_api_key: str = ""
    price_api: PriceApiConfig = field(default_factory=PriceApiConfig)
    search: SearchAgentConfig = field(default_factory=SearchAgentConfig)
    community: CommunityConfig = field(default_factory=CommunityConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    sessions: SessionConfig = field(default_factory=SessionConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    config_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AppConfig:
        """Create from dictionary (the parsed YAML document)."""
        data = data or {}
        return cls(
            anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
            price_api=PriceApiConfig.from_dict(data.get("price_api")),
            search=SearchAgentConfig.from_dict(data.get("search")),
            community=CommunityConfig.from_dict(data.get("community")),
            scheduler=SchedulerConfig.from_dict(data.get("scheduler")),
            cache=CacheConfig.from_dict(data.get("cache")),
            sessions=SessionConfig.from_dict(data.get("sessions")),
            upload=UploadConfig.from_dict(data.get("upload")),
        )

    @property
    def ai_configured(self) -> bool:
        """Check whether an Anthropic key is configured."""
        return bool(self.anthropic_api_key) and self.anthropic_api_key != "your-anthropic-api-key-here"


def load_config(config_path: Path | str) -> AppConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the enrichment.yaml file

    Returns:
        The parsed AppConfig
    """
    config_path = Path(config_path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    config = AppConfig.from_dict(data)
    config.config_path = config_path
    return config


# Global config instance
_default_config: AppConfig | None = None


def get_default_config() -> AppConfig:
    """
    Get the default configuration instance.

    Loads from the path in WINE_VALUE_CONFIG_PATH, or falls back to
    config/enrichment.yaml at the project root, or to built-in defaults.

    Returns:
        The global AppConfig instance
    """
    global _default_config

    if _default_config is None:
        config_path = os.environ.get("WINE_VALUE_CONFIG_PATH")
        if config_path:
            path = Path(config_path)
        else:
            project_root = Path(__file__).parent.parent
            path = project_root / "config" / "enrichment.yaml"

        if path.exists():
            _default_config = load_config(path)
        else:
            _default_config = AppConfig.from_dict(None)

    return _default_config


def reset_default_config() -> None:
    """Reset the default config (useful for testing)."""
    global _default_config
    _default_config = None
