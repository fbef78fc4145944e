"""Report generator configuration.

Loads settings from two YAML files:
  * reportgen.settings.yaml  — non-secret configuration
  * reportgen.secrets.yaml   — secrets (never committed)

Both files are optional. Environment variables override whatever the
files say:

  * OPENAI_API_KEY       -> secrets.openai.api_key
  * REPORT_ASSISTANT_ID  -> assistant.assistant_id
  * PORT / HOST          -> server.port / server.host
  * LOG_LEVEL            -> logging.level

Usage:
    from reportgen.config import get_config

    config = get_config()
    config.polling.interval_seconds
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILENAME = "reportgen.settings.yaml"
SECRETS_FILENAME  = "reportgen.secrets.yaml"

DOCX_MEDIA_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _find_config_file(filename: str, explicit: Optional[Path]) -> Path:
    """Resolve a config file: explicit path, then ./config/, then cwd."""
    if explicit is not None:
        return Path(explicit)
    in_config_dir = Path("config") / filename
    if in_config_dir.exists():
        return in_config_dir
    return Path(filename)


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class OpenAISecrets(BaseModel):
    api_key:      Optional[str] = None
    organization: Optional[str] = None
    base_url:     Optional[str] = None


class Secrets(BaseModel):
    openai: OpenAISecrets = Field(default_factory=OpenAISecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 3000
    log_level:       str       = "info"
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class LoggingSettings(BaseModel):
    level: str = "INFO"


class AssistantSettings(BaseModel):
    """Remote assistant identity and how screenshots are attached to it."""
    assistant_id:         Optional[str] = None
    file_purpose:         str           = "assistants"
    attachment_tool:      str           = "code_interpreter"
    delete_remote_inputs: bool          = True


class PollingSettings(BaseModel):
    """Run status polling. Fixed interval, bounded by attempts and wall clock."""
    interval_seconds: float = 2.0
    max_attempts:     int   = 150
    timeout_seconds:  float = 600.0

    @field_validator("interval_seconds", "timeout_seconds")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("max_attempts")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v


class UploadSettings(BaseModel):
    temp_dir:            Optional[str] = None
    max_file_size_bytes: int           = 20 * 1024 * 1024
    max_files:           int           = 24


class ReportSettings(BaseModel):
    filename:        str  = "report.docx"
    media_type:      str  = DOCX_MEDIA_TYPE
    detailed_errors: bool = False


class ReportGenConfig(BaseModel):
    server:    ServerSettings    = Field(default_factory=ServerSettings)
    logging:   LoggingSettings   = Field(default_factory=LoggingSettings)
    assistant: AssistantSettings = Field(default_factory=AssistantSettings)
    polling:   PollingSettings   = Field(default_factory=PollingSettings)
    uploads:   UploadSettings    = Field(default_factory=UploadSettings)
    report:    ReportSettings    = Field(default_factory=ReportSettings)
    secrets:   Secrets           = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def _apply_env_overrides(data: Dict[str, Any], environ: Dict[str, str]) -> None:
    """Overlay recognised environment variables onto raw config data."""

    def _section(*keys: str) -> Dict[str, Any]:
        node = data
        for key in keys:
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        return node

    if environ.get("OPENAI_API_KEY"):
        _section("secrets", "openai")["api_key"] = environ["OPENAI_API_KEY"]
    if environ.get("REPORT_ASSISTANT_ID"):
        _section("assistant")["assistant_id"] = environ["REPORT_ASSISTANT_ID"]
    if environ.get("PORT"):
        _section("server")["port"] = environ["PORT"]
    if environ.get("HOST"):
        _section("server")["host"] = environ["HOST"]
    if environ.get("LOG_LEVEL"):
        _section("logging")["level"] = environ["LOG_LEVEL"]


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> ReportGenConfig:
    """Load and merge settings, secrets and env overrides into one config."""
    settings_data = _load_yaml(_find_config_file(SETTINGS_FILENAME, settings_path))
    secrets_data  = _load_yaml(_find_config_file(SECRETS_FILENAME, secrets_path))

    # Secrets live under the "secrets" key in ReportGenConfig
    settings_data["secrets"] = secrets_data
    _apply_env_overrides(settings_data, dict(os.environ) if environ is None else environ)

    config = ReportGenConfig(**settings_data)
    logger.info(
        "Config loaded (server=%s:%s, assistant configured=%s, api key configured=%s)",
        config.server.host,
        config.server.port,
        bool(config.assistant.assistant_id),
        bool(config.secrets.openai.api_key),
    )
    return config


_config: Optional[ReportGenConfig] = None


def get_config() -> ReportGenConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: ReportGenConfig) -> None:
    global _config
    _config = config


def reset_config() -> None:
    """Drop the cached config (for testing)."""
    global _config
    _config = None
