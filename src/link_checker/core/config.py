from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, get_args

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from link_checker.constants import (
    CACHE_FILENAME,
    DEFAULT_GITHUB_API_ROOT,
    DEFAULT_INDEX_FILE,
    IGNORED_DIRECTORIES,
)
from link_checker.resilience.errors import ConfigurationError

ENV_PREFIX = "LINK_CHECKER_"


class LocalAlternativeRule(BaseModel):
    """External links matching ``pattern`` have a preferred local counterpart."""

    pattern: str
    reason: str = "Replace the remote link with its local alternative."


class CheckerConfig(BaseModel):
    clean_url: bool = False
    index_file: str = DEFAULT_INDEX_FILE
    allow_html_extension: bool = False
    include_ref_directory: bool = False
    ref_directory: str = "ref"
    ignore_warnings: bool = False
    fix: bool = False
    debug: bool = False
    cache_file: str = CACHE_FILENAME

    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=5, ge=1)
    retry_delay: float = Field(default=3.0, ge=0)
    anchor_similarity: float = Field(default=0.9, gt=0.0, le=1.0)

    github_token: Optional[str] = None
    github_api_root: str = DEFAULT_GITHUB_API_ROOT
    ignored_directories: List[str] = Field(default_factory=lambda: list(IGNORED_DIRECTORIES))
    local_alternatives: List[LocalAlternativeRule] = Field(default_factory=list)

    @field_validator("index_file")
    def index_file_is_markdown(cls, v: str) -> str:
        """The index file is what a directory link resolves to, so it must be a Markdown file."""
        if not v.endswith(".md"):
            raise ValueError(f"index_file must be a Markdown file, got {v!r}")
        return v

    @field_validator("github_api_root")
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("ignored_directories", mode="before")
    def split_comma_list(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v


def _load_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping at the top level")
    # A file may nest everything under a `link_checker:` section.
    return data.get("link_checker", data)


def _is_text_field(annotation: Any) -> bool:
    return annotation is str or str in get_args(annotation)


def _parse_value(v: str, annotation: Any = None) -> Any:
    if _is_text_field(annotation):
        return v
    if v.lower() in ("true", "false"):
        return v.lower() == "true"
    try:
        if "." in v:
            return float(v)
        return int(v)
    except ValueError:
        return v


def load_checker_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> CheckerConfig:
    """Load and validate configuration with priority: overrides > env > config_file > defaults."""
    data: Dict[str, Any] = {}

    # 1. Config File
    if config_path is not None:
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
        data.update(_load_yaml(config_path))

    # 2. Environment Variables (LINK_CHECKER_ prefix)
    for key, info in CheckerConfig.model_fields.items():
        env_val = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
        if env_val:
            data[key] = _parse_value(env_val, info.annotation)
    if "github_token" not in data and os.environ.get("GITHUB_TOKEN"):
        data["github_token"] = os.environ["GITHUB_TOKEN"]

    # 3. Overrides (CLI flags)
    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return CheckerConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
