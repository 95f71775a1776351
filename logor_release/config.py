"""Pipeline configuration: model defaults, optional YAML file, environment overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .archive import ArchiveFormat
from .errors import ConfigError
from .locator import DEFAULT_SEARCH_WINDOW, LocatorStrategy
from .retry import BackoffStrategy, RetryPolicy

ENV_PREFIX = "LOGOR_RELEASE_"

DEFAULT_REQUIRED_FILES = (
    "win-x64/LogorFileServer.Api.exe",
    "linux-x64/LogorFileServer.Api",
    "osx-x64/LogorFileServer.Api",
)


class RetryPolicies(BaseModel):
    locate: RetryPolicy = Field(default_factory=lambda: RetryPolicy.bounded(11, 0.5))
    locate_steps: RetryPolicy = Field(default_factory=lambda: RetryPolicy.unbounded(5.0))
    watch: RetryPolicy = Field(
        default_factory=lambda: RetryPolicy.unbounded(1.0, max_delay=5.0, backoff=BackoffStrategy.EXPONENTIAL)
    )
    tag: RetryPolicy = Field(
        default_factory=lambda: RetryPolicy.unbounded(1.0, max_delay=30.0, backoff=BackoffStrategy.EXPONENTIAL)
    )
    download: RetryPolicy = Field(default_factory=lambda: RetryPolicy.bounded(6, 3.0))

    model_config = ConfigDict(extra="forbid")


class PipelineConfig(BaseModel):
    workflow: str = "release.yml"
    repo: Optional[str] = Field(default=None, description="OWNER/REPO passed to gh; current repository when unset.")
    configuration: str = "Release"
    bump: Optional[str] = None
    extra_inputs: Dict[str, str] = Field(default_factory=dict)
    locator_strategy: LocatorStrategy = LocatorStrategy.TITLE
    search_window: int = Field(default=DEFAULT_SEARCH_WINDOW, ge=1, le=1000)
    archive_format: ArchiveFormat = ArchiveFormat.TAR_GZ
    artifact_template: str = "LogorFileServer-{tag}-all-platforms{suffix}"
    inspection: str = Field(default="list", pattern="^(list|extract)$")
    download_dir: Path = Path("publish/downloads")
    required_files: List[str] = Field(default_factory=lambda: list(DEFAULT_REQUIRED_FILES))
    fail_on_missing: bool = False
    keep_archive: bool = False
    retry: RetryPolicies = Field(default_factory=RetryPolicies)

    model_config = ConfigDict(extra="forbid")

    def locate_policy(self) -> RetryPolicy:
        if self.locator_strategy is LocatorStrategy.STEPS:
            return self.retry.locate_steps
        return self.retry.locate

    def artifact_name(self, tag: str) -> str:
        return self.artifact_template.format(tag=tag, suffix=self.archive_format.suffix)


_ENV_FIELDS = {
    "WORKFLOW": "workflow",
    "REPO": "repo",
    "CONFIGURATION": "configuration",
    "BUMP": "bump",
    "LOCATOR_STRATEGY": "locator_strategy",
    "SEARCH_WINDOW": "search_window",
    "ARCHIVE_FORMAT": "archive_format",
    "INSPECTION": "inspection",
    "DOWNLOAD_DIR": "download_dir",
    "FAIL_ON_MISSING": "fail_on_missing",
    "KEEP_ARCHIVE": "keep_archive",
}


def _env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for suffix, field_name in _ENV_FIELDS.items():
        value = env.get(ENV_PREFIX + suffix)
        if value is not None and value.strip():
            overrides[field_name] = value.strip()
    return overrides


def _read_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a mapping at the top level.")
    return data


def load_config(
    path: Optional[str | Path] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> PipelineConfig:
    """Build a :class:`PipelineConfig`; later sources win over earlier ones."""

    payload: Dict[str, Any] = {}
    if path is not None:
        payload.update(_read_file(Path(path)))
    payload.update(_env_overrides(os.environ if env is None else env))
    if overrides:
        payload.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return PipelineConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid pipeline configuration: {exc}") from exc
