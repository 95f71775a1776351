"""Data models for remote run payloads and pipeline results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RunStatus(str, Enum):
    REQUESTED = "requested"
    QUEUED = "queued"
    PENDING = "pending"
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RunConclusion(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    NEUTRAL = "neutral"
    STALE = "stale"
    STARTUP_FAILURE = "startup_failure"


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class RunSummary(BaseModel):
    """One row of the run listing query."""

    id: int = Field(..., alias="databaseId")
    title: str = Field(default="", alias="displayTitle")
    status: Optional[RunStatus] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("title", mode="before")
    @classmethod
    def _title_default(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("status", mode="before")
    @classmethod
    def _status_blank(cls, value: object) -> object:
        return _blank_to_none(value)


class RunStep(BaseModel):
    name: str = ""
    number: Optional[int] = None
    status: Optional[str] = None
    conclusion: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class RunJob(BaseModel):
    name: str = ""
    steps: List[RunStep] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("steps", mode="before")
    @classmethod
    def _steps_default(cls, value: object) -> object:
        return [] if value is None else value


class RunState(BaseModel):
    """Status and conclusion of a single run."""

    status: RunStatus
    conclusion: Optional[RunConclusion] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("conclusion", mode="before")
    @classmethod
    def _conclusion_blank(cls, value: object) -> object:
        return _blank_to_none(value)

    @property
    def completed(self) -> bool:
        return self.status is RunStatus.COMPLETED

    @property
    def succeeded(self) -> bool:
        return self.completed and self.conclusion is RunConclusion.SUCCESS


@dataclass(slots=True)
class ArchiveHandle:
    """A downloaded archive plus its decoded entry listing."""

    path: Path
    archive_format: str
    entries: List[str] = field(default_factory=list)
    extracted_root: Optional[Path] = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "path": str(self.path),
            "archive_format": self.archive_format,
            "entries": list(self.entries),
        }
        if self.extracted_root is not None:
            payload["extracted_root"] = str(self.extracted_root)
        return payload


@dataclass(slots=True)
class StepOutcome:
    step: str
    status: str
    detail: str = ""
    data: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "step": self.step,
            "status": self.status,
            "detail": self.detail,
            "data": self.data,
        }
