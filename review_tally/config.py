"""Run settings for a review tally."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_ORGANIZATION = "k8smeetup"
DEFAULT_REPOSITORY = "kubernetes.github.io"
DEFAULT_TIMEOUT_SECONDS = 20


class OutputFormat(StrEnum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"


class ReportSettings(BaseModel):
    """Settings built once at startup and passed through the pipeline."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    organization: str = Field(default=DEFAULT_ORGANIZATION, min_length=1)
    repository: str = Field(default=DEFAULT_REPOSITORY, min_length=1)
    token: str = Field(default="", repr=False)
    output: OutputFormat = OutputFormat.TEXT
    timeout_seconds: int = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    trust_env: bool = True
    include_pull_requests: bool = False

    @field_validator("organization", "repository", mode="before")
    @classmethod
    def strip_names(cls, value: object) -> object:
        """Strip surrounding whitespace so blank names fail min_length."""
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("organization", "repository")
    @classmethod
    def validate_single_segment(cls, value: str) -> str:
        """Reject owner/repo style values; each name is one path segment."""
        if "/" in value:
            raise ValueError("must be a bare name without '/'.")
        return value

    @field_validator("output", mode="before")
    @classmethod
    def normalize_output(cls, value: object) -> object:
        """Map the selector onto a known format; empty or unknown means plain text."""
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized not in {output_format.value for output_format in OutputFormat}:
                return OutputFormat.TEXT.value
            return normalized
        return value

    @property
    def repository_full_name(self) -> str:
        """Return the repository as owner/repo."""
        return f"{self.organization}/{self.repository}"
