"""
vidaudio.job - Immutable description of one extraction request.

A JobSpecification is an ordered set of input files plus the options that
apply to all of them. Build one with make_job(), which reports any
invariant violation as InvalidSpecificationError.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from vidaudio.exceptions import InvalidSpecificationError

SPLIT_NONE = "none"
SPLIT_FIXED_PREFIX = "fixed:"


def parse_split(value: str) -> int | None:
    """Parse a split mode string into segment seconds.

    Args:
        value: "none" or "fixed:<seconds>"

    Returns:
        Segment length in seconds, or None when the output stays whole

    Raises:
        ValueError: If the mode is unknown or seconds is not a positive integer
    """
    value = value.strip()
    if value == SPLIT_NONE:
        return None
    if not value.startswith(SPLIT_FIXED_PREFIX):
        raise ValueError(f"split must be 'none' or 'fixed:<seconds>', got {value!r}")
    raw = value[len(SPLIT_FIXED_PREFIX) :]
    try:
        seconds = int(raw)
    except ValueError as e:
        raise ValueError(f"split seconds must be an integer, got {raw!r}") from e
    if seconds <= 0:
        raise ValueError(f"split seconds must be greater than 0, got {seconds}")
    return seconds


def split_mode(seconds: int | None) -> str:
    """Inverse of parse_split: None → "none", 30 → "fixed:30"."""
    if seconds is None:
        return SPLIT_NONE
    return f"{SPLIT_FIXED_PREFIX}{seconds}"


class InputFile(BaseModel):
    """One input video held in memory."""

    model_config = ConfigDict(frozen=True)

    name: str
    data: bytes = Field(repr=False)
    size: int | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or v in (".", ".."):
            raise ValueError("input name must not be empty")
        if "/" in v or "\\" in v:
            raise ValueError(f"input name must be a bare filename: {v!r}")
        return v

    @model_validator(mode="before")
    @classmethod
    def fill_size(cls, values: Any) -> Any:
        if isinstance(values, dict) and values.get("size") is None and "data" in values:
            values = {**values, "size": len(values["data"])}
        return values

    @classmethod
    def from_path(cls, path: Path) -> InputFile:
        """Read a file from disk into an InputFile named after its basename."""
        data = path.read_bytes()
        return cls(name=path.name, data=data, size=len(data))


class JobOptions(BaseModel):
    """Options shared by every input of a job."""

    model_config = ConfigDict(frozen=True)

    speed: float = Field(default=1.0, gt=0.0, allow_inf_nan=False)
    downsample: bool = False
    split: str = SPLIT_NONE

    @field_validator("split")
    @classmethod
    def validate_split(cls, v: str) -> str:
        parse_split(v)
        return v.strip()

    @property
    def split_seconds(self) -> int | None:
        return parse_split(self.split)


class JobSpecification(BaseModel):
    """Ordered inputs plus options. Never mutated once built."""

    model_config = ConfigDict(frozen=True)

    inputs: tuple[InputFile, ...]
    options: JobOptions = Field(default_factory=JobOptions)

    @field_validator("inputs")
    @classmethod
    def validate_inputs(cls, v: tuple[InputFile, ...]) -> tuple[InputFile, ...]:
        check_inputs(v)
        return v


def check_inputs(inputs: tuple[InputFile, ...] | list[InputFile]) -> None:
    """Raise ValueError unless inputs is non-empty with unique names."""
    if not inputs:
        raise ValueError("at least one input file is required")
    seen: set[str] = set()
    for item in inputs:
        if item.name in seen:
            raise ValueError(f"duplicate input name: {item.name}")
        seen.add(item.name)


def make_job(
    inputs: list[InputFile] | tuple[InputFile, ...],
    speed: float = 1.0,
    downsample: bool = False,
    split: str = SPLIT_NONE,
) -> JobSpecification:
    """Build a validated JobSpecification.

    Raises:
        InvalidSpecificationError: If any invariant is violated
    """
    try:
        options = JobOptions(speed=speed, downsample=downsample, split=split)
        return JobSpecification(inputs=tuple(inputs), options=options)
    except ValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise InvalidSpecificationError(messages) from e
