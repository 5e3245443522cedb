"""Data models for DSAT token probing."""

import hashlib
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .canonical import Ordering
from .exceptions import TokenSchemeError
from .params import ParameterSet

FragmentName = Literal["year", "month_day", "hour_minute"]

FRAGMENT_WIDTH = 4

# Widest-rendering reading used to check a scheme's formats up front
SAMPLE_MOMENT = datetime(2024, 12, 31, 23, 59)


class TimestampComponents(BaseModel):
    """Timestamp fragments captured from a single clock reading."""

    model_config = ConfigDict(frozen=True)

    year: str = Field(..., description="4-digit year, e.g. '2024'")
    month_day: str = Field(..., description="Month and day, e.g. '0305'")
    hour_minute: str = Field(..., description="Hour and minute, e.g. '0907'")

    @field_validator("year", "month_day", "hour_minute")
    @classmethod
    def _four_digits(cls, value: str) -> str:
        if len(value) != FRAGMENT_WIDTH or not value.isdigit():
            raise ValueError(
                f"Timestamp fragment must be {FRAGMENT_WIDTH} decimal digits: {value!r}"
            )
        return value

    @classmethod
    def from_datetime(
        cls,
        moment: datetime,
        year_format: str = "%Y",
        month_day_format: str = "%m%d",
        hour_minute_format: str = "%H%M",
    ) -> "TimestampComponents":
        # %Y is not zero-padded below year 1000 on every platform
        year = f"{moment.year:04d}"
        return cls(
            year=moment.strftime(year_format.replace("%Y", year)),
            month_day=moment.strftime(month_day_format.replace("%Y", year)),
            hour_minute=moment.strftime(hour_minute_format.replace("%Y", year)),
        )

    def fragment(self, name: FragmentName) -> str:
        return str(getattr(self, name))


class Insertion(BaseModel):
    """One splice step: put a timestamp fragment at an index."""

    model_config = ConfigDict(frozen=True)

    fragment: FragmentName
    index: int = Field(..., ge=0, description="Index in the sequence as it stands")


def digest_length(algorithm: str) -> int:
    """Length of the hex digest produced by a hashlib algorithm."""
    try:
        size = hashlib.new(algorithm).digest_size
    except (ValueError, TypeError) as e:
        raise TokenSchemeError(f"Unsupported hash algorithm: {algorithm}") from e
    if size == 0:
        raise TokenSchemeError(f"Variable-length hash algorithm not supported: {algorithm}")
    return size * 2


class TokenScheme(BaseModel):
    """A hypothesis about how the client derives its token."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Scheme name used in reports")
    description: str = Field("", description="What this hypothesis assumes")
    algorithm: str = Field("md5", description="hashlib algorithm name")
    year_format: str = Field("%Y", description="strftime format of the first fragment")
    month_day_format: str = Field("%m%d", description="strftime format of the second fragment")
    hour_minute_format: str = Field("%H%M", description="strftime format of the third fragment")
    insertions: tuple[Insertion, ...] = Field(
        ..., description="Splice steps, applied in order onto the growing sequence"
    )

    @model_validator(mode="after")
    def _check_formats(self) -> "TokenScheme":
        try:
            self.timestamp(SAMPLE_MOMENT)
        except ValidationError as e:
            raise TokenSchemeError(
                f"Scheme {self.name!r}: formats must render {FRAGMENT_WIDTH} digits"
            ) from e
        return self

    @model_validator(mode="after")
    def _check_offsets(self) -> "TokenScheme":
        length = digest_length(self.algorithm)
        for step in self.insertions:
            if step.index > length:
                raise TokenSchemeError(
                    f"Scheme {self.name!r}: index {step.index} is past the end "
                    f"of a {length}-element sequence"
                )
            length += 1
        return self

    def timestamp(self, moment: datetime) -> TimestampComponents:
        return TimestampComponents.from_datetime(
            moment,
            year_format=self.year_format,
            month_day_format=self.month_day_format,
            hour_minute_format=self.hour_minute_format,
        )


class Variant(BaseModel):
    """A named (parameter set, ordering) combination driving one probe."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="Short identifier, e.g. 'base-sorted'")
    label: str = Field(..., description="Human-readable description")
    params: ParameterSet
    ordering: Ordering = Ordering.INSERTION
    scheme: str | None = Field(
        None, description="Token scheme name; the configured default when unset"
    )

    def __str__(self) -> str:
        return f"{self.name} ({self.ordering.value})"


class FailureKind(str, Enum):
    """Why a probe did not succeed."""

    TIMEOUT = "timeout"
    NETWORK_FAILURE = "network_failure"
    HTTP_STATUS = "http_status"
    UNEXPECTED_RESPONSE_SHAPE = "unexpected_response_shape"


class ProbeResult(BaseModel):
    """Outcome of one probe."""

    label: str = Field(..., description="Variant label")
    variant: str = Field(..., description="Variant name")
    ordering: Ordering = Field(..., description="Ordering used for the hash input")
    scheme: str = Field(..., description="Token scheme name")
    canonical_query: str = Field(..., description="String that was hashed")
    token: str = Field(..., description="Token sent with the request")
    status_code: int | None = Field(None, description="HTTP status, None on transport failure")
    success: bool = Field(False, description="Response carried the expected data")
    sample: dict[str, Any] | None = Field(None, description="First record of the nested list")
    route_id: str | None = Field(None, description="Route identifier echoed by the service")
    record_count: int = Field(0, description="Number of records in the nested list")
    error: str | None = Field(None, description="Reason the probe failed")
    failure_kind: FailureKind | None = Field(None, description="Failure category")
    raw_payload: Any = Field(None, description="Response body kept for inspection")
    elapsed_seconds: float | None = Field(None, description="Request duration")
    probed_at: datetime = Field(..., description="Clock reading used for the token")

    def __str__(self) -> str:
        outcome = "SUCCESS" if self.success else f"FAIL ({self.error})"
        return f"{self.label}: {outcome}"
