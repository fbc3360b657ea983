"""
Input validation schemas using Pydantic v2
Validates contest configuration, authoring forms and API records
"""

import logging
import re
from datetime import date, datetime, time, timezone, tzinfo
from enum import Enum
from typing import Any, List, Literal, Optional, Self, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

# ==================== CONFIGURATION DEFAULTS ====================

CONFIG_VERSION = 1

VotingMethod = Literal["public", "logged_users", "jury"]
ContestStatus = Literal["draft", "active", "ended", "archived"]
SubmissionStatus = Literal["pending", "approved", "rejected"]

DEFAULT_VOTING_METHODS: Tuple[str, ...] = ("public",)
DEFAULT_VOTES_PER_PERIOD = 1
DEFAULT_PERIOD_HOURS = 24
DEFAULT_TOTAL_VOTES = 0
MIN_PERIOD_HOURS = 1
MAX_PERIOD_HOURS = 168  # one week
DEFAULT_PRIZE_PERCENTAGES: Tuple[float, ...] = (0.40, 0.25, 0.15, 0.10, 0.10)

DEFAULT_START_TIME = time(0, 0)
DEFAULT_END_TIME = time(23, 59)


class Currency(str, Enum):
    """Prize currency; one tag applies to a whole distribution."""

    GLORY = "GLORY"
    SOL = "SOL"
    USDC = "USDC"


DEFAULT_CURRENCY = Currency.GLORY


def form_zone(name: str) -> tzinfo:
    """Resolve an IANA zone name; UTC never needs the tz database."""
    if name.upper() in ("UTC", "Z"):
        return timezone.utc
    return ZoneInfo(name)


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ==================== CONFIG MODELS ====================


class PrizePlace(BaseModel):
    """One funded place of a prize breakdown."""

    place: int = Field(..., ge=1, le=1000, description="1-based place")
    value: float = Field(..., ge=0, description="Prize value for the place")

    model_config = ConfigDict(frozen=True)


class ContestConfig(BaseModel):
    """Versioned contest configuration with named defaults.

    Built once from the authoring record; every consumer (entitlement,
    ranking, prizes) reads the same instance instead of re-deriving
    defaults of its own.
    """

    config_version: int = Field(CONFIG_VERSION, alias="configVersion", ge=1)

    voting_methods: Tuple[VotingMethod, ...] = Field(
        DEFAULT_VOTING_METHODS, alias="votingMethods"
    )
    jury_members: Tuple[str, ...] = Field((), alias="juryMembers")
    votes_per_user_per_period: int = Field(
        DEFAULT_VOTES_PER_PERIOD,
        alias="votesPerUserPerPeriod",
        ge=0,
        le=10000,
        description="Votes per period (0 = no per-period cap)",
    )
    period_duration_hours: int = Field(
        DEFAULT_PERIOD_HOURS,
        alias="periodDurationHours",
        ge=MIN_PERIOD_HOURS,
        le=MAX_PERIOD_HOURS,
        description="Rolling window length in hours (1-168)",
    )
    total_votes_per_user: int = Field(
        DEFAULT_TOTAL_VOTES,
        alias="totalVotesPerUser",
        ge=0,
        le=100000,
        description="Lifetime votes per user (0 = unlimited)",
    )

    prize_distribution: Tuple[PrizePlace, ...] = Field((), alias="prizeDistribution")
    currency: Currency = Field(DEFAULT_CURRENCY)

    # Authoring fields carried through for the API layer
    eligibility: Optional[str] = Field(None, max_length=100)
    max_submissions: Optional[int] = Field(None, alias="maxSubmissions", ge=1)
    allowed_media_types: Tuple[str, ...] = Field((), alias="allowedMediaTypes")
    file_size_limit: Optional[int] = Field(None, alias="fileSizeLimit", ge=0)
    nsfw_allowed: bool = Field(False, alias="nsfwAllowed")
    entry_fee: bool = Field(False, alias="entryFee")
    entry_fee_amount: Optional[float] = Field(None, alias="entryFeeAmount", ge=0)

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @field_validator("voting_methods", mode="before")
    @classmethod
    def validate_voting_methods(cls, v: Any) -> Any:
        """Drop duplicates (order preserved) and require at least one method"""
        if v is None:
            return DEFAULT_VOTING_METHODS
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            raise ValueError("votingMethods must be a list")
        unique: List[Any] = []
        for method in v:
            if method not in unique:
                unique.append(method)
        if not unique:
            raise ValueError("votingMethods cannot be empty")
        return tuple(unique)

    @field_validator("jury_members", mode="before")
    @classmethod
    def validate_jury_members(cls, v: Any) -> Any:
        """Sanitize jury ids and drop blanks"""
        if v is None:
            return ()
        if not isinstance(v, (list, tuple)):
            raise ValueError("juryMembers must be a list")
        members: List[str] = []
        for member in v:
            if not isinstance(member, str):
                continue
            clean = InputSanitizer.sanitize_identifier(member)
            if clean and clean not in members:
                members.append(clean)
        return tuple(members)

    @model_validator(mode="after")
    def validate_jury_only(self) -> Self:
        """Jury-only voting needs at least one jury member"""
        if self.voting_methods == ("jury",) and not self.jury_members:
            raise ValueError("jury-only voting requires juryMembers")
        return self

    @property
    def prize_places(self) -> int:
        """Number of funded places (drives the prize-eligible rank band)."""
        return len(self.prize_distribution)

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# ==================== AUTHORING FORM ====================


class ScheduleForm(BaseModel):
    """Raw schedule fields as sent by the create/edit contest forms.

    Missing required dates are *not* rejected here; the schedule resolver
    reports them together with ordering violations.
    """

    start_date_option: Literal["now", "later"] = Field("later", alias="startDateOption")
    start_date: Optional[date] = Field(None, alias="startDate")
    start_time: Optional[time] = Field(None, alias="startTime")

    enable_submission_deadline: bool = Field(False, alias="enableSubmissionDeadline")
    submission_deadline: Optional[date] = Field(None, alias="submissionDeadline")
    submission_deadline_time: Optional[time] = Field(None, alias="submissionDeadlineTime")

    voting_start_option: Literal["now", "later"] = Field("later", alias="votingStartOption")
    voting_start_date: Optional[date] = Field(None, alias="votingStartDate")

    voting_end_date: Optional[date] = Field(None, alias="votingEndDate")
    voting_end_time: Optional[time] = Field(None, alias="votingEndTime")

    timezone: str = Field("UTC", max_length=64, description="IANA zone of the form fields")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator(
        "start_date",
        "start_time",
        "submission_deadline",
        "submission_deadline_time",
        "voting_start_date",
        "voting_end_date",
        "voting_end_time",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """HTML date/time inputs send empty strings for unset values"""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        v = v.strip() or "UTC"
        try:
            form_zone(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone: {v}")
        return v

    def combine(self, day: date, clock: Optional[time], default: time) -> datetime:
        """Combine a form date and time in the form's zone, returned in UTC."""
        local = datetime.combine(day, clock or default, tzinfo=form_zone(self.timezone))
        return local.astimezone(timezone.utc)


# ==================== API RECORDS ====================


class ContestConfigIn(ContestConfig):
    """Contest config as stored, including the schedule anchors."""

    submission_end_at: Optional[datetime] = Field(None, alias="submissionEndAt")
    voting_start_at: Optional[datetime] = Field(None, alias="votingStartAt")
    voting_end_at: Optional[datetime] = Field(None, alias="votingEndAt")

    @field_validator("submission_end_at", "voting_start_at", "voting_end_at")
    @classmethod
    def normalize_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None


class ContestRecordIn(BaseModel):
    """Validated contest record read from the API layer."""

    id: str = Field(..., min_length=1, max_length=128)
    title: str = Field("", max_length=255)
    description: str = Field("", max_length=10000)
    status: ContestStatus = "draft"
    start_at: datetime = Field(..., alias="startAt")
    end_at: Optional[datetime] = Field(None, alias="endAt")
    config: ContestConfigIn = Field(default_factory=ContestConfigIn)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        clean = InputSanitizer.sanitize_identifier(v)
        if not clean:
            raise ValueError("id cannot be empty")
        return clean

    @field_validator("title", "description")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return InputSanitizer.sanitize_string(v, 10000)

    @field_validator("start_at", "end_at")
    @classmethod
    def normalize_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def validate_voting_end(self) -> Self:
        """votingEndAt may live in config or mirror endAt, but one is required"""
        if self.config.voting_end_at is None and self.end_at is None:
            raise ValueError("contest record requires config.votingEndAt or endAt")
        return self


class SubmissionRecordIn(BaseModel):
    """Validated submission record (read-only to the core)."""

    id: str = Field(..., min_length=1, max_length=128)
    contest_id: str = Field(..., alias="contestId", min_length=1, max_length=128)
    user_id: str = Field(..., alias="userId", min_length=1, max_length=128)
    status: SubmissionStatus = "pending"
    votes_count: int = Field(0, alias="votesCount", ge=0)
    created_at: datetime = Field(..., alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("created_at")
    @classmethod
    def normalize_instant(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        """Sanitize string input"""
        if not isinstance(value, str):
            return str(value)[:max_length]

        # Strip whitespace
        value = value.strip()

        # Limit length
        value = value[:max_length]

        # Remove null bytes
        value = value.replace("\0", "")

        return value

    @staticmethod
    def sanitize_identifier(value: str, max_length: int = 128) -> str:
        """Sanitize an opaque id (user, contest, submission)"""
        value = InputSanitizer.sanitize_string(value, max_length)
        return re.sub(r"[\x00-\x1f\x7f\s]", "", value)


def parse_contest_record(record: dict) -> ContestRecordIn:
    """
    Validate a contest record dictionary

    Returns:
        ContestRecordIn: Validated record

    Raises:
        ValueError: If validation fails
    """
    try:
        return ContestRecordIn.model_validate(record)
    except ValidationError as e:
        logger.warning(f"Contest record validation failed: {e}")
        raise ValueError(f"Invalid contest record: {str(e)}")


def parse_submission_record(record: dict) -> SubmissionRecordIn:
    """Validate a submission record dictionary; raises ValueError on failure."""
    try:
        return SubmissionRecordIn.model_validate(record)
    except ValidationError as e:
        logger.warning(f"Submission record validation failed: {e}")
        raise ValueError(f"Invalid submission record: {str(e)}")


# ==================== EXPORT ====================

__all__ = [
    "CONFIG_VERSION",
    "ContestConfig",
    "ContestConfigIn",
    "ContestRecordIn",
    "Currency",
    "InputSanitizer",
    "PrizePlace",
    "ScheduleForm",
    "SubmissionRecordIn",
    "ensure_utc",
    "parse_contest_record",
    "parse_submission_record",
]
