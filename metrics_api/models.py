"""
Data models used across the service.
"""
import math
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

COUNTER_FIELDS = ("views", "likes", "shares", "followers")


@dataclass
class Counters:
    """Engagement counters for one owner/platform pair."""
    views: int = 0
    likes: int = 0
    shares: int = 0
    followers: int = 0   # subscribers on YouTube

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class AuthToken:
    """Token pair issued by Google's OAuth2 token endpoint."""
    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None   # UTC
    scope: Optional[str] = None
    token_type: str = "Bearer"

    @classmethod
    def from_token_response(cls, data: dict, now: Optional[datetime] = None) -> "AuthToken":
        now = now or datetime.now(timezone.utc)
        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expiry=now + timedelta(seconds=int(expires_in)) if expires_in else None,
            scope=data.get("scope"),
            token_type=data.get("token_type") or "Bearer",
        )

    @classmethod
    def from_dict(cls, data: dict) -> "AuthToken":
        expiry = data.get("expiry")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expiry=datetime.fromisoformat(expiry.replace("Z", "+00:00")) if expiry else None,
            scope=data.get("scope"),
            token_type=data.get("token_type") or "Bearer",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry": self.expiry.astimezone(timezone.utc).isoformat().replace("+00:00", "Z") if self.expiry else None,
            "scope": self.scope,
            "token_type": self.token_type,
        }


def parse_count(value: Any) -> int:
    """
    Integer-parse a counter value the way clients send it.

    Accepts ints, floats (truncated toward zero) and numeric strings
    ("42", " 7 ", "12.9"). Everything else raises ValueError.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{value!r} is not a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{value!r} is not a finite number")
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            raise ValueError(f"{value!r} is not a number") from None
        if not math.isfinite(number):
            raise ValueError(f"{value!r} is not a finite number")
        return int(number)
    raise ValueError(f"{value!r} is not a number")


class MetricsUpdate(BaseModel):
    """POST body for /api/metrics/{owner}/{platform}. Unknown keys are ignored."""
    model_config = ConfigDict(extra="ignore")

    views: Optional[int] = None
    likes: Optional[int] = None
    shares: Optional[int] = None
    followers: Optional[int] = None

    @field_validator(*COUNTER_FIELDS, mode="before")
    @classmethod
    def _coerce_count(cls, value: Any) -> int:
        return parse_count(value)

    def fields(self) -> dict[str, int]:
        """Only the counters the client actually sent."""
        return self.model_dump(exclude_unset=True)
