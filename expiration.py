"""Paste expiration tokens.

The creation form sends a short token such as ``"10m"``, ``"1h"``, ``"7d"``
or ``"never"``. ``parse`` turns it into an ``Expiration`` and ``to_absolute``
pins it to a wall-clock instant once, when the paste is created.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


class Unit(enum.Enum):
    NEVER = "never"
    MINUTES = "m"
    HOURS = "h"
    DAYS = "d"


@dataclass(frozen=True)
class Expiration:
    unit: Unit = Unit.NEVER
    amount: int = 0

    @property
    def is_never(self) -> bool:
        return self.unit is Unit.NEVER

    def to_timedelta(self) -> Optional[timedelta]:
        if self.unit is Unit.MINUTES:
            return timedelta(minutes=self.amount)
        if self.unit is Unit.HOURS:
            return timedelta(hours=self.amount)
        if self.unit is Unit.DAYS:
            return timedelta(days=self.amount)
        return None


NEVER = Expiration()

# Largest magnitude a token may carry (signed 64-bit); anything above is
# unparseable.
MAX_AMOUNT = 2**63 - 1

# Choices offered by the creation form: (token, label)
EXPIRATION_CHOICES = [
    ("never", "Never"),
    ("10m", "10 minutes"),
    ("1h", "1 hour"),
    ("1d", "1 day"),
    ("7d", "1 week"),
    ("30d", "1 month"),
]


def utc_now() -> datetime:
    """Naive UTC now. Everything stored in the database is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse(token: Optional[str]) -> Expiration:
    """Parse an expiration token like ``"30m"``, ``"2h"`` or ``"7d"``.

    Anything that is empty, ``"never"``, shorter than two characters or ends
    in an unknown unit means no expiry. A prefix that is not a plain
    non-negative integer up to ``MAX_AMOUNT`` counts as ``0`` rather than
    failing, so ``"xm"`` is ``Minutes(0)``.
    """
    if not token or token == "never" or len(token) < 2:
        return NEVER

    prefix, suffix = token[:-1], token[-1]
    try:
        unit = Unit(suffix)
    except ValueError:
        return NEVER
    return Expiration(unit, _parse_amount(prefix))


def _parse_amount(prefix: str) -> int:
    if not (prefix.isascii() and prefix.isdigit()):
        return 0
    try:
        amount = int(prefix)
    except ValueError:
        # past the interpreter's int/str conversion limit
        return 0
    return amount if amount <= MAX_AMOUNT else 0


def to_absolute(expiration: Expiration, now: datetime) -> Optional[datetime]:
    """Absolute expiry for ``expiration`` counted from ``now``; ``None`` = never."""
    try:
        delta = expiration.to_timedelta()
        if delta is None:
            return None
        return now + delta
    except OverflowError:
        # within MAX_AMOUNT but beyond datetime.max, treat as no expiry
        return None


def expires_in(expires_at: Optional[datetime], now: datetime) -> Optional[str]:
    """Human readable time left before ``expires_at``, for the paste page."""
    if expires_at is None:
        return None

    seconds = int((expires_at - now).total_seconds())
    if seconds <= 0:
        return "Expired"

    days, rest = divmod(seconds, 24 * 3600)
    if days > 0:
        return f"{days} days"
    hours = rest // 3600
    if hours > 0:
        return f"{hours} hours"
    return f"{rest // 60} minutes"
