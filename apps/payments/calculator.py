"""
Entry pricing.

Amounts are integer cents throughout; they only become ``"12.34"`` strings
through :func:`format_cents`. Nothing here touches the database, so the same
inputs always give the same result whether quoting a payer or checking a
provider notification.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .exceptions import InvalidInput

PROCESSING_FEE_RATE_PER_MILLE = 35  # 3.5%
MINIMUM_PROCESSING_FEE_CENTS = 200

PERFORMANCE_TYPES = ("Solo", "Duet", "Trio", "Group")


@dataclass(frozen=True)
class FeeSchedule:
    registration: int
    solo_packages: dict[int, int]
    solo_additional: int
    duet_trio_per_dancer: int
    group_per_dancer: int


_NATIONALS_SCHEDULE = FeeSchedule(
    registration=500,
    solo_packages={1: 500, 2: 1000, 3: 1500, 4: 2000, 5: 2000},
    solo_additional=500,
    duet_trio_per_dancer=20000,
    group_per_dancer=18000,
)

FEE_SCHEDULES: dict[str, FeeSchedule] = {
    "Water (Competitive)": _NATIONALS_SCHEDULE,
    "Fire (Advanced)": _NATIONALS_SCHEDULE,
    "Nationals": _NATIONALS_SCHEDULE,
}

MASTERY_ALIASES = {
    "Water (Competition)": "Water (Competitive)",
}


@dataclass(frozen=True)
class EntryFee:
    registration_fee: int
    performance_fee: int
    breakdown: str
    registration_breakdown: str = ""

    @property
    def total_fee(self) -> int:
        return self.registration_fee + self.performance_fee

    def as_dict(self) -> dict[str, str]:
        return {
            "registration_fee": format_cents(self.registration_fee),
            "performance_fee": format_cents(self.performance_fee),
            "total_fee": format_cents(self.total_fee),
            "breakdown": self.breakdown,
            "registration_breakdown": self.registration_breakdown,
        }


@dataclass(frozen=True)
class FeeBreakdown:
    base_amount: int
    processing_fee: int

    @property
    def total_amount(self) -> int:
        return self.base_amount + self.processing_fee

    def as_dict(self) -> dict[str, str]:
        return {
            "base_amount": format_cents(self.base_amount),
            "processing_fee": format_cents(self.processing_fee),
            "total_amount": format_cents(self.total_amount),
        }


def format_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d}"


def to_cents(amount: object) -> int:
    """Convert a user supplied amount (str, int, Decimal) to cents, rounding half-up."""
    if isinstance(amount, float):
        amount = repr(amount)
    try:
        value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise InvalidInput(f"Invalid amount: {amount!r}") from exc
    if not value.is_finite():
        raise InvalidInput(f"Invalid amount: {amount!r}")
    return int(value * 100)


def to_decimal(cents: int) -> Decimal:
    return Decimal(format_cents(cents))


def resolve_mastery_level(mastery_level: str) -> str:
    name = MASTERY_ALIASES.get(mastery_level, mastery_level)
    if name not in FEE_SCHEDULES:
        raise InvalidInput(f"Unknown mastery level: {mastery_level!r}")
    return name


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


def _solo_fee(schedule: FeeSchedule, solo_count: int) -> tuple[int, str]:
    if solo_count == 1:
        return schedule.solo_packages[1], "1 Solo"
    if solo_count in schedule.solo_packages:
        return schedule.solo_packages[solo_count], f"{solo_count} Solos Package"
    # Beyond the largest package: the 3-solo package plus a flat rate per extra solo.
    extra = solo_count - 3
    fee = schedule.solo_packages[3] + extra * schedule.solo_additional
    return fee, f"3 Solos Package + {_plural(extra, 'Additional Solo')}"


def calculate_entry_fee(
    mastery_level: str,
    performance_type: str,
    participant_count: int,
    solo_count: int = 1,
    include_registration: bool = False,
) -> EntryFee:
    schedule = FEE_SCHEDULES[resolve_mastery_level(mastery_level)]

    if performance_type not in PERFORMANCE_TYPES:
        raise InvalidInput(f"Unknown performance type: {performance_type!r}")
    if isinstance(participant_count, bool) or not isinstance(participant_count, int) or participant_count <= 0:
        raise InvalidInput("Participant count must be a positive integer")
    if isinstance(solo_count, bool) or not isinstance(solo_count, int) or solo_count <= 0:
        raise InvalidInput("Solo count must be a positive integer")

    if performance_type == "Solo":
        performance_fee, breakdown = _solo_fee(schedule, solo_count)
    elif performance_type in ("Duet", "Trio"):
        performance_fee = schedule.duet_trio_per_dancer * participant_count
        breakdown = (
            f"{performance_type} (R{format_cents(schedule.duet_trio_per_dancer)} x "
            f"{_plural(participant_count, 'dancer')})"
        )
    else:
        performance_fee = schedule.group_per_dancer * participant_count
        breakdown = f"Group (R{format_cents(schedule.group_per_dancer)} x {_plural(participant_count, 'dancer')})"

    registration_fee = 0
    registration_breakdown = ""
    if include_registration:
        registration_fee = schedule.registration
        registration_breakdown = f"Registration fee ({resolve_mastery_level(mastery_level)})"

    return EntryFee(
        registration_fee=registration_fee,
        performance_fee=performance_fee,
        breakdown=breakdown,
        registration_breakdown=registration_breakdown,
    )


def calculate_processing_fees(base_amount: int) -> FeeBreakdown:
    """
    Add the payment processing fee: 3.5% of the base, at least R2.00,
    rounded half-up to the cent.
    """
    if isinstance(base_amount, bool) or not isinstance(base_amount, int) or base_amount <= 0:
        raise InvalidInput("Base amount must be a positive number of cents")
    percentage_fee = (base_amount * PROCESSING_FEE_RATE_PER_MILLE + 500) // 1000
    return FeeBreakdown(
        base_amount=base_amount,
        processing_fee=max(percentage_fee, MINIMUM_PROCESSING_FEE_CENTS),
    )
