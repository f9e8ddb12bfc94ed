"""
Tuition rate calculations for both programs. All amounts are in cents.

Dugsi uses family-tiered pricing: the first two children pay the base rate,
the third child a reduced rate and every further child the lowest rate.
Mahad prices by graduation status, billing frequency and billing type.
"""

from __future__ import annotations

from dataclasses import dataclass

from irshad_admin.models.enums import GraduationStatus, PaymentFrequency, StudentBillingType

# Dugsi family tiers
DUGSI_BASE_RATE = 8000
DUGSI_THIRD_CHILD_RATE = 7000
DUGSI_FOURTH_PLUS_RATE = 6000
MAX_EXPECTED_FAMILY_RATE = 65000
OVERRIDE_DEVIATION_THRESHOLD = 0.5

# Mahad per-month rates keyed by graduation status and frequency
MAHAD_RATES = {
    GraduationStatus.NON_GRADUATE: {
        PaymentFrequency.MONTHLY: 12000,
        PaymentFrequency.BI_MONTHLY: 11000,
    },
    GraduationStatus.GRADUATE: {
        PaymentFrequency.MONTHLY: 9500,
        PaymentFrequency.BI_MONTHLY: 9000,
    },
}
SCHOLARSHIP_DISCOUNT = 3000


@dataclass
class RateBreakdown:
    """Amount contributed by each Dugsi pricing tier"""

    first_two: int
    third: int
    fourth_plus: int
    total: int

    def to_dict(self) -> dict:
        return {
            "first_two": self.first_two,
            "third": self.third,
            "fourth_plus": self.fourth_plus,
            "total": self.total,
        }


@dataclass
class OverrideValidation:
    valid: bool
    reason: str | None = None


def _is_whole(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def calculate_dugsi_rate(child_count) -> int:
    """Monthly family rate in cents for ``child_count`` enrolled children."""

    if not _is_whole(child_count) or child_count <= 0:
        return 0
    child_count = int(child_count)
    if child_count <= 2:
        return DUGSI_BASE_RATE * child_count
    total = DUGSI_BASE_RATE * 2 + DUGSI_THIRD_CHILD_RATE
    total += DUGSI_FOURTH_PLUS_RATE * (child_count - 3)
    return total


def get_rate_breakdown(child_count) -> RateBreakdown:
    if not _is_whole(child_count) or child_count <= 0:
        return RateBreakdown(0, 0, 0, 0)
    child_count = int(child_count)
    first_two = DUGSI_BASE_RATE * min(child_count, 2)
    third = DUGSI_THIRD_CHILD_RATE if child_count >= 3 else 0
    fourth_plus = DUGSI_FOURTH_PLUS_RATE * max(child_count - 3, 0)
    return RateBreakdown(first_two, third, fourth_plus, first_two + third + fourth_plus)


def validate_override_amount(amount, child_count) -> OverrideValidation:
    """
    Check an admin-entered override against the calculated family rate.

    Hard failures (non-positive, fractional cents) are invalid; amounts above
    the family maximum or far from the calculated rate are valid but carry a
    warning reason.
    """

    if amount is None or isinstance(amount, bool) or amount <= 0:
        return OverrideValidation(False, "Override amount must be positive")
    if not _is_whole(amount):
        return OverrideValidation(False, "Override amount must be a whole number")
    if amount > MAX_EXPECTED_FAMILY_RATE:
        return OverrideValidation(
            True, f"Override exceeds typical maximum rate of {format_rate(MAX_EXPECTED_FAMILY_RATE)}"
        )

    calculated = calculate_dugsi_rate(child_count)
    if calculated > 0:
        deviation = abs(amount - calculated) / calculated
        if deviation > OVERRIDE_DEVIATION_THRESHOLD:
            return OverrideValidation(
                True, f"Override differs significantly from calculated rate ({format_rate(calculated)})"
            )
    return OverrideValidation(True)


def format_rate(cents) -> str:
    """Format cents as a dollar string, e.g. 8000 -> '$80.00'."""
    return f"${cents / 100:,.2f}"


def format_rate_display(cents) -> str:
    return f"{format_rate(cents)}/month"


def get_rate_tier_description(child_count) -> str:
    if not _is_whole(child_count) or child_count <= 0:
        return "No children enrolled"
    child_count = int(child_count)
    if child_count == 1:
        return "1 child at $80/month"
    if child_count == 2:
        return "2 children at $80/month each"
    if child_count == 3:
        return "3 children (2 at $80, 1 at $70)"
    return f"{child_count} children (2 at $80, 1 at $70, {child_count - 3} at $60)"


def calculate_mahad_rate(graduation_status, payment_frequency, billing_type) -> int:
    """
    Amount in cents billed per payment for a Mahad student.

    No billing type or EXEMPT pays nothing. Graduation status defaults to
    NON_GRADUATE and frequency to MONTHLY. Part-time halves the monthly rate
    (rounded down), scholarships subtract a fixed discount, and bi-monthly
    billing charges two months at once.
    """

    if billing_type is None or billing_type == StudentBillingType.EXEMPT:
        return 0

    graduation_status = graduation_status or GraduationStatus.NON_GRADUATE
    payment_frequency = payment_frequency or PaymentFrequency.MONTHLY

    rate = MAHAD_RATES[graduation_status][payment_frequency]
    if billing_type == StudentBillingType.PART_TIME:
        rate = rate // 2
    elif billing_type == StudentBillingType.FULL_TIME_SCHOLARSHIP:
        rate = rate - SCHOLARSHIP_DISCOUNT

    if payment_frequency == PaymentFrequency.BI_MONTHLY:
        rate = rate * 2
    return rate


def get_stripe_interval(payment_frequency=None) -> dict:
    """Stripe recurring interval for a Mahad payment frequency (Dugsi is always monthly)."""
    count = 2 if payment_frequency == PaymentFrequency.BI_MONTHLY else 1
    return {"interval": "month", "interval_count": count}


def should_create_subscription(billing_type) -> bool:
    return billing_type is not None and billing_type != StudentBillingType.EXEMPT
