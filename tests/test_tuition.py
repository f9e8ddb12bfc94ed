# tests/test_tuition.py
"""
Tests for Dugsi family pricing and Mahad rate calculation
"""

import pytest

from irshad_admin.models import GraduationStatus, PaymentFrequency, StudentBillingType
from irshad_admin.utils.tuition import (
    calculate_dugsi_rate,
    calculate_mahad_rate,
    format_rate,
    format_rate_display,
    get_rate_breakdown,
    get_rate_tier_description,
    get_stripe_interval,
    should_create_subscription,
    validate_override_amount,
)


class TestDugsiRate:
    """Family-tiered Dugsi pricing"""

    @pytest.mark.parametrize(
        "children,expected",
        [(1, 8000), (2, 16000), (3, 23000), (4, 29000), (5, 35000)],
    )
    def test_tiers(self, children, expected):
        assert calculate_dugsi_rate(children) == expected

    @pytest.mark.parametrize("children", [0, -1, 2.5, None, "3", True])
    def test_invalid_counts_are_free(self, children):
        assert calculate_dugsi_rate(children) == 0

    def test_whole_float_is_accepted(self):
        assert calculate_dugsi_rate(3.0) == 23000

    def test_breakdown_adds_up(self):
        breakdown = get_rate_breakdown(5)
        assert breakdown.first_two == 16000
        assert breakdown.third == 7000
        assert breakdown.fourth_plus == 12000
        assert breakdown.total == calculate_dugsi_rate(5)
        assert breakdown.to_dict()["total"] == 35000

    def test_breakdown_for_small_family(self):
        breakdown = get_rate_breakdown(1)
        assert (breakdown.first_two, breakdown.third, breakdown.fourth_plus) == (8000, 0, 0)

    def test_tier_descriptions(self):
        assert get_rate_tier_description(0) == "No children enrolled"
        assert get_rate_tier_description(1) == "1 child at $80/month"
        assert get_rate_tier_description(3) == "3 children (2 at $80, 1 at $70)"
        assert get_rate_tier_description(6) == "6 children (2 at $80, 1 at $70, 3 at $60)"


class TestOverrideValidation:
    """Admin override amounts"""

    def test_rejects_non_positive(self):
        result = validate_override_amount(0, 2)
        assert result.valid is False
        assert result.reason == "Override amount must be positive"

    def test_rejects_fractional_cents(self):
        result = validate_override_amount(8000.5, 1)
        assert result.valid is False

    def test_warns_above_family_maximum(self):
        result = validate_override_amount(70000, 3)
        assert result.valid is True
        assert "$650.00" in result.reason

    def test_warns_on_large_deviation(self):
        result = validate_override_amount(30000, 1)
        assert result.valid is True
        assert "$80.00" in result.reason

    def test_close_override_has_no_warning(self):
        result = validate_override_amount(15000, 2)
        assert result.valid is True
        assert result.reason is None


class TestMahadRate:
    """Mahad rate matrix"""

    def test_full_time_monthly_non_graduate(self):
        rate = calculate_mahad_rate(
            GraduationStatus.NON_GRADUATE, PaymentFrequency.MONTHLY, StudentBillingType.FULL_TIME
        )
        assert rate == 12000

    def test_graduate_bi_monthly_bills_two_months(self):
        rate = calculate_mahad_rate(
            GraduationStatus.GRADUATE, PaymentFrequency.BI_MONTHLY, StudentBillingType.FULL_TIME
        )
        assert rate == 18000

    def test_part_time_halves_rate(self):
        rate = calculate_mahad_rate(
            GraduationStatus.GRADUATE, PaymentFrequency.MONTHLY, StudentBillingType.PART_TIME
        )
        assert rate == 4750

    def test_scholarship_discount(self):
        rate = calculate_mahad_rate(
            GraduationStatus.NON_GRADUATE,
            PaymentFrequency.BI_MONTHLY,
            StudentBillingType.FULL_TIME_SCHOLARSHIP,
        )
        assert rate == (11000 - 3000) * 2

    def test_defaults_when_status_and_frequency_missing(self):
        assert calculate_mahad_rate(None, None, StudentBillingType.FULL_TIME) == 12000

    @pytest.mark.parametrize("billing_type", [None, StudentBillingType.EXEMPT])
    def test_exempt_pays_nothing(self, billing_type):
        assert calculate_mahad_rate(GraduationStatus.GRADUATE, PaymentFrequency.MONTHLY, billing_type) == 0
        assert should_create_subscription(billing_type) is False

    def test_subscription_needed_for_paying_types(self):
        assert should_create_subscription(StudentBillingType.PART_TIME) is True

    def test_stripe_interval(self):
        assert get_stripe_interval(PaymentFrequency.BI_MONTHLY) == {"interval": "month", "interval_count": 2}
        assert get_stripe_interval() == {"interval": "month", "interval_count": 1}


def test_format_rate():
    assert format_rate(8000) == "$80.00"
    assert format_rate(123456) == "$1,234.56"
    assert format_rate_display(7000) == "$70.00/month"
