"""
Cancellation policy evaluator.
"""
from datetime import datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

from ..utils.models import (
    CancellationPolicy, CancellationPolicyType, CancellationOutcome, CanonicalBooking
)
from config.settings import sync_config, app_config


SECONDS_PER_DAY = 86400


class CancellationPolicyEvaluator:
    """Pure refund/fee calculator; bookings check in at a fixed hour."""

    def __init__(self, check_in_hour: Optional[int] = None, timezone_name: Optional[str] = None):
        self.check_in_hour = sync_config.check_in_hour if check_in_hour is None else check_in_hour
        self.tz = ZoneInfo(timezone_name or app_config.default_timezone)

    def days_before_check_in(self, booking: CanonicalBooking, requested_at: datetime) -> float:
        """Fractional days between the request and the standard check-in time."""
        check_in_at = datetime.combine(booking.check_in, time(self.check_in_hour), tzinfo=self.tz)
        if requested_at.tzinfo is None:
            requested_at = requested_at.replace(tzinfo=self.tz)
        return (check_in_at - requested_at).total_seconds() / SECONDS_PER_DAY

    def evaluate(
        self,
        policy: CancellationPolicy,
        booking: CanonicalBooking,
        requested_at: datetime,
    ) -> CancellationOutcome:
        """
        Compute the refund for cancelling `booking` at `requested_at`.

        Args:
            policy: Cancellation policy of the booking
            booking: Booking being cancelled (check-in date and total price are used)
            requested_at: When the guest asked to cancel

        Returns:
            CancellationOutcome with refund percent, refund amount, fee and explanation
        """
        total = booking.total_price or 0.0
        days_before = self.days_before_check_in(booking, requested_at)

        if days_before < 0:
            return self._outcome(total, 0, "Check-in date has already passed. No refund.")

        policy_type = policy.policy_type
        if policy_type == CancellationPolicyType.FLEXIBLE:
            if days_before >= 1:
                return self._outcome(total, 100, "Free cancellation (Flexible: more than 24h before check-in).")
            return self._outcome(total, 0, "Late cancellation (Flexible: less than 24h before check-in). No refund.")

        if policy_type == CancellationPolicyType.MODERATE:
            if days_before >= 5:
                return self._outcome(total, 100, "Free cancellation (Moderate: 5 or more days before check-in).")
            return self._outcome(total, 50, "Late cancellation (Moderate: less than 5 days before check-in). 50% refund.")

        if policy_type == CancellationPolicyType.STRICT:
            return self._outcome(total, 0, "Strict policy. No refund.")

        if not policy.rules:
            return self._outcome(total, 0, "No custom rules defined. No refund.")

        qualifying = [rule for rule in policy.rules if rule.days_before <= days_before]
        if not qualifying:
            return self._outcome(total, 0, "Out of custom cancellation window. No refund.")

        rule = max(qualifying, key=lambda r: r.days_before)
        return self._outcome(
            total,
            rule.refund_percent,
            f"Custom rule applied: cancelled at least {rule.days_before:g} days before check-in.",
        )

    @staticmethod
    def _outcome(total: float, refund_percent: float, explanation: str) -> CancellationOutcome:
        refund_amount = round(total * refund_percent / 100, 2)
        return CancellationOutcome(
            refund_percent=refund_percent,
            refund_amount=refund_amount,
            fee=round(total - refund_amount, 2),
            explanation=explanation,
        )
