from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Mapping, Optional

import pytz

APPROVAL_TIERS = (1, 2, 3)

# Role that may act on a tier when no explicit approver is configured for it
TIER_FALLBACK_ROLES = {
    1: "manager",
    2: "director",
    3: "owner",
}

TIER_LABELS = {
    1: "Manager",
    2: "Director",
    3: "Owner",
}

URGENCY_ORDER = {"high": 0, "medium": 1, "low": 2}

SECONDS_PER_DAY = 24 * 60 * 60


def approver_field(tier: int) -> str:
    return f"tier_{tier}_approver_user_id"


def approval_tier_for(metadata: Optional[Mapping]) -> Optional[int]:
    """
    Approval tier recorded on a purchase order. Missing means tier 1.
    Returns None for a value that is not a number, which nobody can approve.
    """
    value = (metadata or {}).get("approval_tier")
    if value is None or value == "":
        return 1
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def can_approve(
    configuration: Mapping[str, str],
    user_id: Optional[str],
    user_role: Optional[str],
    required_tier: Optional[int],
) -> bool:
    """
    Whether the user may approve or reject a purchase order of the given tier.

    An explicit approver configured for the tier wins. The role fallback is
    only consulted when the tier has no explicit approver at all, so a
    configured approver locks out everyone else, whatever their role.
    """
    if required_tier not in APPROVAL_TIERS:
        return False

    field = approver_field(required_tier)
    if field in configuration:
        return bool(user_id) and configuration[field] == user_id

    fallback_role = TIER_FALLBACK_ROLES[required_tier]
    return bool(user_role) and user_role.strip().lower() == fallback_role


def authorized_tiers(configuration: Mapping[str, str], user_id: Optional[str], user_role: Optional[str]) -> List[int]:
    return [tier for tier in APPROVAL_TIERS if can_approve(configuration, user_id, user_role, tier)]


def approval_level_label(tier: Optional[int]) -> Optional[str]:
    return TIER_LABELS.get(tier)


def days_pending(created_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    if created_at is None:
        return 0
    now = now or datetime.now(pytz.utc)
    # SQLite hands back naive datetimes; they were written as UTC
    if created_at.tzinfo is None:
        created_at = pytz.utc.localize(created_at)
    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    elapsed = (now - created_at).total_seconds()
    return max(int(elapsed // SECONDS_PER_DAY), 0)


def urgency_for(days: int) -> str:
    if days > 3:
        return "high"
    if days > 1:
        return "medium"
    return "low"


def pending_sort_key(row: Dict):
    """High urgency first, then the largest amounts."""
    amount = row.get("totalAmount") or 0
    return (URGENCY_ORDER.get(row.get("urgency"), len(URGENCY_ORDER)), -Decimal(str(amount)))


def tier_for_amount(amount: Decimal, auto_approval_threshold: Decimal, tier_1_threshold: Decimal, tier_2_threshold: Decimal) -> Optional[int]:
    """
    Approval tier for an order total. None means the amount is under the
    auto-approval threshold and needs no approval at all.
    """
    if amount <= auto_approval_threshold:
        return None
    if amount <= tier_1_threshold:
        return 1
    if amount <= tier_2_threshold:
        return 2
    return 3
