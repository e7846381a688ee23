from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class CreditTier:
    hours: float
    credits: int


def normalize_tiers(raw_config) -> List[CreditTier]:
    """Turn the stored ``credits_config`` JSON into CreditTier records.

    Accepts dicts with ``hours``/``credits`` keys or CreditTier objects.
    Raises ValueError for negative hours or non-numeric values.
    """
    tiers = []
    for item in raw_config or []:
        if isinstance(item, CreditTier):
            tier = item
        else:
            tier = CreditTier(hours=float(item["hours"]), credits=int(item["credits"]))
        if tier.hours < 0:
            raise ValueError(f"Credit tier hours must be >= 0, got {tier.hours}")
        tiers.append(tier)
    return tiers


def compute_credits(total_hours, tiers) -> int:
    """Credits for the highest tier whose threshold ``total_hours`` reaches.

    Tiers are checked from the largest threshold down. ``sorted`` is stable,
    so when two tiers share a threshold the one listed first wins.
    """
    ordered = sorted(normalize_tiers(tiers), key=lambda t: t.hours, reverse=True)
    for tier in ordered:
        if tier.hours <= total_hours:
            return tier.credits
    return 0


def evaluate_approval(status, computed_credits) -> int:
    # credits are only granted together with an approval
    if status == "approved":
        return computed_credits
    return 0


def total_hours(submissions: Iterable) -> float:
    total = 0
    for sub in submissions:
        hours = sub.get("hours") if isinstance(sub, dict) else getattr(sub, "hours", 0)
        total += hours or 0
    return total
