"""Pure per-device decision: which category should this device carry?"""
from __future__ import annotations

from typing import Iterable, Mapping, Optional

from intune.models import Device, UserProfile
from pipeline.state import Decision, DecisionKind


def has_no_category(label: Optional[str], no_category_labels: Iterable[str]) -> bool:
    return not label or label in set(no_category_labels)


def decide(
    device: Device,
    primary_user_id: Optional[str],
    profile: Optional[UserProfile],
    catalog: Mapping[str, str],
    no_category_labels: Iterable[str] = ("Unassigned", "Unknown"),
) -> Decision:
    """Classify a device without touching the network.

    Department and category names are compared verbatim, so "Sales " never
    matches "Sales".
    """

    if not primary_user_id:
        return Decision(kind=DecisionKind.NO_PRIMARY_USER)

    department = profile.department if profile is not None else None
    if not department:
        return Decision(kind=DecisionKind.NO_DEPARTMENT)

    category_id = catalog.get(department)
    if category_id is None:
        return Decision(kind=DecisionKind.NO_MATCHING_CATEGORY, department=department)

    current = device.category
    if not has_no_category(current, no_category_labels) and current == department:
        return Decision(kind=DecisionKind.ALREADY_CORRECT, department=department, category_id=category_id)

    return Decision(kind=DecisionKind.UPDATE_REQUIRED, department=department, category_id=category_id)
