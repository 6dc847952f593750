"""
Admin review of mitigation entries.

Status moves through an explicit transition table instead of a free
overwrite. Approved and rejected entries must be re-opened to pending before
receiving the other outcome. Every applied change is appended to the entry's
status history.
"""

import enum

from flask import current_app

from app.errors import ConflictError, ValidationError
from app.extensions import db
from app.models import MitigationStatusHistory
from app.services.activity_service import get_mitigation_entry
from app.utils.db_utils import commit
from app.utils.validators import parse_positive_amount


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


ALLOWED_TRANSITIONS = {
    ReviewStatus.PENDING: {ReviewStatus.APPROVED, ReviewStatus.REJECTED},
    ReviewStatus.APPROVED: {ReviewStatus.PENDING},
    ReviewStatus.REJECTED: {ReviewStatus.PENDING},
}


def parse_status(value):
    try:
        return ReviewStatus(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in ReviewStatus)
        raise ValidationError(f"status must be one of: {allowed}")


def transition(current, target):
    """
    Return the status to store, or None when nothing changes.

    Raises ConflictError for a move the table does not allow.
    """
    current = ReviewStatus(current)
    target = ReviewStatus(target)
    if current == target:
        return None
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ConflictError(
            f"Cannot change status from {current.value} to {target.value}; "
            f"set it back to pending first",
            current_status=current.value,
            requested_status=target.value,
        )
    return target


def update_mitigation_entry(entry_id, kg=None, status=None, changed_by=None):
    """Overwrite the kilograms and/or move the review status of one entry."""
    entry = get_mitigation_entry(entry_id)

    if kg is None and status is None:
        raise ValidationError("Nothing to update: provide mitigated_plastic_kg or status")

    new_kg = parse_positive_amount(kg, "mitigated_plastic_kg") if kg is not None else None
    new_status = transition(entry.status, parse_status(status)) if status is not None else None

    if new_kg is not None:
        entry.mitigated_plastic_kg = new_kg

    if new_status is not None:
        db.session.add(
            MitigationStatusHistory(
                entry_id=entry.id,
                from_status=entry.status,
                to_status=new_status.value,
                changed_by=changed_by,
            )
        )
        entry.status = new_status.value

    commit("updating mitigation entry")

    if new_status is not None:
        current_app.logger.info(
            f"Mitigation entry {entry_id} moved to {new_status.value} by {changed_by}"
        )
    return entry
