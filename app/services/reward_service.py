"""
Reward catalog and reward ledger.

A ledger row and the balance adjustment it implies are written in the same
transaction, and the balance is computed by the database from its current
value, so concurrent assignments for one client cannot lose an update and a
reader never sees one write without the other.
"""

from flask import current_app
from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.errors import ConflictError, NotFoundError, ValidationError
from app.extensions import db
from app.models import Client, ClientReward, Reward
from app.utils.db_utils import commit
from app.utils.validators import (
    clean_optional_text,
    parse_optional_threshold,
    parse_positive_amount,
)

REWARD_FIELDS = (
    "name",
    "description",
    "pgc_amount",
    "criteria_plastic_kg",
    "criteria_petgas_liters",
)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def list_rewards():
    return db.session.scalars(
        select(Reward).order_by(Reward.created_at.desc(), Reward.name)
    ).all()


def get_reward(reward_id):
    reward = db.session.get(Reward, reward_id)
    if reward is None:
        raise NotFoundError(f"Reward {reward_id} not found")
    return reward


def _apply_reward_fields(reward, fields):
    unknown = [name for name in fields if name not in REWARD_FIELDS]
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    if "name" in fields:
        name = clean_optional_text(fields["name"])
        if not name:
            raise ValidationError("name is required")
        reward.name = name
    if "description" in fields:
        reward.description = clean_optional_text(fields["description"])
    if "pgc_amount" in fields:
        reward.pgc_amount = parse_positive_amount(fields["pgc_amount"], "pgc_amount")
    if "criteria_plastic_kg" in fields:
        reward.criteria_plastic_kg = parse_optional_threshold(
            fields["criteria_plastic_kg"], "criteria_plastic_kg"
        )
    if "criteria_petgas_liters" in fields:
        reward.criteria_petgas_liters = parse_optional_threshold(
            fields["criteria_petgas_liters"], "criteria_petgas_liters"
        )


def create_reward(fields):
    if not clean_optional_text(fields.get("name")):
        raise ValidationError("name is required")
    if fields.get("pgc_amount") is None:
        raise ValidationError("pgc_amount is required")

    reward = Reward()
    _apply_reward_fields(reward, fields)
    db.session.add(reward)
    commit("creating reward")
    current_app.logger.info(f"Created reward {reward.id} ({reward.name})")
    return reward


def update_reward(reward_id, fields):
    reward = get_reward(reward_id)
    _apply_reward_fields(reward, fields)
    commit("updating reward")
    return reward


def delete_reward(reward_id):
    """Delete a catalog entry; refused while any client holds it."""
    reward = get_reward(reward_id)

    held = db.session.scalar(
        select(func.count(ClientReward.id)).where(ClientReward.reward_id == reward_id)
    )
    if held:
        raise ConflictError(
            f"Reward {reward_id} has been awarded {held} time(s) and cannot be deleted",
            reward_id=reward_id,
            awarded_count=held,
        )

    db.session.delete(reward)
    try:
        commit("deleting reward")
    except IntegrityError:
        # Awarded between the check and the delete
        db.session.rollback()
        raise ConflictError(
            f"Reward {reward_id} is referenced by awarded rewards and cannot be deleted",
            reward_id=reward_id,
        )


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


def _require_client(client_id):
    client = db.session.get(Client, client_id)
    if client is None:
        raise NotFoundError(f"Client {client_id} not found")
    return client


def assign_reward(client_id, reward_id, notes=None, awarded_by=None):
    """Grant a reward: add a ledger row and credit its points in one commit."""
    _require_client(client_id)
    reward = get_reward(reward_id)
    amount = reward.pgc_amount

    ledger_entry = ClientReward(
        client_id=client_id,
        reward_id=reward_id,
        pgc_amount=amount,
        notes=clean_optional_text(notes),
        awarded_by=awarded_by,
    )
    try:
        db.session.add(ledger_entry)
        db.session.flush()
        db.session.execute(
            update(Client)
            .where(Client.id == client_id)
            .values(pgc_balance=func.coalesce(Client.pgc_balance, 0) + amount)
            .execution_options(synchronize_session=False)
        )
        commit("assigning reward")
    except SQLAlchemyError:
        db.session.rollback()
        raise

    current_app.logger.info(
        f"Assigned reward {reward_id} (+{amount} PGC) to client {client_id} "
        f"as ledger entry {ledger_entry.id}"
    )
    return ledger_entry


def _find_ledger_entry(client_id, ledger_entry_id):
    ledger_entry = db.session.get(ClientReward, ledger_entry_id)
    if ledger_entry is None or ledger_entry.client_id != client_id:
        return None
    return ledger_entry


def revoke_reward(client_id, ledger_entry_id):
    """
    Remove a ledger row and debit the points it credited, in one commit.

    The balance is only debited when this call's DELETE removed the row, so a
    concurrent revoke of the same entry debits once. The balance is clamped at
    zero.
    """
    ledger_entry = _find_ledger_entry(client_id, ledger_entry_id)
    if ledger_entry is None:
        raise NotFoundError(
            f"Reward ledger entry {ledger_entry_id} not found for client {client_id}"
        )
    amount = ledger_entry.pgc_amount

    try:
        result = db.session.execute(
            delete(ClientReward)
            .where(
                ClientReward.id == ledger_entry_id,
                ClientReward.client_id == client_id,
            )
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise NotFoundError(
                f"Reward ledger entry {ledger_entry_id} not found for client {client_id}"
            )
        db.session.execute(
            update(Client)
            .where(Client.id == client_id)
            .values(
                pgc_balance=case(
                    (Client.pgc_balance <= amount, 0),
                    else_=Client.pgc_balance - amount,
                )
            )
            .execution_options(synchronize_session=False)
        )
        commit("revoking reward")
    except SQLAlchemyError:
        db.session.rollback()
        raise

    current_app.logger.info(
        f"Revoked ledger entry {ledger_entry_id} (-{amount} PGC) from client {client_id}"
    )


def balance_report(client_id):
    """Cached balance next to the ledger total, for spotting drift."""
    client = _require_client(client_id)
    ledger_total, held = db.session.execute(
        select(
            func.coalesce(func.sum(ClientReward.pgc_amount), 0),
            func.count(ClientReward.id),
        ).where(ClientReward.client_id == client_id)
    ).one()
    return {
        "client_id": client_id,
        "pgc_balance": float(client.pgc_balance or 0),
        "ledger_total": float(ledger_total or 0),
        "rewards_held": held,
        "in_sync": float(client.pgc_balance or 0) == float(ledger_total or 0),
    }
