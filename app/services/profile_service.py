"""
Client profile store.

Every authenticated identity owns exactly one ``Client`` row, created lazily
on first login. The primary key is the identity subject, so two concurrent
first logins race on the key constraint rather than on an application check.
"""

from flask import current_app
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from app.errors import (
    ConflictError,
    NotFoundError,
    PartialFailureError,
    TransientError,
    UploadError,
    ValidationError,
)
from app.extensions import db
from app.models import Client, MitigationEntry, MitigationImage
from app.utils.db_utils import commit
from app.utils.retry import retry_transient
from app.utils.s3_utils import get_storage
from app.utils.validators import clean_optional_text, parse_amount

SELF_EDITABLE_FIELDS = ("full_name", "solana_wallet", "bnb_wallet")
ADMIN_EDITABLE_FIELDS = SELF_EDITABLE_FIELDS + ("pgc_balance",)
IMMUTABLE_FIELDS = ("id", "email", "created_at", "updated_at")


def _find_client(client_id):
    return db.session.get(Client, client_id)


def get_client(client_id):
    client = _find_client(client_id)
    if not client:
        raise NotFoundError(f"Client {client_id} not found")
    return client


def get_or_create_profile(identity):
    client = _find_client(identity.id)
    if client:
        return client

    client = Client(
        id=identity.id,
        email=identity.email,
        full_name=identity.full_name,
        pgc_balance=0,
    )
    db.session.add(client)
    try:
        commit("creating client profile")
    except IntegrityError:
        # Another login for the same identity inserted first
        db.session.rollback()
        client = _find_client(identity.id)
        if client is None:
            raise ConflictError(
                f"Email {identity.email} is already linked to another client"
            )
        current_app.logger.info(f"Profile for {identity.id} already existed, re-fetched")
        return client

    current_app.logger.info(f"Created client profile {identity.id}")
    return client


def _apply_fields(client, fields, allowed):
    blocked = [name for name in fields if name in IMMUTABLE_FIELDS]
    if blocked:
        raise ValidationError(f"Fields cannot be changed: {', '.join(sorted(blocked))}")

    unknown = [name for name in fields if name not in allowed]
    if unknown:
        raise ValidationError(f"Unknown or read-only fields: {', '.join(sorted(unknown))}")

    for name, value in fields.items():
        if name == "pgc_balance":
            balance = parse_amount(value, "pgc_balance")
            if balance < 0:
                raise ValidationError("pgc_balance cannot be negative")
            client.pgc_balance = balance
        else:
            setattr(client, name, clean_optional_text(value))


def update_profile(client_id, fields):
    """Self-service update of the display name and wallet addresses."""
    client = _find_client(client_id)
    if not client:
        raise ValidationError(f"No profile exists for {client_id}")

    _apply_fields(client, fields, SELF_EDITABLE_FIELDS)
    commit("updating client profile")
    return client


def admin_update_client(client_id, fields):
    client = get_client(client_id)
    _apply_fields(client, fields, ADMIN_EDITABLE_FIELDS)
    commit("updating client")
    return client


def list_clients(search=None, page=1, per_page=15):
    stmt = select(Client)
    count_stmt = select(func.count(Client.id))
    if search:
        pattern = f"%{search.strip().lower()}%"
        condition = or_(
            func.lower(Client.email).like(pattern),
            func.lower(func.coalesce(Client.full_name, "")).like(pattern),
        )
        stmt = stmt.where(condition)
        count_stmt = count_stmt.where(condition)

    total = db.session.scalar(count_stmt) or 0
    clients = db.session.scalars(
        stmt.order_by(Client.created_at.desc(), Client.email)
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()
    return clients, total


def delete_client(client_id):
    """
    Delete a client with every owned record, then remove their stored evidence.

    Rows go first; files that cannot be removed afterwards are reported as a
    partial failure listing the orphaned paths.
    """
    client = get_client(client_id)
    storage = get_storage()

    images = db.session.scalars(
        select(MitigationImage)
        .join(MitigationEntry, MitigationImage.entry_id == MitigationEntry.id)
        .where(MitigationEntry.client_id == client_id)
    ).all()
    paths = [img.storage_path or storage.path_from_url(img.image_url) for img in images]

    db.session.delete(client)
    commit("deleting client")

    orphaned = []
    for path in paths:
        try:
            retry_transient(storage.delete, path)
        except (UploadError, TransientError) as e:
            current_app.logger.error(f"Could not delete stored file {path}: {e}")
            orphaned.append(path)

    if orphaned:
        current_app.logger.error(
            f"Client {client_id} deleted but {len(orphaned)} stored file(s) remain: {orphaned}"
        )
        raise PartialFailureError(
            "Client deleted but some evidence files could not be removed from storage",
            client_id=client_id,
            orphaned_paths=orphaned,
        )
    current_app.logger.info(f"Deleted client {client_id} and {len(paths)} stored file(s)")
