"""
Activity log: plastic mitigation and Petgas consumption entries.

Mitigation submission uploads evidence first and only then writes rows.
An upload failure deletes whatever this call already uploaded, so a failed
submission leaves neither an entry nor stray files behind. Once the entry
row is committed it is kept even if its image rows cannot be written; that
window is reported as a partial failure.
"""

import uuid
from collections import namedtuple

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from werkzeug.utils import secure_filename

from app.errors import (
    NotFoundError,
    PartialFailureError,
    TransientError,
    UploadError,
    ValidationError,
)
from app.extensions import db
from app.models import (
    Client,
    ClientReward,
    ConsumptionEntry,
    MitigationEntry,
    MitigationImage,
    REVIEW_STATUSES,
    Reward,
)
from app.utils.db_utils import commit
from app.utils.retry import retry_transient
from app.utils.s3_utils import get_storage
from app.utils.validators import parse_optional_datetime, parse_positive_amount

ImageUpload = namedtuple("ImageUpload", ["filename", "data", "content_type"])


def _require_client(client_id):
    if db.session.get(Client, client_id) is None:
        raise NotFoundError(f"Client {client_id} not found")


def evidence_path(client_id, filename):
    name = secure_filename(filename or "") or "image"
    return f"{client_id}/{uuid.uuid4().hex}_{name}"


def _discard_uploads(storage, paths):
    """Best-effort removal of files uploaded by a submission that did not complete."""
    orphaned = []
    for path in paths:
        try:
            retry_transient(storage.delete, path)
        except (UploadError, TransientError) as e:
            current_app.logger.error(f"Cleanup could not delete {path}: {e.message}")
            orphaned.append(path)
    return orphaned


def submit_mitigation(client_id, kg, images=()):
    kg = parse_positive_amount(kg, "mitigated_plastic_kg")
    _require_client(client_id)
    storage = get_storage()

    uploaded = []
    try:
        for image in images:
            path = evidence_path(client_id, image.filename)
            url = retry_transient(storage.put, path, image.data, image.content_type)
            uploaded.append((path, url))
    except (UploadError, TransientError) as e:
        orphaned = _discard_uploads(storage, [path for path, _ in uploaded])
        current_app.logger.warning(
            f"Mitigation upload failed for client {client_id}: {e.message}"
        )
        error_class = TransientError if isinstance(e, TransientError) else UploadError
        raise error_class(
            f"Image upload failed: {e.message}",
            details=e.details,
            orphaned_paths=orphaned,
        )

    entry = MitigationEntry(client_id=client_id, mitigated_plastic_kg=kg, status="pending")
    db.session.add(entry)
    try:
        commit("creating mitigation entry")
    except SQLAlchemyError:
        db.session.rollback()
        _discard_uploads(storage, [path for path, _ in uploaded])
        raise
    except TransientError:
        _discard_uploads(storage, [path for path, _ in uploaded])
        raise

    if not uploaded:
        return entry

    entry_id = entry.id
    try:
        db.session.add_all(
            [
                MitigationImage(entry_id=entry_id, image_url=url, storage_path=path)
                for path, url in uploaded
            ]
        )
        commit("recording evidence images")
    except (SQLAlchemyError, TransientError) as e:
        db.session.rollback()
        current_app.logger.error(
            f"Mitigation entry {entry_id} saved but its {len(uploaded)} image record(s) "
            f"were not: {e}. Stored files: {[path for path, _ in uploaded]}"
        )
        raise PartialFailureError(
            "Mitigation entry was saved but its evidence images could not be recorded",
            details=str(e),
            entry_id=entry_id,
            stored_paths=[path for path, _ in uploaded],
        )

    return entry


def submit_consumption(client_id, liters, transaction_date=None):
    liters = parse_positive_amount(liters, "liters_consumed")
    when = parse_optional_datetime(transaction_date, "transaction_date")
    _require_client(client_id)

    entry = ConsumptionEntry(client_id=client_id, liters_consumed=liters)
    if when is not None:
        entry.transaction_date = when
    db.session.add(entry)
    commit("creating consumption entry")
    return entry


def client_mitigation_history(client_id):
    return db.session.scalars(
        select(MitigationEntry)
        .options(selectinload(MitigationEntry.images))
        .where(MitigationEntry.client_id == client_id)
        .order_by(MitigationEntry.created_at.desc())
    ).all()


def client_consumption_history(client_id):
    return db.session.scalars(
        select(ConsumptionEntry)
        .where(ConsumptionEntry.client_id == client_id)
        .order_by(ConsumptionEntry.transaction_date.desc())
    ).all()


def client_rewards(client_id):
    return db.session.scalars(
        select(ClientReward)
        .options(selectinload(ClientReward.reward))
        .where(ClientReward.client_id == client_id)
        .order_by(ClientReward.awarded_at.desc())
    ).all()


def client_dashboard(client_id):
    """Totals, histories and rewards shown on the client dashboard."""
    client = db.session.get(Client, client_id)
    if client is None:
        raise NotFoundError(f"Client {client_id} not found")

    total_kg = db.session.scalar(
        select(func.coalesce(func.sum(MitigationEntry.mitigated_plastic_kg), 0)).where(
            MitigationEntry.client_id == client_id
        )
    )
    total_liters = db.session.scalar(
        select(func.coalesce(func.sum(ConsumptionEntry.liters_consumed), 0)).where(
            ConsumptionEntry.client_id == client_id
        )
    )

    obtained = client_rewards(client_id)
    obtained_ids = {cr.reward_id for cr in obtained}
    available = [
        reward
        for reward in db.session.scalars(
            select(Reward).order_by(Reward.pgc_amount.asc(), Reward.name)
        ).all()
        if reward.id not in obtained_ids
    ]

    return {
        "client": client,
        "total_mitigated_kg": total_kg,
        "total_consumed_liters": total_liters,
        "mitigation_history": client_mitigation_history(client_id),
        "obtained_rewards": obtained,
        "available_rewards": available,
    }


def list_mitigation_entries(status=None, page=1, per_page=15):
    stmt = select(MitigationEntry).options(
        selectinload(MitigationEntry.client), selectinload(MitigationEntry.images)
    )
    count_stmt = select(func.count(MitigationEntry.id))
    if status:
        if status not in REVIEW_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(REVIEW_STATUSES)}")
        stmt = stmt.where(MitigationEntry.status == status)
        count_stmt = count_stmt.where(MitigationEntry.status == status)

    total = db.session.scalar(count_stmt) or 0
    entries = db.session.scalars(
        stmt.order_by(MitigationEntry.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()
    return entries, total


def get_mitigation_entry(entry_id):
    entry = db.session.get(MitigationEntry, entry_id)
    if entry is None:
        raise NotFoundError(f"Mitigation entry {entry_id} not found")
    return entry


def list_consumption_entries(page=1, per_page=15):
    total = db.session.scalar(select(func.count(ConsumptionEntry.id))) or 0
    entries = db.session.scalars(
        select(ConsumptionEntry)
        .options(selectinload(ConsumptionEntry.client))
        .order_by(ConsumptionEntry.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()
    return entries, total


def get_consumption_entry(entry_id):
    entry = db.session.get(ConsumptionEntry, entry_id)
    if entry is None:
        raise NotFoundError(f"Consumption entry {entry_id} not found")
    return entry


def update_consumption_entry(entry_id, liters=None, transaction_date=None):
    entry = get_consumption_entry(entry_id)
    if liters is not None:
        entry.liters_consumed = parse_positive_amount(liters, "liters_consumed")
    when = parse_optional_datetime(transaction_date, "transaction_date")
    if when is not None:
        entry.transaction_date = when
    commit("updating consumption entry")
    return entry


def delete_evidence_image(image_id):
    """
    Remove one evidence image: the stored file first, then its row.

    A storage failure leaves the row in place. A row delete that fails after
    the file is gone is a partial failure.
    """
    image = db.session.get(MitigationImage, image_id)
    if image is None:
        raise NotFoundError(f"Image {image_id} not found")

    storage = get_storage()
    path = image.storage_path or storage.path_from_url(image.image_url)
    retry_transient(storage.delete, path)

    try:
        db.session.delete(image)
        commit("deleting evidence image record")
    except (SQLAlchemyError, TransientError) as e:
        db.session.rollback()
        current_app.logger.error(
            f"Stored file {path} deleted but image record {image_id} remains: {e}"
        )
        raise PartialFailureError(
            "Image file was deleted but its record could not be removed",
            details=str(e),
            image_id=image_id,
            storage_path=path,
        )
    current_app.logger.info(f"Deleted evidence image {image_id} ({path})")
