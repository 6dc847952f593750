def _iso(value):
    return value.isoformat() if value else None


def _num(value):
    return float(value) if value is not None else None


def client_to_dict(client):
    return {
        "id": client.id,
        "email": client.email,
        "full_name": client.full_name,
        "solana_wallet": client.solana_wallet,
        "bnb_wallet": client.bnb_wallet,
        "pgc_balance": _num(client.pgc_balance) or 0.0,
        "created_at": _iso(client.created_at),
        "updated_at": _iso(client.updated_at),
    }


def client_summary(client):
    """The owning client's display fields, as joined into entry lists."""
    if client is None:
        return None
    return {"id": client.id, "email": client.email, "full_name": client.full_name}


def image_to_dict(image):
    return {
        "id": image.id,
        "entry_id": image.entry_id,
        "image_url": image.image_url,
        "uploaded_at": _iso(image.uploaded_at),
    }


def mitigation_to_dict(entry, include_client=False, include_history=False):
    data = {
        "id": entry.id,
        "client_id": entry.client_id,
        "mitigated_plastic_kg": _num(entry.mitigated_plastic_kg),
        "status": entry.status,
        "created_at": _iso(entry.created_at),
        "updated_at": _iso(entry.updated_at),
        "images": [image_to_dict(img) for img in entry.images],
    }
    if include_client:
        data["client"] = client_summary(entry.client)
    if include_history:
        data["status_history"] = [
            {
                "from_status": h.from_status,
                "to_status": h.to_status,
                "changed_by": h.changed_by,
                "changed_at": _iso(h.changed_at),
            }
            for h in entry.status_history
        ]
    return data


def consumption_to_dict(entry, include_client=False):
    data = {
        "id": entry.id,
        "client_id": entry.client_id,
        "liters_consumed": _num(entry.liters_consumed),
        "transaction_date": _iso(entry.transaction_date),
        "created_at": _iso(entry.created_at),
        "updated_at": _iso(entry.updated_at),
    }
    if include_client:
        data["client"] = client_summary(entry.client)
    return data


def reward_to_dict(reward):
    return {
        "id": reward.id,
        "name": reward.name,
        "description": reward.description,
        "pgc_amount": _num(reward.pgc_amount),
        "criteria_plastic_kg": _num(reward.criteria_plastic_kg),
        "criteria_petgas_liters": _num(reward.criteria_petgas_liters),
        "created_at": _iso(reward.created_at),
    }


def client_reward_to_dict(client_reward):
    reward = client_reward.reward
    return {
        "id": client_reward.id,
        "client_id": client_reward.client_id,
        "reward_id": client_reward.reward_id,
        "pgc_amount": _num(client_reward.pgc_amount),
        "awarded_at": _iso(client_reward.awarded_at),
        "awarded_by": client_reward.awarded_by,
        "notes": client_reward.notes,
        "reward": {
            "id": reward.id,
            "name": reward.name,
            "description": reward.description,
            "pgc_amount": _num(reward.pgc_amount),
            "criteria_plastic_kg": _num(reward.criteria_plastic_kg),
            "criteria_petgas_liters": _num(reward.criteria_petgas_liters),
        }
        if reward
        else None,
    }


def page_to_dict(items, total_count, page, per_page, key):
    total_pages = (total_count + per_page - 1) // per_page if per_page else 0
    return {
        "status": "success",
        key: items,
        "total_count": total_count,
        "page": page,
        "per_page": per_page,
        "total_pages": total_pages,
    }
