from flask import Blueprint, jsonify
from app.extensions import db
from sqlalchemy import func
from app.models import Client, ClientReward, ConsumptionEntry, MitigationEntry, REVIEW_STATUSES
from app.utils.auth_utils import admin_required

admin_analytics_bp = Blueprint(
    "admin_analytics_bp",
    __name__,
    url_prefix="/api/admin/dashboard",
)


# -------------------------------------------------------------------
# OVERVIEW: clients, review queue, totals, rewards outstanding
# -------------------------------------------------------------------
@admin_analytics_bp.route("/overview", methods=["GET"])
@admin_required
def get_overview():
    """
    High-level numbers for the admin panel landing page.
    ---
    tags:
      - Admin Dashboard
    responses:
      200:
        description: Counts and totals across all clients
    """
    try:
        total_clients = db.session.query(func.count(Client.id)).scalar() or 0

        by_status = dict.fromkeys(REVIEW_STATUSES, 0)
        rows = (
            db.session.query(
                MitigationEntry.status.label("status"),
                func.count(MitigationEntry.id).label("count"),
            )
            .group_by(MitigationEntry.status)
            .all()
        )
        for r in rows:
            by_status[r.status] = int(r.count)

        approved_kg = (
            db.session.query(func.coalesce(func.sum(MitigationEntry.mitigated_plastic_kg), 0))
            .filter(MitigationEntry.status == "approved")
            .scalar()
        )
        total_liters = db.session.query(
            func.coalesce(func.sum(ConsumptionEntry.liters_consumed), 0)
        ).scalar()
        rewards_awarded = db.session.query(func.count(ClientReward.id)).scalar() or 0
        pgc_outstanding = db.session.query(
            func.coalesce(func.sum(Client.pgc_balance), 0)
        ).scalar()

        return jsonify(
            {
                "status": "success",
                "total_clients": total_clients,
                "mitigation_entries": {
                    **by_status,
                    "total": sum(by_status.values()),
                },
                "approved_plastic_kg": float(approved_kg or 0),
                "total_consumed_liters": float(total_liters or 0),
                "rewards_awarded": rewards_awarded,
                "pgc_outstanding": float(pgc_outstanding or 0),
            }
        ), 200

    except Exception as e:
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Failed to load dashboard overview",
                    "details": str(e),
                }
            ),
            500,
        )
