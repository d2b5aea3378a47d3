# chainsense/inbox.py
from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import or_

from chainsense.errors import NotFoundError
from chainsense.extensions import db
from chainsense.models import Notification
from chainsense.utils.db import commit_or_rollback

inbox_bp = Blueprint("inbox", __name__, url_prefix="/notifications")

PAGE_LIMIT = 50


def _visible_to_current_user():
    # Own notifications plus broadcasts
    return or_(Notification.user_id == current_user.id, Notification.user_id.is_(None))


# -------------------------------------------------------------------
# GET /notifications[?unread_only=1]
# -------------------------------------------------------------------
@inbox_bp.route("", methods=["GET"])
@login_required
def list_notifications():
    q = Notification.query.filter(_visible_to_current_user())
    if (request.args.get("unread_only") or "").lower() in ("1", "true", "yes"):
        q = q.filter(Notification.is_read.is_(False))

    rows = q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(PAGE_LIMIT).all()
    return jsonify({"notifications": [n.to_dict() for n in rows]}), 200


@inbox_bp.route("/<int:notification_id>/read", methods=["PUT"])
@login_required
def mark_read(notification_id: int):
    note = (
        Notification.query
        .filter(Notification.id == notification_id, _visible_to_current_user())
        .first()
    )
    if note is None:
        raise NotFoundError("Notification not found")

    note.is_read = True
    commit_or_rollback("Mark notification read")
    return jsonify({"message": "Notification marked as read", "notification": note.to_dict()}), 200


@inbox_bp.route("/read-all", methods=["PUT"])
@login_required
def mark_all_read():
    updated = (
        Notification.query
        .filter(_visible_to_current_user(), Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    commit_or_rollback("Mark all notifications read")
    return jsonify({"message": "All notifications marked as read", "updated": updated}), 200
