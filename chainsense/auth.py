# chainsense/auth.py
from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from chainsense.extensions import db, limiter, login_manager
from chainsense.models import User
from chainsense.utils.passwords import verify_password

auth = Blueprint("auth", __name__, url_prefix="/auth")


# =========================================================
# Flask-Login hooks
# =========================================================
@login_manager.user_loader
def load_user(user_id: str):
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"message": "Authentication required"}), 401


# =========================================================
# Login / Logout
# =========================================================
@auth.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({"message": "Email and password are required"}), 400

    user = User.query.filter(db.func.lower(User.email) == email).first()

    if user and user.is_active is False:
        return jsonify({"message": "This account is inactive. Contact an admin."}), 403

    if not user or not verify_password(user.password_hash, password):
        return jsonify({"message": "Invalid email or password"}), 401

    login_user(user)
    return jsonify({"message": "Logged in", "user": user.to_dict()}), 200


@auth.route("/logout", methods=["POST"])
@login_required
def logout():
    user_id = current_user.id
    logout_user()
    return jsonify({"message": "Logged out", "user_id": user_id}), 200
