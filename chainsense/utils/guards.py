# chainsense/utils/guards.py

from __future__ import annotations

from functools import wraps
from typing import Callable, Any

from flask import abort, g
from flask_login import current_user

from chainsense.errors import AccessDeniedError


def role() -> str:
    return (getattr(current_user, "role", "") or "").strip().lower()


def is_vendor() -> bool:
    return role() == "vendor"


def role_required(*allowed_roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Generic role gate for JSON endpoints:
        @role_required("admin", "manager")
        def view(): ...
    Anonymous callers get 401, other roles 403.
    """
    def decorator(view: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not getattr(current_user, "is_authenticated", False):
                abort(401)
            if role() not in allowed_roles:
                abort(403)
            return view(*args, **kwargs)
        return wrapped
    return decorator


def current_vendor():
    """
    Vendor linked to the logged-in account (Vendor.user_id), or None.
    Resolved once per request.
    """
    if "current_vendor" not in g:
        from chainsense.models import Vendor  # avoid import cycle at boot

        vendor = None
        if getattr(current_user, "is_authenticated", False):
            vendor = Vendor.query.filter_by(user_id=current_user.id).first()
        g.current_vendor = vendor
    return g.current_vendor


def ensure_vendor_scope(vendor_id: int | None) -> None:
    """
    Vendors may only touch rows that belong to their own vendor record.
    Internal roles pass through.
    """
    if not is_vendor():
        return
    vendor = current_vendor()
    if vendor is None or vendor.id != vendor_id:
        raise AccessDeniedError("Access denied")
