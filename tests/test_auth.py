from __future__ import annotations

from chainsense.models import User
from chainsense.utils.passwords import hash_password, validate_password, verify_password

from conftest import PASSWORD


def test_login_logout_round(client_as, make_user):
    user = make_user("staff", email="Ops@Example.com")
    client = client_as()

    resp = client.post("/auth/login", json={"email": "ops@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["id"] == user.id

    assert client.get("/notifications").status_code == 200

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/notifications").status_code == 401


def test_bad_credentials(client_as, make_user):
    make_user("staff", email="ops@example.com")

    resp = client_as().post("/auth/login", json={"email": "ops@example.com", "password": "wrong"})

    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid email or password"


def test_missing_fields(client_as):
    assert client_as().post("/auth/login", json={}).status_code == 400


def test_inactive_account(client_as, make_user):
    make_user("staff", email="gone@example.com", is_active=False)
    resp = client_as().post("/auth/login", json={"email": "gone@example.com", "password": PASSWORD})
    assert resp.status_code == 403


def test_password_helpers():
    hashed = hash_password("Corr3ctHorse")
    assert verify_password(hashed, "Corr3ctHorse")
    assert not verify_password(hashed, "corr3cthorse")
    assert validate_password("short1A") == (False, "Password must be at least 10 characters.")
    assert validate_password("alllowercase1")[0] is False
    assert validate_password("Corr3ctHorse") == (True, "")


# =========================================================
# CLI
# =========================================================
def test_create_admin_command(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["create-admin", "--email", "Root@Chainsense.io", "--password", "Adm1nPassword", "--name", "Root"])

    assert result.exit_code == 0, result.output
    assert "Created admin: root@chainsense.io" in result.output
    user = User.query.filter_by(email="root@chainsense.io").one()
    assert user.role == "admin"
    assert user.username == "root"
    assert verify_password(user.password_hash, "Adm1nPassword")


def test_create_admin_resets_existing(app, make_user):
    existing = make_user("staff", email="boss@example.com")

    result = app.test_cli_runner().invoke(
        args=["create-admin", "--email", "boss@example.com", "--password", "N3wPassword!"]
    )

    assert result.exit_code == 0, result.output
    assert "Updated admin" in result.output
    user = User.query.filter_by(email="boss@example.com").one()
    assert user.id == existing.id
    assert user.role == "admin"


def test_create_admin_rejects_weak_password(app):
    result = app.test_cli_runner().invoke(args=["create-admin", "--email", "a@b.io", "--password", "weak"])
    assert result.exit_code != 0
    assert User.query.count() == 0
