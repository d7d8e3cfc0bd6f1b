"""Tests for the application factory."""

from unittest.mock import patch

from bucketly import create_app


def test_config_from_environment(monkeypatch):
    monkeypatch.setenv("ADMIN_EMAILS", " Admin@Example.com, ops@example.com ,")
    monkeypatch.setenv("MAIL_PASSWORD", "'abcd efgh ijkl mnop'")
    monkeypatch.setenv("MAIL_USE_TLS", "false")
    monkeypatch.setenv("MAIL_PORT", "")

    app = create_app({"TESTING": True})

    assert app.config["ADMIN_EMAILS"] == ["admin@example.com", "ops@example.com"]
    assert app.config["MAIL_PASSWORD"] == "abcdefghijklmnop"
    assert app.config["MAIL_USE_TLS"] is False
    assert app.config["MAIL_PORT"] == 587
    assert "storage.googleapis.com" in app.config["PHOTO_ALLOWED_DOMAINS"]


def test_test_config_overrides_defaults(monkeypatch):
    monkeypatch.delenv("ADMIN_EMAILS", raising=False)
    app = create_app({"TESTING": True, "ADMIN_EMAILS": ["root@example.com"]})
    assert app.config["ADMIN_EMAILS"] == ["root@example.com"]
    assert app.config["SECRET_KEY"]


def test_testing_skips_firebase():
    with patch("bucketly._init_firebase") as init_firebase:
        create_app({"TESTING": True})
    init_firebase.assert_not_called()


def test_firebase_initialized_outside_tests(monkeypatch):
    monkeypatch.delenv("FIREBASE_CREDENTIALS_JSON", raising=False)
    with patch("bucketly._init_firebase") as init_firebase:
        create_app()
    init_firebase.assert_called_once()


def test_all_blueprints_registered(app):
    assert {
        "auth",
        "lists",
        "memories",
        "user",
        "social",
        "notifications",
        "badges",
        "admin",
        "error_handlers",
    } <= set(app.blueprints)


def test_stale_session_is_cleared(client):
    with client.session_transaction() as sess:
        sess["user_id"] = "deleted-user"

    response = client.get("/user/me")

    assert response.status_code == 401
    with client.session_transaction() as sess:
        assert "user_id" not in sess
