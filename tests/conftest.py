import pytest
from flask_jwt_extended import create_access_token

from shopfund import create_app
from shopfund.utils import rate_limit

USERS = {
    "sup-1": {"id": "sup-1", "username": "kindsupporter", "email": "s@example.com", "role": "SUPPORTER"},
    "sup-2": {"id": "sup-2", "username": "othersupporter", "email": "o@example.com", "role": "SUPPORTER"},
    "biz-1": {"id": "biz-1", "username": "bakeryowner", "email": "b@example.com", "role": "BUSINESS_REPRESENTATIVE"},
    "biz-2": {"id": "biz-2", "username": "florist", "email": "f@example.com", "role": "BUSINESS_REPRESENTATIVE"},
    "adm-1": {"id": "adm-1", "username": "siteadmin", "email": "a@example.com", "role": "ADMIN"},
    "root-1": {"id": "root-1", "username": "rootadmin", "email": "r@example.com", "role": "ROOT"},
    "new-1": {"id": "new-1", "username": "freshuser", "email": "n@example.com", "role": "PENDING_ROLE_SELECTION"},
}


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "0")
    # authenticated requests resolve the caller through authz.get_user
    monkeypatch.setattr(
        "shopfund.utils.authz.get_user", lambda user_id: dict(USERS[user_id]) if user_id in USERS else None
    )
    app = create_app({"TESTING": True, "JWT_SECRET_KEY": "test-secret", "SECRET_KEY": "test-session"})
    rate_limit.reset()
    yield app
    rate_limit.reset()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header(app):
    def make(user_id):
        with app.app_context():
            token = create_access_token(identity=user_id, additional_claims={"role": USERS[user_id]["role"]})
        return {"Authorization": f"Bearer {token}"}

    return make


@pytest.fixture
def published(monkeypatch):
    """Capture events instead of emitting them over Socket.IO."""
    events = []

    def fake_publish(event, payload, rooms=None):
        events.append((event, payload, rooms))

    for module in (
        "shopfund.services.campaign_service",
        "shopfund.services.reward_service",
        "shopfund.services.donation_service",
        "shopfund.services.auth_service",
    ):
        monkeypatch.setattr(f"{module}.publish", fake_publish)
    return events
