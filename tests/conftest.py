from datetime import datetime, timedelta, timezone

import fakeredis
import pytest

from onboarding.app import create_app
from onboarding.db import db
from onboarding.db.models import Organisation, User
from onboarding.db.store import InvitationStore
from onboarding.exceptions import NotificationFailure
from onboarding.middleware.auth import AuthService
from onboarding.services.invitation_service import InvitationService
from onboarding.services.notification_service import NotificationSender


class FakeClock:
    """Lets tests move time forward past expires_at"""
    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


class RecordingNotifier(NotificationSender):
    def __init__(self):
        self.sent = []
        self.fail = False

    def _deliver(self, email, invitation_code, expires_at, name, role):
        if self.fail:
            raise NotificationFailure("relay down")
        self.sent.append({
            'email': email,
            'code': invitation_code,
            'expires_at': expires_at,
            'role': role,
        })


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis()


@pytest.fixture
def app(clock, notifier, redis_client):
    app = create_app(
        {
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite://',
            'JWT_SECRET_KEY': 'test-secret',
            'LOG_LEVEL': 'WARNING',
            'CLEANUP_INTERVAL_SECONDS': 0,
        },
        redis_client=redis_client,
        notifier=notifier,
        clock=clock
    )
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


def create_org_with_admin(name: str, admin_email: str):
    """Helper to create an organisation and its admin"""
    org = Organisation(name=name)
    db.session.add(org)
    db.session.flush()
    admin = User(email=admin_email, name="Admin", organisation_id=org.id, role="admin")
    db.session.add(admin)
    db.session.commit()
    return org, admin


@pytest.fixture
def school(app):
    return create_org_with_admin("Sunflower Preschool", "principal@sunflower.example.com")


@pytest.fixture
def other_school(app):
    return create_org_with_admin("Oak Primary", "head@oak.example.com")


@pytest.fixture
def service(app, notifier, clock):
    return InvitationService(store=InvitationStore(), notifier=notifier, clock=clock)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(school):
    _, admin = school
    token = AuthService.create_access_token(admin)
    return {'Authorization': f'Bearer {token}', 'X-Client-Session': 'tab-1'}
