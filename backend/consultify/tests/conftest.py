# tests/conftest.py
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from consultify import models  # import your models to register with Base
from consultify.database import Base
from consultify.services.identity import IdentityLookupError, UserProfile
from consultify.services.translation_provider import TranslationProviderError
from consultify.services.translation_service import Translator


class FakeTranslationProvider:
    """Records calls; prefixes the target locale, or raises when ``fail`` is set."""

    def __init__(self):
        self.calls = []
        self.fail = False

    def translate(self, text, source_language, target_language):
        self.calls.append((text, source_language, target_language))
        if self.fail:
            raise TranslationProviderError("provider down")
        return f"[{target_language}] {text}"


class FakeIdentity:
    def __init__(self, users=()):
        self.users = {u.id: u for u in users}
        self.broken = set()

    def get_user(self, user_id):
        if user_id in self.broken or user_id not in self.users:
            raise IdentityLookupError(f"lookup failed for {user_id}")
        return self.users[user_id]

    def list_users_by_role(self, role):
        return [u for u in self.users.values() if u.role == role]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture
def db_session(engine):
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def provider():
    return FakeTranslationProvider()


@pytest.fixture
def translator(db_session, provider):
    return Translator(db_session, provider)


@pytest.fixture
def patient():
    return UserProfile(id="patient-1", email="jane@example.com", name="Jane Wilson", role="patient", language="fr")


@pytest.fixture
def doctor():
    return UserProfile(id="doctor-1", email="smith@example.com", name="Sarah Smith", role="doctor",
                       language="en", specialization="Cardiology")


@pytest.fixture
def identity(patient, doctor):
    return FakeIdentity([patient, doctor])
