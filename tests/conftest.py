"""
Pytest configuration and shared fixtures for the Petgas Portal tests.

Every test gets its own app bound to a fresh in-memory SQLite database and an
``ObjectStorage`` whose boto3 client is replaced by ``FakeS3Client``.
"""

import datetime
import os
import sys
import uuid
from pathlib import Path

import bcrypt
import jwt
import pytest
from botocore.exceptions import ClientError, ConnectTimeoutError
from dotenv import load_dotenv

test_env_path = Path(__file__).parent / ".env.test"
if test_env_path.exists():
    load_dotenv(test_env_path, override=True)
    print(f" Loaded test environment from: {test_env_path}")

os.environ["TESTING"] = "True"
os.environ.setdefault("FLASK_ENV", "testing")
os.environ.setdefault("DATABASE_TEST_URL", "sqlite://")

from main import create_app  # noqa: E402
from app.config import is_production_database  # noqa: E402
from app.extensions import db as database  # noqa: E402
from app.models import Base, Client, MitigationEntry, Reward  # noqa: E402
from app.utils.s3_utils import ObjectStorage  # noqa: E402

ADMIN_EMAIL = "admin@petgas.test"
ADMIN_PASSWORD = "admin-password-123"
CLIENT_JWT_SECRET = "test-client-jwt-secret"
STORAGE_BASE_URL = "https://storage.petgas.test/storage/v1/object/public/mitigation-images"


class FakeS3Client:
    """
    In-memory stand-in for the boto3 S3 client.

    ``put_failures`` maps the 1-based put call number to the exception that
    call raises; ``delete_failures`` maps a key to exceptions raised by its
    next delete calls, in order.
    """

    def __init__(self):
        self.objects = {}
        self.put_keys = []
        self.deleted_keys = []
        self.put_failures = {}
        self.delete_failures = {}

    def put_object(self, Bucket, Key, Body, **kwargs):
        self.put_keys.append(Key)
        error = self.put_failures.pop(len(self.put_keys), None)
        if error is not None:
            raise error
        self.objects[Key] = Body
        return {"ETag": '"fake"'}

    def delete_object(self, Bucket, Key):
        pending = self.delete_failures.get(Key)
        if pending:
            raise pending.pop(0)
        self.deleted_keys.append(Key)
        self.objects.pop(Key, None)
        return {}


def storage_client_error(operation="PutObject"):
    return ClientError(
        {"Error": {"Code": "InternalError", "Message": "storage is broken"}}, operation
    )


def storage_timeout():
    return ConnectTimeoutError(endpoint_url="https://storage.petgas.test")


def make_client_token(client_id, email, full_name=None, expires_in=3600, **overrides):
    payload = {
        "sub": client_id,
        "email": email,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": datetime.datetime.now(datetime.timezone.utc)
        + datetime.timedelta(seconds=expires_in),
        "user_metadata": {"full_name": full_name},
    }
    payload.update(overrides)
    return jwt.encode(payload, CLIENT_JWT_SECRET, algorithm="HS256")


@pytest.fixture
def app():
    """Create a test app with its own database and fake storage."""
    test_db_url = "sqlite://"
    if is_production_database(test_db_url):
        print(f" DANGER: Database URL appears to be production: {test_db_url}")
        sys.exit(1)

    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": test_db_url,
            "SQLALCHEMY_ENGINE_OPTIONS": {},
            "SECRET_KEY": "test-secret-key-for-testing-only",
            "SUPABASE_JWT_SECRET": CLIENT_JWT_SECRET,
            "ADMIN_EMAIL": ADMIN_EMAIL,
            "ADMIN_PASSWORD_HASH": bcrypt.hashpw(
                ADMIN_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)
            ).decode("utf-8"),
            "S3_BUCKET_NAME": "mitigation-images",
            "S3_BASE_URL": STORAGE_BASE_URL,
            "RETRY_BACKOFF_SECONDS": 0,
            "ENTRIES_PER_PAGE": 15,
        }
    )
    app.extensions["object_storage"] = ObjectStorage(
        bucket_name="mitigation-images",
        base_url=STORAGE_BASE_URL,
        client=FakeS3Client(),
    )

    with app.app_context():
        Base.metadata.create_all(bind=database.engine)
        yield app
        database.session.remove()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def db_session(app):
    return database.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage(app):
    return app.extensions["object_storage"]


@pytest.fixture
def s3(storage):
    return storage.client


@pytest.fixture
def admin_headers(client):
    """Log in as the configured admin and return authorization headers."""
    response = client.post(
        "/api/admin/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200, response.data
    return {"Authorization": f"Bearer {response.json['token']}"}


@pytest.fixture
def client_headers():
    """Build authorization headers for a portal client."""

    def _headers(portal_client_or_id, email=None, full_name=None):
        if isinstance(portal_client_or_id, Client):
            client_id = portal_client_or_id.id
            email = email or portal_client_or_id.email
        else:
            client_id = portal_client_or_id
        token = make_client_token(client_id, email or f"{client_id}@example.com", full_name)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_portal_client(db_session):
    """Insert a client row directly."""
    counter = {"n": 0}

    def _make(email=None, full_name="Test Client", pgc_balance=0, **fields):
        counter["n"] += 1
        portal_client = Client(
            id=str(uuid.uuid4()),
            email=email or f"client{counter['n']}@example.com",
            full_name=full_name,
            pgc_balance=pgc_balance,
            **fields,
        )
        db_session.add(portal_client)
        db_session.commit()
        return portal_client

    return _make


@pytest.fixture
def portal_client(make_portal_client):
    return make_portal_client(email="maria@example.com", full_name="Maria Lopez")


@pytest.fixture
def make_reward(db_session):
    def _make(name="Recycler", pgc_amount=50, **fields):
        reward = Reward(name=name, pgc_amount=pgc_amount, **fields)
        db_session.add(reward)
        db_session.commit()
        return reward

    return _make


@pytest.fixture
def make_mitigation_entry(db_session):
    def _make(portal_client, kg=10, status="pending"):
        entry = MitigationEntry(
            client_id=portal_client.id, mitigated_plastic_kg=kg, status=status
        )
        db_session.add(entry)
        db_session.commit()
        return entry

    return _make
