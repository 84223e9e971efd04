import os
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

from eventhub import config
from eventhub.app import build_services, create_app
from eventhub.db import create_tables
from eventhub.mailer import Mailer
from eventhub.security import create_token
from eventhub.storage import ImageFile, ImageStorage

from .helpers import BUCKET, PASSWORD, REGION, future_date


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    monkeypatch.setattr(config, "JWT_SECRET", "test-secret")
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def aws():
    with mock_aws():
        yield


@pytest.fixture
def tables(aws):
    """In-memory users, events and registrations tables with their indexes."""
    dynamodb = boto3.resource("dynamodb", region_name=REGION)
    return create_tables(dynamodb)


@pytest.fixture
def s3_client(aws):
    client = boto3.client("s3", region_name=REGION)
    client.create_bucket(Bucket=BUCKET)
    return client


@pytest.fixture
def storage(s3_client):
    return ImageStorage(BUCKET, REGION, client=s3_client)


@pytest.fixture
def mailer():
    """Records every notification instead of calling SES."""
    return MagicMock(spec=Mailer)


@pytest.fixture
def services(tables, storage, mailer):
    return build_services(tables, storage, mailer)


@pytest.fixture
def users(services):
    return services.users


@pytest.fixture
def events(services):
    return services.events


@pytest.fixture
def registrations(services):
    return services.registrations


@pytest.fixture
def image():
    return ImageFile("picture.png", b"\x89PNG\r\n\x1a\nfake", "image/png")


@pytest.fixture
def make_user(users):
    """Create a stored user; confirmed and active unless told otherwise."""
    counter = {"n": 0}

    def _make(role="participant", email=None, name=None, confirmed=True):
        counter["n"] += 1
        n = counter["n"]
        return users.create_without_image(
            {
                "name": name or f"User {n}",
                "email": email or f"user{n}@example.com",
                "password": PASSWORD,
                "phone": "+5571999990000",
                "role": role,
            },
            email_confirmed=confirmed,
        )

    return _make


@pytest.fixture
def make_event(events, image):
    counter = {"n": 0}

    def _make(organizer_id, name=None, date=None, description="A gathering"):
        counter["n"] += 1
        return events.create(
            {
                "name": name or f"Event {counter['n']}",
                "description": description,
                "date": date or future_date(),
            },
            image,
            organizer_id,
        )

    return _make


@pytest.fixture
def client(services):
    app = create_app(services)
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_token(user)}"}
    return _headers
