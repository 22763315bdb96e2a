import base64
import json
from datetime import datetime, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from docgrant.core.config import Settings
from docgrant.core.security import GrantIssuer
from docgrant.main import create_app

TEST_SECRET = "test-shared-secret-for-document-server-0001"
OTHER_SECRET = "another-secret-the-document-server-never-saw"
CALLBACK_URL = "http://backend:8000/api/v1/editor/callback"


def _b64url_decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _tamper(token: str, mutate) -> str:
    """修改 payload 但保留原签名"""
    header, payload, signature = token.split(".")
    claims = json.loads(_b64url_decode(payload))
    mutate(claims)
    new_payload = _b64url_encode(json.dumps(claims, separators=(",", ":")).encode())
    return ".".join([header, new_payload, signature])


def _claims(token: str) -> dict:
    return jwt.decode(token, options={"verify_signature": False})


@pytest.fixture
def tamper():
    return _tamper


@pytest.fixture
def read_claims():
    return _claims


@pytest.fixture
def fixed_now():
    return datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def issuer():
    return GrantIssuer(secret=TEST_SECRET, callback_url=CALLBACK_URL)


@pytest.fixture
def app_settings():
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        ONLYOFFICE_JWT_SECRET=TEST_SECRET,
        SERVER_HOST="http://backend:8000",
        ONLYOFFICE_URL="http://onlyoffice.test/",
        FRONTEND_URL="http://frontend.test",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def client(app_settings):
    with TestClient(create_app(app_settings)) as test_client:
        yield test_client
