"""
Tests for environment-driven settings and issuer construction.
"""
from datetime import timedelta

import pytest
from pydantic import ValidationError

from docgrant.core.config import Settings
from docgrant.core.security import GrantIssuer

from conftest import TEST_SECRET


def _settings(**kwargs):
    kwargs.setdefault("ONLYOFFICE_JWT_SECRET", TEST_SECRET)
    return Settings(_env_file=None, **kwargs)


class TestSettings:

    def test_secret_from_environment(self, monkeypatch):
        monkeypatch.setenv("ONLYOFFICE_JWT_SECRET", TEST_SECRET)
        app_settings = Settings(_env_file=None)
        assert app_settings.jwt_secret_configured
        assert app_settings.ONLYOFFICE_JWT_SECRET.get_secret_value() == TEST_SECRET
        assert TEST_SECRET not in repr(app_settings)

    def test_blank_secret_is_missing(self):
        with pytest.warns(UserWarning):
            app_settings = Settings(_env_file=None, ENVIRONMENT="test", ONLYOFFICE_JWT_SECRET="  ")
        assert not app_settings.jwt_secret_configured

    def test_cors_origins_comma_separated(self, monkeypatch):
        monkeypatch.setenv("BACKEND_CORS_ORIGINS", "http://a.test, http://b.test")
        assert _settings().BACKEND_CORS_ORIGINS == ["http://a.test", "http://b.test"]

    def test_cors_origins_json_list(self, monkeypatch):
        monkeypatch.setenv("BACKEND_CORS_ORIGINS", '["http://a.test"]')
        assert _settings().BACKEND_CORS_ORIGINS == ["http://a.test"]

    def test_algorithm_normalised(self):
        assert _settings(ONLYOFFICE_JWT_ALGORITHM="hs512").ONLYOFFICE_JWT_ALGORITHM == "HS512"

    def test_asymmetric_algorithm_rejected(self):
        with pytest.raises(ValidationError):
            _settings(ONLYOFFICE_JWT_ALGORITHM="RS256")

    def test_non_positive_ttl_rejected(self):
        with pytest.raises(ValidationError):
            _settings(GRANT_DEFAULT_TTL_MINUTES=0)

    def test_default_ttl_cannot_exceed_max(self):
        with pytest.raises(ValueError):
            _settings(GRANT_DEFAULT_TTL_MINUTES=120, GRANT_MAX_TTL_MINUTES=60)

    def test_document_server_api_url(self):
        app_settings = _settings(ONLYOFFICE_URL="https://docs.example.com/")
        assert app_settings.document_server_api_url == "https://docs.example.com/web-apps/apps/api/documents/api.js"


class TestIssuerFromSettings:

    def test_issuer_configuration(self):
        issuer = GrantIssuer.from_settings(_settings(
            ONLYOFFICE_JWT_ALGORITHM="HS384",
            SERVER_HOST="http://backend:8000/",
            FRONTEND_URL="",
            GRANT_DEFAULT_TTL_MINUTES=15,
            GRANT_MAX_TTL_MINUTES=120,
            GRANT_VERIFY_LEEWAY_SECONDS=5,
        ))
        assert issuer.has_secret
        assert issuer.algorithm == "HS384"
        assert issuer.default_validity == timedelta(minutes=15)
        assert issuer.max_validity == timedelta(hours=2)
        assert issuer.leeway == timedelta(seconds=5)
        assert issuer.callback_url == "http://backend:8000/api/v1/editor/callback"
        assert issuer.goback_url is None
