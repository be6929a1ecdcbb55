"""Settings parsing and environment-dependent URL selection."""

import pytest
from pydantic import ValidationError

from passvault.app.config import validate_configuration

from .conftest import make_settings


def test_production_urls(settings):
    assert not settings.is_development
    assert settings.server_base_url == "https://api.vault.test"
    assert settings.client_base_url == "https://vault.test"
    assert settings.discord_redirect_uri == "https://api.vault.test/api/auth/callback"


@pytest.mark.parametrize("flag", ["DEVELOPMENT", "development", " Development "])
def test_development_urls(flag):
    settings = make_settings(ENVIRONMENT=flag, DEV_SERVER_URL="http://localhost:8080/")

    assert settings.is_development
    assert settings.server_base_url == "http://localhost:8080"
    assert settings.client_base_url == "http://localhost:3000"
    assert settings.discord_redirect_uri == "http://localhost:8080/api/auth/callback"


def test_short_secret_rejected():
    with pytest.raises(ValidationError):
        make_settings(JWT_SECRET="too-short")


def test_asymmetric_algorithm_rejected():
    with pytest.raises(ValidationError):
        make_settings(JWT_ALGORITHM="RS256")


def test_expiry_must_be_positive():
    with pytest.raises(ValidationError):
        make_settings(SESSION_JWT_EXPIRY_MINUTES=0)


def test_allowed_origins_list():
    settings = make_settings(ALLOWED_ORIGINS=" https://vault.test, http://localhost:3000 ,")
    assert settings.allowed_origins_list == ["https://vault.test", "http://localhost:3000"]


def test_validate_configuration_warnings(settings):
    report = validate_configuration(settings)

    assert report["valid"]
    assert report["environment"] == "PRODUCTION"
    assert any("never expire" in warning for warning in report["warnings"])


def test_validate_configuration_relative_client_url():
    report = validate_configuration(make_settings(CLIENT_URL="vault.test"))

    assert not report["valid"]
    assert any("Client base URL" in error for error in report["errors"])
