"""Tests for per-tenant SMTP settings resolution."""

import pytest

from app.domain.models import SmtpProfile
from app.notifications.settings import EmailSettingsResolver
from app.persistence import (
    RecordNotFoundError,
    TenantConfigurationError,
    close_database,
    get_session,
    init_database,
)
from app.persistence.schema import EmailSettingsModel
from tests.helpers import seed_tenant

DEFAULT_SENDER = "system@notifier.example.com"


@pytest.fixture(autouse=True)
def database():
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def resolver():
    return EmailSettingsResolver(default_sender=DEFAULT_SENDER)


def test_resolves_profile(resolver):
    with get_session() as session:
        seed_tenant(
            session,
            code="TX",
            is_live=True,
            password="pw",
            user_name="relay-user",
            support_email="help@tx.example.com",
        )

    profile = resolver.resolve("TX")

    assert profile.tenant_code == "TX"
    assert profile.host == "smtp.tx.example.com"
    assert profile.port == 587
    assert profile.sender == "notices@tx.example.com"
    assert profile.username == "relay-user"
    assert profile.password == "pw"
    assert profile.is_live is True
    assert profile.support_email == "help@tx.example.com"


def test_blank_sender_falls_back_to_default(resolver):
    with get_session() as session:
        seed_tenant(session, code="TX", sender="  ")

    assert resolver.resolve("TX").sender == DEFAULT_SENDER


def test_missing_settings_raises_not_found(resolver):
    """Test a tenant without an active settings row fails before any send."""
    with get_session() as session:
        seed_tenant(session, code="ZZ", with_email_settings=False)

    with pytest.raises(TenantConfigurationError) as exc_info:
        resolver.resolve("ZZ")

    assert exc_info.value.tenant == "ZZ"
    assert isinstance(exc_info.value, RecordNotFoundError)


def test_inactive_settings_row_is_ignored(resolver):
    with get_session() as session:
        seed_tenant(session, code="TX")
        session.query(EmailSettingsModel).update({EmailSettingsModel.active: False})

    with pytest.raises(TenantConfigurationError):
        resolver.resolve("TX")


def test_missing_client_settings_raises(resolver):
    with get_session() as session:
        seed_tenant(session, code="TX", with_client_settings=False)

    with pytest.raises(TenantConfigurationError, match="client settings"):
        resolver.resolve("TX")


def test_route_live_uses_recipients():
    profile = SmtpProfile(tenant_code="TX", host="h", port=25, sender="s@x.com", is_live=True)

    assert profile.route(["a@x.com", "b@x.com"], "observer@x.com") == "a@x.com, b@x.com"


def test_route_non_live_uses_test_and_observer_addresses():
    """Test non-live tenants discard recipients and mail the test address plus observer."""
    profile = SmtpProfile(
        tenant_code="TX",
        host="h",
        port=25,
        sender="s@x.com",
        is_live=False,
        test_address="test@x.com",
    )

    routed = profile.route(["a@x.com", "b@x.com"], "chris.tate@b2Gnow.com")

    assert routed == "test@x.com, chris.tate@b2Gnow.com"


def test_route_non_live_without_observer():
    profile = SmtpProfile(
        tenant_code="TX", host="h", port=25, sender="s@x.com", test_address="test@x.com"
    )

    assert profile.route(["a@x.com"]) == "test@x.com"


def test_profile_repr_hides_password():
    profile = SmtpProfile(tenant_code="TX", host="h", port=25, sender="s@x.com", password="hunter2")

    assert "hunter2" not in repr(profile)
