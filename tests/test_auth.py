import pytest

from best6.auth import AccountAuthProvider, BypassAuthProvider, make_auth_provider
from best6.errors import AuthenticationError, ValidationError


def test_make_auth_provider(backend):
    assert isinstance(make_auth_provider({"AUTH_STRATEGY": "bypass"}, backend), BypassAuthProvider)
    assert isinstance(make_auth_provider({}, backend), BypassAuthProvider)
    provider = make_auth_provider({"AUTH_STRATEGY": "ACCOUNT"}, backend)
    assert isinstance(provider, AccountAuthProvider)
    assert provider.backend is backend

    with pytest.raises(ValueError):
        make_auth_provider({"AUTH_STRATEGY": "magic"}, backend)


def test_bypass_is_always_signed_in():
    provider = BypassAuthProvider()
    assert provider.is_authenticated
    assert provider.current_user_id() is None
    provider.sign_in("a@example.com", "x")
    provider.sign_out()
    assert provider.is_authenticated


def test_account_sign_up_and_sign_in(backend):
    provider = AccountAuthProvider(backend)
    assert not provider.is_authenticated

    user_id = provider.sign_up("Pat@Example.com", "s3cret", "Pat")
    assert provider.current_user_id() == user_id

    provider.sign_out()
    assert provider.current_user_id() is None

    assert provider.sign_in("pat@example.com", "s3cret") == user_id
    assert provider.is_authenticated
    assert backend.get_profile(user_id) == {"id": user_id, "name": "Pat"}


def test_account_bad_credentials(backend):
    provider = AccountAuthProvider(backend)
    provider.sign_up("pat@example.com", "s3cret")

    provider.sign_out()
    with pytest.raises(AuthenticationError):
        provider.sign_in("pat@example.com", "wrong")
    with pytest.raises(AuthenticationError):
        provider.sign_in("nobody@example.com", "s3cret")
    assert not provider.is_authenticated


def test_duplicate_registration(backend):
    provider = AccountAuthProvider(backend)
    provider.sign_up("pat@example.com", "s3cret")
    with pytest.raises(ValidationError):
        provider.sign_up("PAT@example.com", "other")
