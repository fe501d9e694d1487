from __future__ import annotations

import pytest
from itsdangerous import TimestampSigner

from src.visitor_management.visitor_management.auth.tokens import TokenService
from src.visitor_management.visitor_management.core.enums import Role
from src.visitor_management.visitor_management.core.exceptions import AuthenticationError


def test_issue_and_decode_round_trip(user_factory):
    tokens = TokenService("secret", max_age=60)
    token = tokens.issue(user_factory(7, role=Role.MANAGER))

    payload = tokens.decode(token)

    assert payload == {"id": 7, "email": "user7@example.com", "role": "Manager"}


def test_expired_token_reports_token_expired(user_factory):
    tokens = TokenService("secret", max_age=-1, refresh_grace=3600)
    token = tokens.issue(user_factory())

    with pytest.raises(AuthenticationError) as exc:
        tokens.decode(token)

    assert exc.value.code == "TOKEN_EXPIRED"
    # still inside the refresh grace window
    assert tokens.decode_for_refresh(token)["id"] == 1


def test_token_signed_with_other_key_is_invalid(user_factory):
    token = TokenService("other").issue(user_factory())

    with pytest.raises(AuthenticationError) as exc:
        TokenService("secret").decode(token)

    assert exc.value.code == "INVALID_TOKEN"


def test_garbage_token_is_invalid():
    with pytest.raises(AuthenticationError) as exc:
        TokenService("secret").decode("not-a-token")

    assert exc.value.code == "INVALID_TOKEN"


def test_refresh_grace_window_has_an_end(user_factory, monkeypatch):
    tokens = TokenService("secret", max_age=10, refresh_grace=5)
    monkeypatch.setattr(TimestampSigner, "get_timestamp", lambda self: 1_000_000)
    token = tokens.issue(user_factory())

    monkeypatch.setattr(TimestampSigner, "get_timestamp", lambda self: 1_000_014)
    assert tokens.decode_for_refresh(token)["id"] == 1

    monkeypatch.setattr(TimestampSigner, "get_timestamp", lambda self: 1_000_016)
    with pytest.raises(AuthenticationError) as exc:
        tokens.decode_for_refresh(token)

    assert exc.value.code == "TOKEN_EXPIRED"
