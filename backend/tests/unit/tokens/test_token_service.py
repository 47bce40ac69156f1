# tests/unit/tokens/test_token_service.py
from __future__ import annotations

import pytest

from tests.factories.role import UserRoleFactory
from tests.factories.user import UserFactory
from tokenauth.models.role import RoleType
from tokenauth.models.user import User, UserStatus
from tokenauth.services._shared.errors import (
    AccountSuspendedError,
    EmailNotVerifiedError,
    InvalidTokenError,
    TokenErrorCode,
)
from tokenauth.services.tokens import TokenKind, TokenSubject


@pytest.fixture()
def customer(roles):
    user = UserFactory()
    UserRoleFactory(user_id=user.id, role_id=roles[RoleType.CUSTOMER].id)
    return user


@pytest.fixture()
def refresh_token(components, customer) -> str:
    subject = TokenSubject(user_id=customer.id, email=customer.email)
    return components.registry.issue_for(subject).token


def _update_user(session, user_id, **values) -> None:
    user = session.get(User, user_id)
    for key, value in values.items():
        setattr(user, key, value)
    session.commit()


def test_refresh_returns_new_pair(components, customer, refresh_token):
    pair = components.tokens.refresh_access_token(refresh_token, device_info="cli")

    assert pair.token_type == "Bearer"
    assert pair.expires_in == 900
    assert pair.refresh_token != refresh_token

    access = components.codec.verify(pair.access_token, TokenKind.ACCESS)
    assert access.valid
    assert access.subject == str(customer.id)
    assert access.roles == (RoleType.CUSTOMER,)

    refresh = components.codec.verify(pair.refresh_token, TokenKind.REFRESH)
    assert refresh.valid
    assert components.registry.is_valid(refresh.jti)


def test_refresh_token_is_single_use(components, refresh_token):
    components.tokens.refresh_access_token(refresh_token)

    with pytest.raises(InvalidTokenError) as exc:
        components.tokens.refresh_access_token(refresh_token)
    assert exc.value.error_code is TokenErrorCode.INVALID_SIGNATURE


def test_rotated_token_can_be_refreshed_again(components, refresh_token):
    first = components.tokens.refresh_access_token(refresh_token)
    second = components.tokens.refresh_access_token(first.refresh_token)
    assert second.refresh_token not in (refresh_token, first.refresh_token)


def test_new_access_token_carries_current_roles(components, customer, roles, refresh_token):
    UserRoleFactory(user_id=customer.id, role_id=roles[RoleType.SELLER].id)

    pair = components.tokens.refresh_access_token(refresh_token)

    access = components.codec.verify(pair.access_token, TokenKind.ACCESS)
    assert access.roles == (RoleType.CUSTOMER, RoleType.SELLER)


def test_suspended_user_cannot_refresh(components, session, customer, refresh_token):
    _update_user(session, customer.id, status=UserStatus.SUSPENDED)

    with pytest.raises(AccountSuspendedError):
        components.tokens.refresh_access_token(refresh_token)

    # Nothing was rotated
    jti = components.codec.verify(refresh_token, TokenKind.REFRESH).jti
    assert components.registry.is_valid(jti) is True


def test_unverified_user_cannot_refresh(components, session, customer, refresh_token):
    _update_user(session, customer.id, email_verified=False)

    with pytest.raises(EmailNotVerifiedError):
        components.tokens.refresh_access_token(refresh_token)


def test_deleted_user_cannot_refresh(components, session, customer, refresh_token):
    session.delete(session.get(User, customer.id))
    session.commit()

    with pytest.raises(InvalidTokenError) as exc:
        components.tokens.refresh_access_token(refresh_token)
    assert exc.value.error_code is TokenErrorCode.MISSING_CLAIMS


def test_revoked_refresh_token_is_rejected(components, refresh_token):
    jti = components.codec.verify(refresh_token, TokenKind.REFRESH).jti
    components.registry.revoke(jti)

    with pytest.raises(InvalidTokenError) as exc:
        components.tokens.refresh_access_token(refresh_token)
    assert exc.value.error_code is TokenErrorCode.INVALID_SIGNATURE


def test_unrecorded_refresh_token_is_rejected(components, customer):
    # Correctly signed, but never recorded by the registry
    token = components.codec.issue(TokenKind.REFRESH, customer.id, customer.email)

    with pytest.raises(InvalidTokenError):
        components.tokens.refresh_access_token(token)


def test_access_token_is_not_accepted(components, customer):
    token = components.codec.issue(
        TokenKind.ACCESS, customer.id, customer.email, [RoleType.CUSTOMER]
    )

    with pytest.raises(InvalidTokenError) as exc:
        components.tokens.refresh_access_token(token)
    assert exc.value.error_code is TokenErrorCode.WRONG_TOKEN_TYPE


def test_garbage_is_malformed(components):
    with pytest.raises(InvalidTokenError) as exc:
        components.tokens.refresh_access_token("definitely.not.a-jwt")
    assert exc.value.error_code is TokenErrorCode.MALFORMED
