"""Unit tests for roles, token claims and the token authority."""

from unittest.mock import AsyncMock

import pytest

from workflow_client.core.auth import (
    FRAUD_ANALYST,
    FRAUD_SUPERVISOR,
    PLATFORM_ADMIN,
    RULE_CHECKER,
    RULE_MAKER,
    RULE_VIEWER,
    SYSTEM_ROLES,
    AuthenticatedUser,
    TokenAuthority,
    expand_roles,
    filter_system_roles,
    get_token_roles,
    get_token_scopes,
    get_unverified_claims,
)
from workflow_client.core.config import AuthorityConfig
from workflow_client.core.errors import UnauthorizedError
from tests.utils.payloads import AUDIENCE, ROLES_CLAIM, make_token


class TestRoleHierarchy:
    """Tests for role filtering and expansion."""

    def test_filter_system_roles_keeps_known_roles_in_order(self):
        """Test unknown and duplicate roles are dropped."""
        roles = ["LEGACY_MAKER", RULE_CHECKER, FRAUD_ANALYST, RULE_CHECKER]
        assert filter_system_roles(roles) == [RULE_CHECKER, FRAUD_ANALYST]

    def test_platform_admin_expands_to_everything(self):
        assert expand_roles([PLATFORM_ADMIN]) == frozenset(SYSTEM_ROLES)

    def test_maker_and_checker_include_viewer(self):
        assert expand_roles([RULE_MAKER]) == {RULE_MAKER, RULE_VIEWER}
        assert expand_roles([RULE_CHECKER]) == {RULE_CHECKER, RULE_VIEWER}

    def test_supervisor_includes_analyst(self):
        assert expand_roles([FRAUD_SUPERVISOR]) == {FRAUD_SUPERVISOR, FRAUD_ANALYST}

    def test_leaf_roles_expand_to_themselves(self):
        assert expand_roles([RULE_VIEWER]) == {RULE_VIEWER}
        assert expand_roles([FRAUD_ANALYST]) == {FRAUD_ANALYST}
        assert expand_roles(["UNKNOWN"]) == frozenset()

    def test_authenticated_user_system_roles(self):
        """Test AuthenticatedUser exposes only known roles."""
        user = AuthenticatedUser(user_id="u1", roles=["OLD_ROLE", RULE_MAKER])
        assert user.system_roles == [RULE_MAKER]
        assert user.has_role("OLD_ROLE")


class TestTokenClaims:
    """Tests for reading scopes and roles out of tokens."""

    def test_get_unverified_claims(self):
        """Test claims are read without verifying the signature."""
        token = make_token({"sub": "auth0|analyst", "scope": "read:rules"})
        claims = get_unverified_claims(token)
        assert claims["sub"] == "auth0|analyst"

    def test_get_unverified_claims_rejects_garbage(self):
        """Test a malformed token raises UnauthorizedError."""
        with pytest.raises(UnauthorizedError) as exc_info:
            get_unverified_claims("not-a-jwt")
        assert exc_info.value.status == 401

    def test_scopes_from_space_separated_string(self):
        claims = {"scope": "read:rules  review:transactions"}
        assert get_token_scopes(claims) == ["read:rules", "review:transactions"]

    def test_scopes_from_scp_list(self):
        claims = {"scp": ["create:cases", 42]}
        assert get_token_scopes(claims) == ["create:cases"]

    def test_scopes_from_permissions_list(self):
        claims = {"permissions": ["resolve:cases"]}
        assert get_token_scopes(claims) == ["resolve:cases"]

    def test_scope_claim_takes_precedence(self):
        claims = {"scope": "read:rules", "permissions": ["admin:all"]}
        assert get_token_scopes(claims) == ["read:rules"]

    def test_no_scopes(self):
        assert get_token_scopes(None) == []
        assert get_token_scopes({"scope": 7}) == []

    def test_roles_from_namespaced_claim(self):
        claims = {ROLES_CLAIM: [RULE_MAKER, 3]}
        assert get_token_roles(claims, ROLES_CLAIM) == [RULE_MAKER]

    def test_roles_claim_not_a_list(self):
        assert get_token_roles({ROLES_CLAIM: RULE_MAKER}, ROLES_CLAIM) == []


class TestTokenAuthority:
    """Tests for TokenAuthority."""

    @pytest.mark.asyncio
    async def test_scopes_and_roles(self):
        """Test scopes come from the access token and roles from the ID token."""
        authority = TokenAuthority(
            access_token_provider=AsyncMock(return_value=make_token({"scope": "admin:all"})),
            id_token_provider=AsyncMock(return_value=make_token({ROLES_CLAIM: [RULE_CHECKER]})),
            config=AuthorityConfig(enabled=True, domain="tenant.test", audience=AUDIENCE),
        )

        assert await authority.get_scopes() == ["admin:all"]
        assert await authority.get_roles() == [RULE_CHECKER]

    @pytest.mark.asyncio
    async def test_missing_tokens_yield_nothing(self):
        """Test absent tokens mean no scopes and no roles."""
        authority = TokenAuthority(
            access_token_provider=AsyncMock(return_value=None),
            config=AuthorityConfig(enabled=True, domain="tenant.test", audience=AUDIENCE),
        )

        assert await authority.get_access_token_claims() is None
        assert await authority.get_scopes() == []
        assert await authority.get_roles() == []
