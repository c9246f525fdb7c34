"""Tests for the signed token codec and agent identities."""

import json

import pytest

from swap_agents.core.tokens import (
    TokenError,
    decode_token,
    decode_token_payload,
    find_tokens,
    log_token_payload,
    token_type_of,
    verify_token,
    _b64url_decode,
    _b64url_encode
)
from swap_agents.types import TokenType


def _tamper_claims(token: str, **changes) -> str:
    header, payload, signature = token.split(".")
    claims = json.loads(_b64url_decode(payload))
    claims.update(changes)
    new_payload = _b64url_encode(json.dumps(claims).encode())
    return f"{header}.{new_payload}.{signature}"


class TestAgentIdentity:
    """Test token issuance by an identity."""

    def test_address_is_checksummed(self, user_identity):
        assert user_identity.address.startswith("0x")
        assert len(user_identity.address) == 42

    def test_issue_adds_standard_claims(self, user_identity):
        token = user_identity.issue_token(TokenType.CHAT, {"message": "hi"}, ttl_seconds=60)
        claims = decode_token_payload(token)

        assert claims["iss"] == user_identity.address
        assert claims["message"] == "hi"
        assert claims["exp"] == claims["iat"] + 60
        assert len(claims["jti"]) == 32

    def test_token_ids_are_unique(self, user_identity):
        first = decode_token_payload(user_identity.issue_token(TokenType.CHAT, {}))
        second = decode_token_payload(user_identity.issue_token(TokenType.CHAT, {}))
        assert first["jti"] != second["jti"]
        assert "exp" not in first


class TestDecodeAndVerify:
    """Test decoding and verification."""

    def test_round_trip_recovers_signer(self, user_identity):
        token = user_identity.issue_token(TokenType.CHAT, {"message": "hi"})
        decoded = decode_token(token)

        assert decoded.signer == user_identity.address
        assert decoded.header == {"alg": "ES256K-R", "typ": TokenType.CHAT}

    def test_verify_expected_signer(self, user_identity, service_identity):
        token = user_identity.issue_token(TokenType.CHAT, {})
        verify_token(token, expected_signer=user_identity.address)
        with pytest.raises(TokenError, match="untrusted"):
            verify_token(token, expected_signer=service_identity.address)

    def test_verify_token_type(self, user_identity):
        token = user_identity.issue_token(TokenType.CHAT, {})
        with pytest.raises(TokenError, match="Expected"):
            verify_token(token, token_type=TokenType.PAYMENT_RECEIPT)

    def test_expired_token(self, user_identity):
        token = user_identity.issue_token(TokenType.CHAT, {}, ttl_seconds=10)
        exp = decode_token_payload(token)["exp"]
        verify_token(token, now=exp - 1)
        with pytest.raises(TokenError, match="expired"):
            verify_token(token, now=exp)

    def test_tampered_claims_fail(self, user_identity):
        """Test that edited claims no longer match the signature."""
        token = user_identity.issue_token(TokenType.PAYMENT_RECEIPT, {"amount": 100})
        tampered = _tamper_claims(token, amount=1)
        with pytest.raises(TokenError):
            verify_token(tampered, expected_signer=user_identity.address)

    def test_forged_issuer_fails(self, user_identity, service_identity):
        """Test that claiming another issuer is detected."""
        token = user_identity.issue_token(TokenType.CHAT, {})
        forged = _tamper_claims(token, iss=service_identity.address)
        with pytest.raises(TokenError):
            verify_token(forged)

    @pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d", "!!.??.**"])
    def test_malformed_tokens(self, token):
        with pytest.raises(TokenError):
            decode_token(token)


class TestHelpers:
    """Test unverified helpers used for routing and logging."""

    def test_token_type_of(self, user_identity):
        token = user_identity.issue_token(TokenType.PAYMENT_REQUEST, {})
        assert token_type_of(token) == TokenType.PAYMENT_REQUEST
        assert token_type_of("not a token") is None

    def test_find_tokens_in_text(self, user_identity):
        token = user_identity.issue_token(TokenType.PAYMENT_RECEIPT, {"sub": "swap_1"})
        text = f"Payment completed successfully. Receipt: {token}. Please proceed."
        assert find_tokens(text) == [token]

    def test_find_tokens_ignores_dotted_words(self):
        assert find_tokens("rate 150.00 at example.com.au") == []

    def test_log_token_payload(self, user_identity, caplog):
        token = user_identity.issue_token(TokenType.CHAT, {"message": "hi"})
        with caplog.at_level("DEBUG", logger="swap_agents.core.tokens"):
            log_token_payload(token, "Outgoing chat")
            log_token_payload(token, "Disabled", enabled=False)
        assert "Outgoing chat payload" in caplog.text
        assert "Disabled" not in caplog.text

    def test_log_undecodable_token_warns(self, caplog):
        with caplog.at_level("WARNING", logger="swap_agents.core.tokens"):
            log_token_payload("garbage", "Payment token")
        assert "Could not decode Payment token" in caplog.text
