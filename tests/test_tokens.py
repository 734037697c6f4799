"""Unit tests for auth/tokens.py -- session token issuance and validation.

Covers:
- issue() then validate() returns the subject
- validity through the exact expiry second, TokenExpired one second later
- tampered subject or expiry -> BadSignature, never a different subject
- algorithm pinning: "none" and HS512 -> UnexpectedAlgorithm
- structural garbage and missing claims -> MalformedToken
- wrong secret -> BadSignature
- missing secret -> ConfigError at construction
"""

from __future__ import annotations

import base64
import json

import pytest
from jose import jwt

from auth.errors import BadSignature, ConfigError, MalformedToken, TokenError, TokenExpired, UnexpectedAlgorithm
from auth.tokens import TokenService

SECRET = b"token-tests-secret-key-0123456789abcdef"


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _claims_of(token: str) -> dict:
    segment = token.split(".")[1]
    return json.loads(base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4)))


def _with_claims(token: str, **changes) -> str:
    """Rewrite the claims segment of token, keeping the original header and signature."""
    header, _payload, signature = token.split(".")
    claims = _claims_of(token)
    claims.update(changes)
    return f"{header}.{_b64(claims)}.{signature}"


@pytest.fixture
def tokens(clock) -> TokenService:
    return TokenService(secret=SECRET, ttl_seconds=100, clock=clock)


class TestIssueAndValidate:
    def test_round_trip_returns_subject(self, tokens: TokenService) -> None:
        assert tokens.validate(tokens.issue("alice")) == "alice"

    def test_claims_carry_ttl(self, tokens: TokenService, clock) -> None:
        claims = tokens.decode(tokens.issue("alice"))
        assert claims.subject == "alice"
        assert claims.issued_at == int(clock.now)
        assert claims.expires_at == int(clock.now) + 100

    def test_each_issue_is_a_distinct_token(self, tokens: TokenService) -> None:
        """Same subject, same second: the tokens still differ and both validate."""
        first = tokens.issue("alice")
        second = tokens.issue("alice")
        assert first != second
        assert tokens.validate(first) == tokens.validate(second) == "alice"

    def test_header_pins_hs256(self, tokens: TokenService) -> None:
        assert jwt.get_unverified_header(tokens.issue("alice"))["alg"] == "HS256"

    def test_default_ttl_is_one_day(self) -> None:
        assert TokenService(secret=SECRET).ttl_seconds == 24 * 60 * 60


class TestExpiry:
    def test_valid_at_exact_expiry(self, tokens: TokenService, clock) -> None:
        token = tokens.issue("alice")
        clock.advance(100)
        assert tokens.validate(token) == "alice"

    def test_expired_one_second_after(self, tokens: TokenService, clock) -> None:
        token = tokens.issue("alice")
        clock.advance(101)
        with pytest.raises(TokenExpired):
            tokens.validate(token)

    def test_expired_stays_expired(self, tokens: TokenService, clock) -> None:
        token = tokens.issue("alice")
        clock.advance(10_000)
        for _ in range(3):
            with pytest.raises(TokenExpired):
                tokens.validate(token)


class TestTampering:
    def test_changed_subject_is_bad_signature(self, tokens: TokenService) -> None:
        forged = _with_claims(tokens.issue("alice"), sub="mallory")
        with pytest.raises(BadSignature):
            tokens.validate(forged)

    def test_extended_expiry_is_bad_signature(self, tokens: TokenService) -> None:
        token = tokens.issue("alice")
        forged = _with_claims(token, exp=_claims_of(token)["exp"] + 3600)
        with pytest.raises(BadSignature):
            tokens.validate(forged)

    def test_tampered_and_expired_reports_signature(self, tokens: TokenService, clock) -> None:
        """Signature is checked before expiry, so forgery is never reported as mere expiry."""
        forged = _with_claims(tokens.issue("alice"), sub="mallory")
        clock.advance(10_000)
        with pytest.raises(BadSignature):
            tokens.validate(forged)

    def test_other_secret_is_bad_signature(self, tokens: TokenService, clock) -> None:
        other = TokenService(secret=b"another-secret-key-0123456789abcdef", ttl_seconds=100, clock=clock)
        with pytest.raises(BadSignature):
            tokens.validate(other.issue("alice"))

    def test_truncated_signature_is_bad_signature(self, tokens: TokenService) -> None:
        token = tokens.issue("alice")
        with pytest.raises(BadSignature):
            tokens.validate(token[:-4])


class TestAlgorithmPinning:
    def test_alg_none_rejected(self, tokens: TokenService, clock) -> None:
        header = _b64({"alg": "none", "typ": "JWT"})
        claims = _b64({"sub": "mallory", "iat": int(clock.now), "exp": int(clock.now) + 100})
        with pytest.raises(UnexpectedAlgorithm):
            tokens.validate(f"{header}.{claims}.")

    def test_hs512_with_same_secret_rejected(self, tokens: TokenService, clock) -> None:
        token = jwt.encode({"sub": "alice", "exp": int(clock.now) + 100}, SECRET, algorithm="HS512")
        with pytest.raises(UnexpectedAlgorithm):
            tokens.validate(token)


class TestMalformed:
    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b", "a.b.c.d", "!!!.???.***"])
    def test_garbage_is_malformed(self, tokens: TokenService, token: str) -> None:
        with pytest.raises(MalformedToken):
            tokens.validate(token)

    def test_missing_subject_is_malformed(self, tokens: TokenService, clock) -> None:
        token = jwt.encode({"exp": int(clock.now) + 100}, SECRET, algorithm="HS256")
        with pytest.raises(MalformedToken):
            tokens.validate(token)

    def test_missing_expiry_is_malformed(self, tokens: TokenService) -> None:
        token = jwt.encode({"sub": "alice"}, SECRET, algorithm="HS256")
        with pytest.raises(MalformedToken):
            tokens.validate(token)

    def test_outcomes_share_a_base_class(self) -> None:
        for cls in (MalformedToken, UnexpectedAlgorithm, BadSignature, TokenExpired):
            assert issubclass(cls, TokenError)


class TestConfiguration:
    def test_empty_secret_is_config_error(self) -> None:
        with pytest.raises(ConfigError):
            TokenService(secret=b"")

    def test_non_positive_ttl_is_config_error(self) -> None:
        with pytest.raises(ConfigError):
            TokenService(secret=SECRET, ttl_seconds=0)
