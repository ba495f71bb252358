"""Tests for blockproducer.auth.credentials."""

from __future__ import annotations

import jwt
import pytest

from blockproducer.auth.credentials import (
    ALGORITHM,
    SECRET_LENGTH,
    Claims,
    JwtCredential,
    authorize_header,
    decode_hex_secret,
    extract_bearer,
    generate_secret,
    issue,
    verify,
)
from blockproducer.utils.exceptions import (
    ErrorCategory,
    ExpiredCredentialError,
    InvalidSignatureError,
    MalformedCredentialError,
    MissingCredentialError,
    ValidationError,
)

SECRET = bytes.fromhex("aa" * 32)
OTHER_SECRET = bytes.fromhex("bb" * 32)


def fixed(t: float):
    return lambda: t


class TestIssueVerify:
    def test_round_trip_claims(self) -> None:
        token = issue(SECRET, 60, now=fixed(1_700_000_000))
        claims = verify(token, SECRET, now=fixed(1_700_000_030))
        assert claims == Claims(issued_at=1_700_000_000, expires_at=1_700_000_060)
        assert claims.validity_seconds == 60

    def test_token_carries_only_iat_and_exp(self) -> None:
        token = issue(SECRET, 3600, now=fixed(1000))
        header = jwt.get_unverified_header(token)
        payload = jwt.decode(token, options={"verify_signature": False})
        assert header["alg"] == ALGORITHM
        assert payload == {"iat": 1000, "exp": 4600}

    def test_expiry_boundary_is_inclusive(self) -> None:
        token = issue(SECRET, 60, now=fixed(1000))
        assert verify(token, SECRET, now=fixed(1060)).expires_at == 1060
        with pytest.raises(ExpiredCredentialError) as exc_info:
            verify(token, SECRET, now=fixed(1061))
        assert exc_info.value.code == "AUTH_EXPIRED"
        assert exc_info.value.details == {"expires_at": 1060, "checked_at": 1061}

    def test_fraction_of_a_second_past_exp_is_expired(self) -> None:
        token = issue(SECRET, 10, now=fixed(1000.0))
        assert verify(token, SECRET, now=fixed(1010.0)).expires_at == 1010
        with pytest.raises(ExpiredCredentialError) as exc_info:
            verify(token, SECRET, now=fixed(1010.5))
        assert exc_info.value.details == {"expires_at": 1010, "checked_at": 1010}

    def test_wrong_secret_is_invalid_signature(self) -> None:
        token = issue(SECRET, 60, now=fixed(1000))
        with pytest.raises(InvalidSignatureError) as exc_info:
            verify(token, OTHER_SECRET, now=fixed(1000))
        assert exc_info.value.category == ErrorCategory.PERMISSION

    @pytest.mark.parametrize("token", ["", "not-a-jwt", "not.a.token"])
    def test_garbage_token_is_malformed(self, token: str) -> None:
        with pytest.raises(MalformedCredentialError):
            verify(token, SECRET, now=fixed(1000))

    def test_extra_claims_are_malformed(self) -> None:
        token = jwt.encode({"iat": 1000, "exp": 2000, "sub": "node"}, SECRET, algorithm=ALGORITHM)
        with pytest.raises(MalformedCredentialError):
            verify(token, SECRET, now=fixed(1000))

    def test_missing_exp_is_malformed(self) -> None:
        token = jwt.encode({"iat": 1000}, SECRET, algorithm=ALGORITHM)
        with pytest.raises(MalformedCredentialError):
            verify(token, SECRET, now=fixed(1000))

    def test_non_integer_claims_are_malformed(self) -> None:
        token = jwt.encode({"iat": "yesterday", "exp": 2000}, SECRET, algorithm=ALGORITHM)
        with pytest.raises(MalformedCredentialError):
            verify(token, SECRET, now=fixed(1000))

    def test_validity_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            issue(SECRET, 0)


class TestExtractBearer:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            ("Basic xyz", None),
            ("", None),
            (None, None),
            ("bearer abc.def.ghi", None),
            ("Bearer", None),
        ],
    )
    def test_literal_prefix_only(self, header: str | None, expected: str | None) -> None:
        assert extract_bearer(header) == expected


class TestAuthorizeHeader:
    def test_valid_header(self) -> None:
        token = issue(SECRET, 60, now=fixed(1000))
        claims = authorize_header(f"Bearer {token}", SECRET, now=fixed(1001))
        assert claims.issued_at == 1000

    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_header(self, header: str | None) -> None:
        with pytest.raises(MissingCredentialError) as exc_info:
            authorize_header(header, SECRET)
        assert exc_info.value.code == "AUTH_MISSING"

    @pytest.mark.parametrize("header", ["Basic xyz", "Bearer ", "Token abc"])
    def test_non_bearer_header(self, header: str) -> None:
        with pytest.raises(MalformedCredentialError):
            authorize_header(header, SECRET)


class TestSecrets:
    def test_generate_secret_length_and_uniqueness(self) -> None:
        first, second = generate_secret(), generate_secret()
        assert len(first) == SECRET_LENGTH
        assert first != second

    def test_decode_hex_secret_accepts_prefix_and_whitespace(self) -> None:
        assert decode_hex_secret("0x" + "aa" * 32 + "\n") == SECRET
        assert decode_hex_secret("  " + "AA" * 32) == SECRET

    @pytest.mark.parametrize("value", ["", "0x", "zz" * 32, "abc"])
    def test_decode_hex_secret_rejects_garbage(self, value: str) -> None:
        with pytest.raises(ValidationError):
            decode_hex_secret(value)


class TestJwtCredential:
    def test_auth_headers_carry_fresh_bearer(self) -> None:
        now = [1000.0]
        credential = JwtCredential(SECRET, 60, clock=lambda: now[0])
        first = credential.auth_headers()["Authorization"]
        now[0] = 2000.0
        second = credential.auth_headers()["Authorization"]
        assert first.startswith("Bearer ")
        assert first != second
        assert credential.authorize(second).issued_at == 2000

    def test_from_hex_string(self) -> None:
        credential = JwtCredential.from_hex_string("0x" + "aa" * 32, validity_seconds=30)
        assert credential.secret == SECRET
        assert credential.validity_seconds == 30

    def test_repr_hides_secret(self) -> None:
        assert SECRET.hex() not in repr(JwtCredential(SECRET))

    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValidationError):
            JwtCredential(b"")
