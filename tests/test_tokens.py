"""
TokenCodec tests — issue/verify round trip, signature and structure
failures, and the expiry boundary.
"""
from datetime import timedelta

import jwt
import pytest

from boardapi.errors import MalformedToken
from boardapi.tokens import TokenCodec

from conftest import NOW, TEST_SECRET


def test_issue_sets_one_hour_expiry(codec: TokenCodec):
    issued = codec.issue("alice", NOW)
    assert issued.subject == "alice"
    assert issued.issued_at == NOW
    assert issued.expires_at == NOW + timedelta(hours=1)
    assert issued.max_age == 3600


def test_token_is_three_part_hs256(codec: TokenCodec):
    issued = codec.issue("alice", NOW)
    assert issued.token.count(".") == 2
    assert jwt.get_unverified_header(issued.token)["alg"] == "HS256"
    payload = jwt.decode(issued.token, TEST_SECRET, algorithms=["HS256"], options={"verify_exp": False})
    assert payload["sub"] == "alice"
    assert payload["exp"] - payload["iat"] == 3600


@pytest.mark.parametrize("subject", ["alice", "bob_99", "user.with.dots", "한글사용자"])
def test_verify_returns_issued_subject(codec: TokenCodec, subject: str):
    issued = codec.issue(subject, NOW)
    claims = codec.verify(issued.token)
    assert claims.subject == subject
    assert claims.expires_at == issued.expires_at


def test_issue_is_deterministic(codec: TokenCodec):
    assert codec.issue("alice", NOW).token == codec.issue("alice", NOW).token


def test_subsecond_now_is_truncated(codec: TokenCodec):
    issued = codec.issue("alice", NOW + timedelta(microseconds=750_000))
    assert issued.issued_at == NOW


def test_verify_does_not_reject_expired_tokens(codec: TokenCodec):
    issued = codec.issue("alice", NOW - timedelta(days=2))
    claims = codec.verify(issued.token)
    assert claims.subject == "alice"
    assert claims.is_expired(NOW)


@pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "not-a-token.at.all"])
def test_verify_rejects_unparsable(codec: TokenCodec, garbage: str):
    with pytest.raises(MalformedToken):
        codec.verify(garbage)


def test_verify_rejects_foreign_signature(codec: TokenCodec):
    other = TokenCodec("another-secret-key-with-32-bytes-or-more", ttl=timedelta(hours=1))
    with pytest.raises(MalformedToken):
        codec.verify(other.issue("alice", NOW).token)


def test_verify_rejects_tampered_payload(codec: TokenCodec):
    header, _, signature = codec.issue("alice", NOW).token.split(".")
    forged_payload = codec.issue("mallory", NOW).token.split(".")[1]
    with pytest.raises(MalformedToken):
        codec.verify(f"{header}.{forged_payload}.{signature}")


def test_verify_rejects_missing_claims(codec: TokenCodec):
    token = jwt.encode({"sub": "alice"}, TEST_SECRET, algorithm="HS256")
    with pytest.raises(MalformedToken):
        codec.verify(token)


def test_verify_rejects_unexpected_algorithm(codec: TokenCodec):
    token = jwt.encode(
        {"sub": "alice", "iat": int(NOW.timestamp()), "exp": int(NOW.timestamp()) + 60},
        TEST_SECRET,
        algorithm="HS512",
    )
    with pytest.raises(MalformedToken):
        codec.verify(token)


def test_is_expired_boundary(codec: TokenCodec):
    token = codec.issue("alice", NOW).token
    expires_at = NOW + timedelta(hours=1)
    assert codec.is_expired(token, expires_at - timedelta(seconds=1)) is False
    assert codec.is_expired(token, expires_at) is False
    assert codec.is_expired(token, expires_at + timedelta(seconds=1)) is True


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        TokenCodec("", ttl=timedelta(hours=1))
