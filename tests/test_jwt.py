import uuid
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from authgate.auth.jwt import TokenIssuer, ACCESS, REFRESH
from authgate.core.errors import InvalidToken


def test_issue_embeds_subject_role_and_session(token_issuer):
    principal_id = uuid.uuid4()
    session_id = uuid.uuid4()

    tokens = token_issuer.issue(principal_id, "patient", session_id=session_id)
    access = token_issuer.verify(tokens.access, expected_type=ACCESS)
    refresh = token_issuer.verify(tokens.refresh, expected_type=REFRESH)

    for claims in (access, refresh):
        assert claims.sub == str(principal_id)
        assert claims.role == "patient"
        assert claims.sid == str(session_id)
        assert claims.iss == "authgate-test"
    assert access.jti != refresh.jti


def test_expiry_ordering(token_issuer):
    tokens = token_issuer.issue(uuid.uuid4(), "nurse")

    assert tokens.access_expires_at > tokens.issued_at
    assert tokens.refresh_expires_at > tokens.issued_at
    assert tokens.access_expires_at <= tokens.refresh_expires_at
    assert tokens.access_expires_at - tokens.issued_at == timedelta(minutes=15)

    claims = token_issuer.verify(tokens.access)
    assert claims.exp > claims.iat
    assert claims.exp == tokens.access_expires_at


def test_wrong_token_type_is_rejected(token_issuer):
    tokens = token_issuer.issue(uuid.uuid4(), "patient")

    with pytest.raises(InvalidToken):
        token_issuer.verify(tokens.refresh, expected_type=ACCESS)
    with pytest.raises(InvalidToken):
        token_issuer.verify(tokens.access, expected_type=REFRESH)


def test_token_signed_with_another_key_is_rejected(token_issuer):
    other = TokenIssuer(secret_key="some-other-key", issuer="authgate-test")
    tokens = other.issue(uuid.uuid4(), "patient")

    with pytest.raises(InvalidToken):
        token_issuer.verify(tokens.access)


def test_key_is_a_parameter(token_issuer):
    rotated = TokenIssuer(secret_key="rotated-key", issuer="authgate-test")
    tokens = rotated.issue(uuid.uuid4(), "admin")

    assert rotated.verify(tokens.access).role == "admin"
    assert jwt.get_unverified_claims(tokens.access)["iss"] == "authgate-test"


def test_tampered_token_is_rejected(token_issuer):
    tokens = token_issuer.issue(uuid.uuid4(), "patient")
    header, payload, signature = tokens.access.split(".")
    flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
    tampered = ".".join([header, payload, flipped])

    with pytest.raises(InvalidToken):
        token_issuer.verify(tampered)


def test_issuer_mismatch_is_rejected(token_issuer):
    foreign = TokenIssuer(secret_key="test-signing-key", issuer="someone-else")
    tokens = foreign.issue(uuid.uuid4(), "patient")

    with pytest.raises(InvalidToken):
        token_issuer.verify(tokens.access)


def test_expired_token_is_rejected():
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    issuer = TokenIssuer(
        secret_key="k",
        access_ttl=timedelta(minutes=5),
        refresh_ttl=timedelta(days=1),
        clock=lambda: past,
    )
    tokens = issuer.issue(uuid.uuid4(), "patient")

    with pytest.raises(InvalidToken, match="expired"):
        issuer.verify(tokens.access)
    assert issuer.verify(tokens.refresh, expected_type=REFRESH).role == "patient"


@pytest.mark.parametrize(
    "access_ttl, refresh_ttl",
    [
        (timedelta(0), timedelta(days=1)),
        (timedelta(minutes=-1), timedelta(days=1)),
        (timedelta(days=1), timedelta(days=1)),
        (timedelta(days=2), timedelta(days=1)),
    ],
)
def test_invalid_lifetimes_are_refused(access_ttl, refresh_ttl):
    with pytest.raises(ValueError):
        TokenIssuer(secret_key="k", access_ttl=access_ttl, refresh_ttl=refresh_ttl)


def test_empty_key_is_refused():
    with pytest.raises(ValueError):
        TokenIssuer(secret_key="")
