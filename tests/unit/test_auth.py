import jwt
import pytest

from katzai.core.auth import SessionVerifier
from katzai.core.errors import AuthenticationError


def test_valid_token_yields_store_session(verifier, session_token, store_id):
    session = verifier.verify(session_token)

    assert session.store_id == store_id
    assert session.role == "EMPLOYEE"


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_missing_or_garbled_token_redirects(verifier, token):
    with pytest.raises(AuthenticationError) as excinfo:
        verifier.verify(token)

    assert excinfo.value.redirect_to == "/login"


def test_token_signed_with_other_secret_is_rejected(session_token):
    other = SessionVerifier("another-secret-another-secret-1234", login_path="/signin")

    with pytest.raises(AuthenticationError) as excinfo:
        other.verify(session_token)

    assert excinfo.value.redirect_to == "/signin"


def test_token_without_store_is_rejected(verifier):
    token = jwt.encode({"userId": "u1"}, "test-secret-test-secret-test-secret!", algorithm="HS256")

    with pytest.raises(AuthenticationError):
        verifier.verify(token)
