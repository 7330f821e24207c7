"""
AuthService flows end to end: signup, activation, login, logout and
password reset, over a real SQLite store with a recording notifier.
"""

import threading

import pytest

from accountgate.models.auth_models import (
    MSG_ACTIVATION_FAILED,
    MSG_ACTIVATION_MISSING,
    MSG_BAD_CREDENTIALS,
    MSG_EMAIL_NOT_FOUND,
    MSG_NOT_ACTIVATED,
    MSG_RESET_EXPIRED,
    MSG_RESET_INVALID,
)
from accountgate.models.enums import AccountState, AuthErrorCode
from accountgate.services import create_services


def _messages(result) -> dict[str, str]:
    return {e.field: e.message for e in result.errors}


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------

@pytest.mark.unit
class TestSignup:
    def test_creates_pending_account_and_sends_activation(self, auth, repo, notifier):
        result = auth.signup("alice", "Alice@Example.com", "secret1", "secret1")

        assert result.success is True
        stored = repo.get_by_email("alice@example.com")
        assert stored.activated is False
        assert stored.password_hash != "secret1"
        assert stored.activation_token and len(stored.activation_token) == 10

        sent = notifier.last("activate-account")
        assert sent.recipient == "alice@example.com"
        assert sent.context["token"] == stored.activation_token

    def test_reports_every_field_error_at_once(self, auth, repo, notifier):
        result = auth.signup("  ", "not-an-email", "abc", "xyz")

        assert result.success is False
        assert result.error_code == AuthErrorCode.VALIDATION_ERROR
        assert _messages(result) == {
            "username": "Username cannot be blank.",
            "email": "Email format is invalid.",
            "password": "Password must be at least 6 characters.",
            "password_confirmation": "Password confirmation does not match password.",
        }
        assert repo.list_accounts() == []
        assert notifier.sent == []

    def test_blank_email(self, auth):
        result = auth.signup("alice", "", "secret1", "secret1")
        assert _messages(result) == {"email": "Email cannot be blank."}

    def test_duplicate_email(self, auth, signup):
        signup()
        result = auth.signup("alice2", "ALICE@example.com", "secret1", "secret1")

        assert result.success is False
        assert _messages(result) == {"email": "Email is already in use."}

    def test_concurrent_signups_same_email_exactly_one_wins(self, auth, repo):
        barrier = threading.Barrier(2)
        results = []
        lock = threading.Lock()

        def _signup(name: str) -> None:
            barrier.wait()
            result = auth.signup(name, "race@example.com", "secret1", "secret1")
            with lock:
                results.append(result)

        threads = [threading.Thread(target=_signup, args=(n,)) for n in ("one", "two")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(r.success for r in results) == [False, True]
        loser = next(r for r in results if not r.success)
        assert _messages(loser) == {"email": "Email is already in use."}
        assert len(repo.list_accounts()) == 1


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------

@pytest.mark.unit
class TestActivation:
    def test_correct_token_activates_and_logs_in(self, auth, signup, repo, services):
        _, token = signup()

        result = auth.activate_account("alice@example.com", token)

        assert result.success is True
        assert result.account.activated is True
        assert repo.get_by_email("alice@example.com").activated is True
        claim = services["token_codec"].verify(result.session_token)
        assert claim.account_id == result.account.id

    def test_wrong_token_leaves_account_pending(self, auth, signup, repo):
        signup()

        result = auth.activate_account("alice@example.com", "wrongtoken")

        assert result.success is False
        assert result.error_code == AuthErrorCode.INVALID_TOKEN
        assert result.message == MSG_ACTIVATION_FAILED
        assert repo.get_by_email("alice@example.com").activated is False

    def test_unknown_email_looks_like_wrong_token(self, auth, signup):
        _, token = signup()
        result = auth.activate_account("ghost@example.com", token)
        assert result.message == MSG_ACTIVATION_FAILED

    @pytest.mark.parametrize("email,token", [("", "abc"), ("alice@example.com", ""), (None, None)])
    def test_missing_parameters(self, auth, email, token):
        result = auth.activate_account(email, token)
        assert result.error_code == AuthErrorCode.INVALID_TOKEN
        assert result.message == MSG_ACTIVATION_MISSING

    def test_repeat_activation_is_idempotent(self, auth, signup, repo):
        _, token = signup()
        first = auth.activate_account("alice@example.com", token)
        second = auth.activate_account("alice@example.com", token)

        assert first.success and second.success
        assert second.session_token
        assert repo.get_by_email("alice@example.com").activated is True


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------

@pytest.mark.unit
class TestLogin:
    def test_active_account_gets_session(self, auth, active_account, services):
        active_account()

        result = auth.login("ALICE@example.com", "secret1")

        assert result.success is True
        claim = services["token_codec"].verify(result.session_token)
        assert claim.username == "alice"

    def test_unknown_email_and_wrong_password_are_indistinguishable(self, auth, active_account):
        active_account()

        unknown = auth.login("nobody@example.com", "secret1")
        wrong = auth.login("alice@example.com", "wrong-password")

        assert unknown.model_dump() == wrong.model_dump()
        assert wrong.error_code == AuthErrorCode.INVALID_CREDENTIALS
        assert wrong.message == MSG_BAD_CREDENTIALS
        assert wrong.session_token is None

    def test_pending_account_refused_with_specific_message(self, auth, signup):
        signup()

        result = auth.login("alice@example.com", "secret1")

        assert result.success is False
        assert result.error_code == AuthErrorCode.NOT_ACTIVATED
        assert result.message == MSG_NOT_ACTIVATED
        assert result.session_token is None

    def test_pending_account_wrong_password_stays_generic(self, auth, signup):
        signup()
        result = auth.login("alice@example.com", "wrong-password")
        assert result.message == MSG_BAD_CREDENTIALS

    def test_blank_email(self, auth):
        result = auth.login("  ", "secret1")
        assert result.error_code == AuthErrorCode.VALIDATION_ERROR

    def test_logout_clears_session(self, auth):
        result = auth.logout()
        assert result.success is True
        assert result.clear_session is True


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

@pytest.mark.unit
class TestPasswordReset:
    @pytest.fixture
    def reset_token(self, auth, active_account, notifier):
        active_account()
        assert auth.request_password_reset("alice@example.com").success
        return notifier.last("reset-password").context["token"]

    def test_request_for_unknown_email(self, auth, notifier):
        result = auth.request_password_reset("nobody@example.com")

        assert result.error_code == AuthErrorCode.NOT_FOUND
        assert result.message == MSG_EMAIL_NOT_FOUND
        assert notifier.sent == []

    def test_request_stores_token_and_time(self, reset_token, repo, clock):
        stored = repo.get_by_email("alice@example.com")
        assert stored.reset_token == reset_token
        assert stored.reset_issued_at == clock.now

    def test_reset_sets_new_password_and_logs_in(self, auth, reset_token, services):
        result = auth.reset_password("alice@example.com", reset_token, "n3wpass", "n3wpass")

        assert result.success is True
        assert services["token_codec"].verify(result.session_token) is not None
        assert auth.login("alice@example.com", "n3wpass").success is True
        assert auth.login("alice@example.com", "secret1").success is False

    def test_reset_token_is_single_use(self, auth, reset_token):
        assert auth.reset_password("alice@example.com", reset_token, "n3wpass", "n3wpass").success

        again = auth.reset_password("alice@example.com", reset_token, "other1", "other1")
        assert again.error_code == AuthErrorCode.INVALID_TOKEN
        assert again.message == MSG_RESET_INVALID

    def test_just_inside_window(self, auth, reset_token, clock):
        clock.advance(seconds=7199.999)
        result = auth.reset_password("alice@example.com", reset_token, "n3wpass", "n3wpass")
        assert result.success is True

    def test_just_outside_window(self, auth, reset_token, clock):
        clock.advance(seconds=7200.001)

        result = auth.reset_password("alice@example.com", reset_token, "n3wpass", "n3wpass")

        assert result.error_code == AuthErrorCode.TOKEN_EXPIRED
        assert result.message == MSG_RESET_EXPIRED
        assert auth.login("alice@example.com", "secret1").success is True

    def test_second_request_invalidates_first_token(self, auth, reset_token, notifier):
        auth.request_password_reset("alice@example.com")
        second = notifier.last("reset-password").context["token"]
        assert second != reset_token

        stale = auth.reset_password("alice@example.com", reset_token, "n3wpass", "n3wpass")
        assert stale.message == MSG_RESET_INVALID
        assert auth.reset_password("alice@example.com", second, "n3wpass", "n3wpass").success

    def test_token_for_other_email_rejected(self, auth, reset_token, active_account):
        active_account(username="bob", email="bob@example.com")
        result = auth.reset_password("bob@example.com", reset_token, "n3wpass", "n3wpass")
        assert result.message == MSG_RESET_INVALID

    def test_form_errors_reported_together(self, auth, reset_token):
        result = auth.reset_password("alice@example.com", reset_token, "abc", "abd")
        assert set(_messages(result)) == {"password", "password_confirmation"}

    def test_missing_link_parameters(self, auth):
        result = auth.reset_password("", "", "n3wpass", "n3wpass")
        assert _messages(result) == {"token": "Reset email or token is invalid."}


# ---------------------------------------------------------------------------
# Email delivery failures
# ---------------------------------------------------------------------------

class FailingNotifier:
    def __init__(self) -> None:
        self.attempts = 0

    def send(self, template_name, recipient, context) -> None:
        self.attempts += 1
        raise ConnectionError("mail relay down")


@pytest.mark.unit
class TestEmailDispatchFailure:
    @pytest.fixture
    def failing(self):
        return FailingNotifier()

    @pytest.fixture
    def auth_without_mail(self, db, config, logger, failing, clock):
        services = create_services(
            db=db, config=config, logger=logger, notifier=failing, clock=clock,
        )
        return services["auth_service"]

    def test_signup_still_succeeds(self, auth_without_mail, repo, failing, log_stream):
        result = auth_without_mail.signup("alice", "alice@example.com", "secret1", "secret1")

        assert result.success is True
        assert failing.attempts == 1
        assert repo.get_by_email("alice@example.com") is not None
        assert "EMAIL_DISPATCH_FAILED" in log_stream.getvalue()

    def test_reset_request_still_succeeds(self, auth_without_mail, repo, failing):
        auth_without_mail.signup("alice", "alice@example.com", "secret1", "secret1")

        result = auth_without_mail.request_password_reset("alice@example.com")

        assert result.success is True
        assert failing.attempts == 2
        assert repo.get_by_email("alice@example.com").reset_token is not None


# ---------------------------------------------------------------------------
# Input edge cases
# ---------------------------------------------------------------------------

@pytest.mark.unit
class TestMissingAndOversizedInput:
    def test_signup_with_none_fields(self, auth, repo):
        result = auth.signup(None, None, None, None)

        assert result.error_code == AuthErrorCode.VALIDATION_ERROR
        assert set(_messages(result)) == {"username", "email", "password"}
        assert repo.list_accounts() == []

    def test_reset_with_none_fields(self, auth):
        result = auth.reset_password(None, None, None, None)

        assert result.error_code == AuthErrorCode.VALIDATION_ERROR
        assert set(_messages(result)) == {"password", "token"}

    def test_signup_password_over_72_bytes(self, auth, repo):
        password = "a" * 73
        result = auth.signup("alice", "alice@example.com", password, password)

        assert _messages(result) == {"password": "Password must be at most 72 bytes."}
        assert repo.get_by_email("alice@example.com") is None

    def test_long_password_with_shared_prefix_cannot_log_in(self, auth, active_account):
        active_account(password="a" * 72)

        assert auth.login("alice@example.com", "a" * 72).success is True
        refused = auth.login("alice@example.com", "a" * 72 + "Y")
        assert refused.error_code == AuthErrorCode.INVALID_CREDENTIALS


# ---------------------------------------------------------------------------
# Account state
# ---------------------------------------------------------------------------

@pytest.mark.unit
class TestAccountState:
    def test_signup_reports_pending(self, signup, repo):
        result, _ = signup()

        assert result.account.state is AccountState.PENDING
        assert repo.get_by_email("alice@example.com").state is AccountState.PENDING

    def test_activation_reports_active(self, active_account, repo):
        result = active_account()

        assert result.account.state is AccountState.ACTIVE
        assert repo.get_by_email("alice@example.com").state is AccountState.ACTIVE
