"""Validator chains."""

import pytest

from accountgate.models.forms import AccountUpdateForm, SignupForm
from accountgate.validation import (
    email_well_formed,
    is_well_formed_email,
    password_confirmed,
    password_max_bytes,
    password_min_length,
    run_validators,
    username_not_blank,
)


@pytest.mark.unit
class TestValidators:
    @pytest.mark.parametrize(
        "email", ["a@example.com", "first.last+tag@sub.example.co.uk", " padded@example.com "]
    )
    def test_well_formed_emails(self, email):
        assert is_well_formed_email(email)

    @pytest.mark.parametrize("email", ["plain", "a@b", "@example.com", "a@@example.com", "a b@example.com"])
    def test_malformed_emails(self, email):
        assert not is_well_formed_email(email)

    def test_run_validators_keeps_order(self):
        form = SignupForm(username="", email="bad", password="123", password_confirmation="")
        errors = run_validators(
            [username_not_blank, email_well_formed, password_min_length(6), password_confirmed()],
            form,
        )
        assert [e.field for e in errors] == ["username", "email", "password", "password_confirmation"]

    def test_clean_form_has_no_errors(self):
        form = SignupForm(
            username="alice", email="a@example.com", password="secret1", password_confirmation="secret1",
        )
        assert run_validators([username_not_blank, email_well_formed, password_min_length(6)], form) == []

    def test_optional_password_skipped_when_blank(self):
        form = AccountUpdateForm(username="alice", email="a@example.com")
        validators = [password_min_length(6, optional=True), password_confirmed(optional=True)]
        assert run_validators(validators, form) == []

    def test_min_length_boundary(self):
        check = password_min_length(6)
        assert check(SignupForm(password="12345")) is not None
        assert check(SignupForm(password="123456")) is None

    def test_max_bytes_boundary(self):
        check = password_max_bytes()
        assert check(SignupForm(password="a" * 72)) is None
        error = check(SignupForm(password="a" * 73))
        assert error.field == "password"
        assert error.message == "Password must be at most 72 bytes."

    def test_max_bytes_counts_encoded_length(self):
        assert password_max_bytes()(SignupForm(password="é" * 37)) is not None
        assert password_max_bytes(optional=True)(AccountUpdateForm()) is None
