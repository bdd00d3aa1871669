"""Tests for the password reset flow."""

from datetime import UTC, datetime, timedelta

import pytest

from accounts.errors import DeliveryError, InvalidOrExpiredCodeError, NotFoundError
from accounts.services.password_reset import (
    RESET_CODE_LIFETIME,
    RESET_CONFIRMATION_SUBJECT,
    RESET_EMAIL_SUBJECT,
    PasswordResetService,
    generate_reset_code,
)


class Clock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def resets(store, mailer, clock):
    return PasswordResetService(store, mailer, clock=clock)


@pytest.fixture
def user(store):
    return store.create("A", "user@example.com", "secret1")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def test_generate_reset_code_is_six_digits():
    for _ in range(200):
        code = generate_reset_code()
        assert len(code) == 6
        assert code.isdigit()
        assert 100000 <= int(code) <= 999999


def test_request_reset_sets_code_and_expiry(resets, user, clock, mailer):
    updated = resets.request_reset("user@example.com")

    assert len(updated.reset_code) == 6
    assert updated.reset_code.isdigit()
    assert _as_utc(updated.reset_code_expires_at) == clock.now + RESET_CODE_LIFETIME
    assert RESET_CODE_LIFETIME == timedelta(minutes=15)

    assert len(mailer.sent) == 1
    assert mailer.sent[0]["to"] == "user@example.com"
    assert mailer.sent[0]["subject"] == RESET_EMAIL_SUBJECT
    assert updated.reset_code in mailer.sent[0]["html"]


def test_request_reset_unknown_email(resets, mailer):
    with pytest.raises(NotFoundError):
        resets.request_reset("nobody@example.com")
    assert mailer.sent == []


def test_request_reset_surfaces_delivery_failure(resets, user, mailer):
    mailer.fail = True
    with pytest.raises(DeliveryError):
        resets.request_reset("user@example.com")


def test_redeem_with_correct_code(resets, store, user, clock, mailer):
    code = resets.request_reset("user@example.com").reset_code
    clock.advance(timedelta(minutes=14))

    redeemed = resets.redeem_reset("user@example.com", code, "brandnew")

    assert redeemed.reset_code is None
    assert redeemed.reset_code_expires_at is None
    assert store.authenticate("user@example.com", "brandnew") is not None
    assert store.authenticate("user@example.com", "secret1") is None
    assert mailer.sent[-1]["subject"] == RESET_CONFIRMATION_SUBJECT


def test_redeem_twice_succeeds_only_once(resets, user, mailer):
    code = resets.request_reset("user@example.com").reset_code
    resets.redeem_reset("user@example.com", code, "brandnew")

    with pytest.raises(InvalidOrExpiredCodeError):
        resets.redeem_reset("user@example.com", code, "another1")
    # One reset email and one confirmation
    assert len(mailer.sent) == 2


def test_redeem_after_expiry_fails(resets, store, user, clock):
    code = resets.request_reset("user@example.com").reset_code
    clock.advance(timedelta(minutes=15, seconds=1))

    with pytest.raises(InvalidOrExpiredCodeError):
        resets.redeem_reset("user@example.com", code, "brandnew")
    assert store.authenticate("user@example.com", "secret1") is not None


def test_redeem_exactly_at_expiry_fails(resets, user, clock):
    code = resets.request_reset("user@example.com").reset_code
    clock.advance(RESET_CODE_LIFETIME)

    with pytest.raises(InvalidOrExpiredCodeError):
        resets.redeem_reset("user@example.com", code, "brandnew")


def test_redeem_with_wrong_code_or_email(resets, store, user):
    code = resets.request_reset("user@example.com").reset_code
    wrong = "100000" if code != "100000" else "100001"
    other = store.create("B", "other@example.com", "secret1")

    with pytest.raises(InvalidOrExpiredCodeError):
        resets.redeem_reset("user@example.com", wrong, "brandnew")
    with pytest.raises(InvalidOrExpiredCodeError):
        resets.redeem_reset(other.email, code, "brandnew")


def test_redeem_without_active_reset(resets, user):
    with pytest.raises(InvalidOrExpiredCodeError):
        resets.redeem_reset("user@example.com", "123456", "brandnew")


def test_new_request_replaces_previous_code(resets, user, clock):
    first = resets.request_reset("user@example.com").reset_code
    clock.advance(timedelta(minutes=1))
    second = resets.request_reset("user@example.com").reset_code

    if first != second:
        with pytest.raises(InvalidOrExpiredCodeError):
            resets.redeem_reset("user@example.com", first, "brandnew")
    resets.redeem_reset("user@example.com", second, "brandnew")
