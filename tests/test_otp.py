"""Unit tests for auth/otp.py -- OTP issuance, expiry and single use.

The engine runs on a FakeClock (see conftest.py) so expiry is tested by
moving time forward rather than sleeping.
"""

import pytest

from auth.errors import BadRequest
from auth.models import OtpPurpose
from auth.otp import OtpEngine, generate_otp

DAY = 24 * 60 * 60
FIFTEEN_MINUTES = 15 * 60


@pytest.fixture
def user(store):
    return store.create("Grace", "grace@example.com", "hopper-1906")


def test_generated_codes_are_six_digit_numbers_in_range():
    for _ in range(500):
        code = generate_otp()
        assert len(code) == 6
        assert code.isdigit()
        assert 100000 <= int(code) <= 999999


class TestVerificationOtp:
    def test_issue_stores_code_with_24h_expiry(self, otp_engine: OtpEngine, store, user, clock):
        code = otp_engine.issue_verification_otp(user)
        stored = store.find_by_id(user.id)
        assert stored.verify_otp == code
        assert stored.verify_otp_expires_at == clock.now + DAY
        assert stored.reset_otp is None

    def test_issue_refused_for_verified_account(self, otp_engine, store, user):
        user.is_account_verified = True
        store.save(user)
        with pytest.raises(BadRequest, match="Account already verified"):
            otp_engine.issue_verification_otp(user)

    def test_consume_marks_verified_and_clears_code(self, otp_engine, store, user):
        code = otp_engine.issue_verification_otp(user)
        otp_engine.consume_otp(user, OtpPurpose.VERIFY, code, is_account_verified=True)
        stored = store.find_by_id(user.id)
        assert stored.is_account_verified is True
        assert stored.verify_otp is None
        assert user.is_account_verified is True
        assert user.verify_otp is None

    def test_second_consumption_fails(self, otp_engine, user):
        code = otp_engine.issue_verification_otp(user)
        otp_engine.consume_otp(user, OtpPurpose.VERIFY, code)
        with pytest.raises(BadRequest, match="Invalid OTP"):
            otp_engine.consume_otp(user, OtpPurpose.VERIFY, code)

    def test_wrong_code_rejected(self, otp_engine, user):
        code = otp_engine.issue_verification_otp(user)
        wrong = "100000" if code != "100000" else "100001"
        with pytest.raises(BadRequest, match="Invalid OTP"):
            otp_engine.consume_otp(user, OtpPurpose.VERIFY, wrong)

    def test_code_rejected_after_24h(self, otp_engine, store, user, clock):
        code = otp_engine.issue_verification_otp(user)
        clock.advance(DAY + 1)
        with pytest.raises(BadRequest, match="OTP expired"):
            otp_engine.consume_otp(user, OtpPurpose.VERIFY, code, is_account_verified=True)
        assert store.find_by_id(user.id).is_account_verified is False

    def test_code_accepted_at_exact_expiry(self, otp_engine, user, clock):
        code = otp_engine.issue_verification_otp(user)
        clock.advance(DAY)
        otp_engine.consume_otp(user, OtpPurpose.VERIFY, code)

    def test_reissue_replaces_previous_code(self, otp_engine, user):
        first = otp_engine.issue_verification_otp(user)
        second = otp_engine.issue_verification_otp(user)
        if first != second:
            with pytest.raises(BadRequest, match="Invalid OTP"):
                otp_engine.consume_otp(user, OtpPurpose.VERIFY, first)
        otp_engine.consume_otp(user, OtpPurpose.VERIFY, second)


class TestResetOtp:
    def test_issue_stores_code_with_15m_expiry(self, otp_engine, store, user, clock):
        code = otp_engine.issue_reset_otp(user)
        stored = store.find_by_id(user.id)
        assert stored.reset_otp == code
        assert stored.reset_otp_expires_at == clock.now + FIFTEEN_MINUTES

    def test_issue_allowed_for_verified_account(self, otp_engine, store, user):
        user.is_account_verified = True
        store.save(user)
        assert len(otp_engine.issue_reset_otp(user)) == 6

    def test_code_rejected_after_15_minutes(self, otp_engine, user, clock):
        code = otp_engine.issue_reset_otp(user)
        clock.advance(FIFTEEN_MINUTES + 1)
        with pytest.raises(BadRequest, match="OTP expired"):
            otp_engine.consume_otp(user, OtpPurpose.RESET, code)

    def test_expired_code_cannot_be_retried(self, otp_engine, user, clock):
        code = otp_engine.issue_reset_otp(user)
        clock.advance(FIFTEEN_MINUTES + 1)
        with pytest.raises(BadRequest, match="OTP expired"):
            otp_engine.consume_otp(user, OtpPurpose.RESET, code)
        with pytest.raises(BadRequest, match="Invalid OTP"):
            otp_engine.consume_otp(user, OtpPurpose.RESET, code)


def test_verification_code_not_accepted_for_reset(otp_engine, user):
    code = otp_engine.issue_verification_otp(user)
    with pytest.raises(BadRequest, match="Invalid OTP"):
        otp_engine.consume_otp(user, OtpPurpose.RESET, code)
    # still usable for its own purpose
    otp_engine.consume_otp(user, OtpPurpose.VERIFY, code)


@pytest.mark.parametrize("purpose", list(OtpPurpose))
def test_consumed_code_is_cleared_on_user_and_row(otp_engine, store, user, purpose):
    issue = {OtpPurpose.VERIFY: otp_engine.issue_verification_otp, OtpPurpose.RESET: otp_engine.issue_reset_otp}
    code = issue[purpose](user)
    assert getattr(user, purpose.code_field) == code
    otp_engine.consume_otp(user, purpose, code)

    stored = store.find_by_id(user.id)
    for field in (purpose.code_field, purpose.expiry_field):
        assert getattr(user, field) is None
        assert getattr(stored, field) is None
