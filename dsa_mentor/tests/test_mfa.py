"""
Second factor: setup, confirmation window, login verification
"""
import base64

import pyotp
import pytest

from dsa_mentor.errors import ErrorCode, InvalidCodeError, InvalidInputError, MfaRequiredError
from dsa_mentor.services import mfa_service

# Middle of a 30s step, so +-k steps are exact step boundaries away
T0 = 1700000025


def code_at(secret: str, offset_steps: int) -> str:
    return pyotp.TOTP(secret).at(T0 + offset_steps * 30)


class TestBeginSetup:

    @pytest.mark.asyncio
    async def test_pending_secret_is_stored_not_activated(self, db, account):
        setup = await mfa_service.begin_setup(db, account)

        assert account.mfa_pending_secret == setup.secret
        assert account.mfa_enabled is False
        assert account.mfa_secret is None

    @pytest.mark.asyncio
    async def test_secret_has_at_least_160_bits(self, db, account):
        setup = await mfa_service.begin_setup(db, account)
        assert len(base64.b32decode(setup.secret)) * 8 >= 160

    @pytest.mark.asyncio
    async def test_provisioning_uri(self, db, account):
        setup = await mfa_service.begin_setup(db, account)

        assert setup.provisioning_uri.startswith("otpauth://totp/")
        assert f"secret={setup.secret}" in setup.provisioning_uri
        assert "issuer=" in setup.provisioning_uri

    @pytest.mark.asyncio
    async def test_setup_again_overwrites_pending_secret(self, db, account):
        first = await mfa_service.begin_setup(db, account)
        second = await mfa_service.begin_setup(db, account)

        assert first.secret != second.secret
        assert account.mfa_pending_secret == second.secret


class TestConfirmSetup:

    @pytest.mark.asyncio
    async def test_current_step_accepted(self, db, account):
        setup = await mfa_service.begin_setup(db, account)

        await mfa_service.confirm_setup(db, account, code_at(setup.secret, 0), for_time=T0)

        assert account.mfa_enabled is True
        assert account.mfa_secret == setup.secret
        assert account.mfa_pending_secret is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("offset", [-1, 1])
    async def test_one_step_drift_accepted(self, db, account, offset):
        setup = await mfa_service.begin_setup(db, account)

        await mfa_service.confirm_setup(db, account, code_at(setup.secret, offset), for_time=T0)
        assert account.mfa_enabled is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("offset", [-3, 3])
    async def test_three_steps_away_rejected_and_pending_kept(self, db, account, offset):
        setup = await mfa_service.begin_setup(db, account)

        with pytest.raises(InvalidCodeError) as exc_info:
            await mfa_service.confirm_setup(db, account, code_at(setup.secret, offset), for_time=T0)

        assert exc_info.value.status_code == 400
        assert account.mfa_enabled is False
        assert account.mfa_pending_secret == setup.secret

        # Retry with a good code still works
        await mfa_service.confirm_setup(db, account, code_at(setup.secret, 0), for_time=T0)
        assert account.mfa_enabled is True

    @pytest.mark.asyncio
    async def test_confirm_without_setup(self, db, account):
        with pytest.raises(InvalidInputError):
            await mfa_service.confirm_setup(db, account, "123456", for_time=T0)

    @pytest.mark.asyncio
    async def test_new_setup_does_not_replace_active_secret(self, db, account):
        setup = await mfa_service.begin_setup(db, account)
        await mfa_service.confirm_setup(db, account, code_at(setup.secret, 0), for_time=T0)

        again = await mfa_service.begin_setup(db, account)

        assert account.mfa_secret == setup.secret
        assert account.mfa_pending_secret == again.secret
        assert account.mfa_enabled is True


class TestVerifyLogin:

    @pytest.mark.asyncio
    async def test_noop_when_second_factor_inactive(self, account):
        mfa_service.verify_login(account, None)

    @pytest.mark.asyncio
    async def test_missing_code_is_mfa_required(self, db, account):
        setup = await mfa_service.begin_setup(db, account)
        await mfa_service.confirm_setup(db, account, code_at(setup.secret, 0), for_time=T0)

        for missing in (None, "", "   "):
            with pytest.raises(MfaRequiredError) as exc_info:
                mfa_service.verify_login(account, missing, for_time=T0)
            assert exc_info.value.code == ErrorCode.MFA_REQUIRED

    @pytest.mark.asyncio
    async def test_wrong_code_is_invalid_code(self, db, account):
        setup = await mfa_service.begin_setup(db, account)
        await mfa_service.confirm_setup(db, account, code_at(setup.secret, 0), for_time=T0)

        with pytest.raises(InvalidCodeError) as exc_info:
            mfa_service.verify_login(account, code_at(setup.secret, 5), for_time=T0)
        assert exc_info.value.status_code == 401

        mfa_service.verify_login(account, code_at(setup.secret, 2), for_time=T0)


class TestVerifyCode:

    def test_rejects_malformed_codes(self):
        secret = pyotp.random_base32()
        assert mfa_service.verify_code(secret, "abcdef", for_time=T0) is False
        assert mfa_service.verify_code(secret, "12345", for_time=T0) is False
        assert mfa_service.verify_code(secret, None, for_time=T0) is False

    def test_accepts_code_with_surrounding_whitespace(self):
        secret = pyotp.random_base32()
        assert mfa_service.verify_code(secret, f" {code_at(secret, 0)} ", for_time=T0) is True
