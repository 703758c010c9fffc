from unittest.mock import AsyncMock

import pytest

from lottery_checkout.core.errors import GatewayError, ValidationError
from lottery_checkout.models.payment import SessionState
from lottery_checkout.services.drivers.truemoney import TrueMoneyDriver, TrueMoneyStep, is_valid_otp, is_valid_phone


@pytest.mark.parametrize("phone", ["0812345678", "0612345678", "0912345678", "081-234-5678"])
def test_accepts_thai_mobile_numbers(phone):
    assert is_valid_phone(phone)


@pytest.mark.parametrize("phone", ["1812345678", "081234567", "0712345678", "08123456789", ""])
def test_rejects_other_numbers(phone):
    assert not is_valid_phone(phone)


def test_otp_must_be_six_digits():
    assert is_valid_otp("123456")
    assert not is_valid_otp("12345")
    assert not is_valid_otp("1234567")
    assert not is_valid_otp("12345a")


@pytest.fixture
async def driver(make_driver):
    driver = make_driver(TrueMoneyDriver)
    await driver.start()
    return driver


async def test_invalid_phone_blocks_otp_request(driver, gateway):
    with pytest.raises(ValidationError) as exc_info:
        await driver.perform("request_otp", {"phone_number": "1812345678"})
    assert "phone_number" in exc_info.value.fields
    assert driver.step == TrueMoneyStep.PHONE_ENTRY
    assert gateway.otp_challenges == {}


async def test_happy_path(driver, recorder):
    assert driver.snapshot().settlement_currency == "THB"

    await driver.perform("request_otp", {"phone_number": "081-234-5678"})
    assert driver.step == TrueMoneyStep.OTP_ENTRY
    assert driver.phone_number == "0812345678"

    await driver.perform("confirm", {"otp": "123456"})
    assert driver.state == SessionState.SUCCEEDED
    assert len(recorder.successes) == 1
    assert recorder.successes[0].startswith("tm_")


async def test_short_otp_is_not_submitted(driver, gateway):
    await driver.perform("request_otp", {"phone_number": "0812345678"})
    with pytest.raises(ValidationError):
        await driver.perform("confirm", {"otp": "12345"})
    assert driver.step == TrueMoneyStep.OTP_ENTRY
    assert gateway.charges == []


async def test_rejected_otp_returns_to_entry_and_keeps_phone(driver, recorder):
    await driver.perform("request_otp", {"phone_number": "0812345678"})
    await driver.perform("confirm", {"otp": "000000"})

    assert driver.step == TrueMoneyStep.OTP_ENTRY
    assert driver.message == "Incorrect OTP"
    assert driver.phone_number == "0812345678"
    assert recorder.outcomes == 0

    await driver.perform("confirm", {"otp": "654321"})
    assert len(recorder.successes) == 1


async def test_resend_keeps_step(driver):
    await driver.perform("request_otp", {"phone_number": "0812345678"})
    first = driver.challenge.challenge_id

    await driver.perform("resend_otp")
    assert driver.step == TrueMoneyStep.OTP_ENTRY
    assert driver.challenge.challenge_id != first


async def test_resend_only_from_otp_entry(driver):
    with pytest.raises(ValidationError):
        await driver.perform("resend_otp")


async def test_change_phone(driver):
    await driver.perform("request_otp", {"phone_number": "0812345678"})
    await driver.perform("change_phone")
    assert driver.step == TrueMoneyStep.PHONE_ENTRY
    assert driver.challenge is None


async def test_otp_request_failure_returns_to_phone_entry(driver, gateway, recorder):
    gateway.request_otp = AsyncMock(side_effect=GatewayError("Wallet service unavailable"))
    await driver.perform("request_otp", {"phone_number": "0812345678"})

    assert driver.step == TrueMoneyStep.PHONE_ENTRY
    assert driver.message == "Wallet service unavailable"
    assert recorder.outcomes == 0


async def test_confirmation_gateway_failure_returns_to_otp_entry(driver, gateway, recorder):
    await driver.perform("request_otp", {"phone_number": "0812345678"})
    gateway.confirm_otp = AsyncMock(side_effect=GatewayError("timeout"))
    await driver.perform("confirm", {"otp": "123456"})

    assert driver.step == TrueMoneyStep.OTP_ENTRY
    assert driver.phone_number == "0812345678"
    assert recorder.outcomes == 0


async def test_cancel_from_otp_entry(driver, recorder):
    await driver.perform("request_otp", {"phone_number": "0812345678"})
    await driver.cancel()
    assert recorder.cancels == 1
    assert recorder.successes == []
