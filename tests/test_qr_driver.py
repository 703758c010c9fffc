from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from lottery_checkout.core.errors import GatewayError, SessionClosedError
from lottery_checkout.models.payment import SessionState
from lottery_checkout.services import promptpay
from lottery_checkout.services.drivers.qr import AlipayDriver, PromptPayDriver, QRStep, WeChatPayDriver


@pytest.fixture
async def driver(make_driver):
    driver = make_driver(PromptPayDriver)
    await driver.start()
    return driver


async def test_start_generates_qr_and_starts_two_timers(driver, engine):
    snapshot = driver.snapshot()
    assert snapshot.state == SessionState.POLLING
    assert snapshot.settlement_currency == "THB"
    assert snapshot.settlement_amount == Decimal("639.00")
    assert snapshot.countdown_remaining == 900
    assert snapshot.reference.startswith("PP")
    assert engine.active_count() == 2

    fields = promptpay.parse_payload(snapshot.details["qr_data"])
    assert fields["54"] == "639.00"


@pytest.mark.parametrize(
    "driver_class,currency,prefix",
    [(AlipayDriver, "CNY", "alipay_"), (WeChatPayDriver, "CNY", "wechat_"), (PromptPayDriver, "THB", "pp_")],
)
async def test_first_completed_poll_succeeds_with_method_prefix(make_driver, scheduler, recorder, driver_class, currency, prefix):
    driver = make_driver(driver_class)
    await driver.start()
    reference = driver.reference
    assert driver.settlement_currency == currency

    await scheduler.advance(19)
    assert recorder.successes == []
    assert driver.polls == 3

    await scheduler.advance(1)
    assert recorder.successes == [f"{prefix}{reference}"]
    assert driver.state == SessionState.SUCCEEDED


async def test_no_timers_run_after_success(driver, scheduler, engine, gateway, recorder):
    await scheduler.advance(20)
    assert len(recorder.successes) == 1
    assert engine.active_count() == 0

    checks = gateway.status_checks[driver.snapshot().reference]
    await scheduler.advance(600)
    assert gateway.status_checks[driver.snapshot().reference] == checks
    assert len(recorder.successes) == 1


async def test_countdown_expiry_stops_polling(make_driver, gateway, scheduler, engine, recorder):
    gateway.polls_before_completion = -1
    driver = make_driver(PromptPayDriver)
    await driver.start()
    reference = driver.reference

    await scheduler.advance(899)
    assert driver.state == SessionState.POLLING
    assert driver.countdown_remaining == 1

    await scheduler.advance(1)
    assert driver.state == SessionState.EXPIRED
    assert "expired" in driver.message.lower()
    assert engine.active_count() == 0

    checks = gateway.status_checks[reference]
    gateway.mark_paid(reference)
    await scheduler.advance(60)
    assert gateway.status_checks[reference] == checks
    assert recorder.outcomes == 0
    assert driver.snapshot().actions == ["regenerate", "cancel"]


async def test_regenerate_after_expiry_gives_fresh_reference_and_full_countdown(
    make_driver, gateway, scheduler, recorder
):
    gateway.polls_before_completion = -1
    driver = make_driver(PromptPayDriver)
    await driver.start()
    old = driver.reference
    await scheduler.advance(900)
    assert driver.state == SessionState.EXPIRED

    await driver.perform("regenerate")

    assert driver.reference != old
    assert driver.countdown_remaining == 900
    assert driver.state == SessionState.POLLING
    assert old in gateway.voided
    assert not gateway.mark_paid(old)

    gateway.mark_paid(driver.reference)
    await scheduler.advance(5)
    assert recorder.successes == [f"pp_{driver.reference}"]


async def test_old_reference_never_satisfies_a_later_poll(driver, gateway, scheduler, recorder):
    old = driver.reference
    gateway.mark_paid(old)

    await driver.perform("regenerate")
    new = driver.reference
    assert new != old

    await scheduler.advance(15)
    assert recorder.successes == []
    await scheduler.advance(5)
    assert recorder.successes == [f"pp_{new}"]


async def test_regenerate_cancels_previous_timers(driver, scheduler, engine):
    await scheduler.advance(7)
    await driver.perform("regenerate")
    assert engine.active_count() == 2
    assert driver.countdown_remaining == 900
    assert driver.generation == 2


async def test_poll_failure_keeps_polling(driver, gateway, scheduler, recorder):
    check_status = gateway.check_status
    gateway.check_status = AsyncMock(side_effect=GatewayError("timeout"))

    await scheduler.advance(5)
    assert driver.state == SessionState.POLLING
    assert driver.message is not None
    assert recorder.outcomes == 0

    gateway.check_status = check_status
    gateway.mark_paid(driver.reference)
    await scheduler.advance(5)
    assert len(recorder.successes) == 1


async def test_generation_failure_stays_initializing_and_can_retry(make_driver, gateway, engine, recorder):
    generate_qr = gateway.generate_qr
    gateway.generate_qr = AsyncMock(side_effect=GatewayError("QR service unavailable"))
    driver = make_driver(PromptPayDriver)
    await driver.start()

    assert driver.state == SessionState.INITIALIZING
    assert driver.message == "QR service unavailable"
    assert driver.snapshot().proceed_action == "regenerate"
    assert engine.active_count() == 0

    gateway.generate_qr = generate_qr
    await driver.perform("regenerate")
    assert driver.step == QRStep.SCANNING
    assert recorder.outcomes == 0


async def test_cancel_while_polling(driver, scheduler, engine, recorder):
    await scheduler.advance(3)
    await driver.cancel()

    assert recorder.cancels == 1
    assert engine.active_count() == 0
    await scheduler.advance(900)
    assert recorder.outcomes == 1


async def test_cancel_from_expired(make_driver, gateway, scheduler, recorder):
    gateway.polls_before_completion = -1
    driver = make_driver(PromptPayDriver)
    await driver.start()
    await scheduler.advance(900)

    await driver.perform("cancel")
    assert recorder.cancels == 1
    with pytest.raises(SessionClosedError):
        await driver.perform("regenerate")


async def test_teardown_stops_timers_without_callbacks(driver, scheduler, engine, gateway, recorder):
    reference = driver.reference
    driver.teardown()
    driver.teardown()

    assert engine.active_count() == 0
    gateway.mark_paid(reference)
    await scheduler.advance(900)
    assert recorder.outcomes == 0
    assert gateway.status_checks[reference] == 0


async def test_success_in_flight_after_teardown_is_ignored(make_driver, gateway, scheduler, recorder):
    driver = make_driver(PromptPayDriver)
    await driver.start()
    driver.teardown()
    driver._succeed("pp_late")
    assert recorder.outcomes == 0
