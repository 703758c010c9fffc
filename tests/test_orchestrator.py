import re
from datetime import date
from decimal import Decimal

import pytest

from lottery_checkout.core.errors import NotFoundError, SessionBusyError, SessionConflictError, ValidationError
from lottery_checkout.core.events import SessionEnded, SessionStarted, TicketIssued
from lottery_checkout.database.tickets import ticket_db
from lottery_checkout.models.game import LotteryLine, TicketTier
from lottery_checkout.models.order import CheckoutView
from lottery_checkout.models.payment import PaymentMethod, SessionState
from lottery_checkout.models.ticket import Ticket, TicketStatus

from .conftest import complete_line, future_year, png_bytes


def selection():
    return [complete_line("1"), complete_line("2"), LotteryLine(id="3", main_numbers=[1, 2])]


@pytest.fixture
def created(orchestrator):
    return orchestrator.create_order("powerball", TicketTier.STANDARD, selection(), has_multiplier=True)


def test_quote_counts_complete_lines_only(orchestrator):
    quote = orchestrator.quote("powerball", TicketTier.STANDARD, selection(), has_multiplier=True)
    assert quote.complete_lines == 2
    assert quote.total == Decimal("12.00")


def test_create_order(orchestrator, created):
    assert re.match(r"^TR-[0-9A-F]{8}$", created.order_id)
    assert created.amount_usd == Decimal("12.00")
    assert created.lines == 2
    assert len(created.selected_lines) == 2
    assert orchestrator.view == CheckoutView.METHOD_SELECTION


def test_order_requires_a_complete_line(orchestrator):
    with pytest.raises(ValidationError) as exc_info:
        orchestrator.create_order("powerball", TicketTier.STANDARD, [LotteryLine(id="1", main_numbers=[1, 2, 3])])
    assert "lines" in exc_info.value.fields
    assert orchestrator.order is None


@pytest.mark.parametrize(
    "line,problem",
    [
        (LotteryLine(id="9", main_numbers=[1, 1, 1, 1, 1], power_number=6), "different"),
        (LotteryLine(id="9", main_numbers=[1, 2, 3, 4, 70], power_number=6), "between 1 and 69"),
        (LotteryLine(id="9", main_numbers=[0, 2, 3, 4, 5], power_number=6), "between 1 and 69"),
        (LotteryLine(id="9", main_numbers=[1, 2, 3, 4, 5], power_number=999), "between 1 and 26"),
    ],
)
def test_order_rejects_lines_outside_the_game(orchestrator, line, problem):
    with pytest.raises(ValidationError) as exc_info:
        orchestrator.create_order("powerball", TicketTier.STANDARD, [complete_line("1"), line])
    assert problem in exc_info.value.fields["lines.9"]
    assert "lines.1" not in exc_info.value.fields
    assert orchestrator.order is None

    with pytest.raises(ValidationError):
        orchestrator.quote("powerball", TicketTier.STANDARD, [line])


def test_line_ranges_follow_the_game(orchestrator):
    line = LotteryLine(id="1", main_numbers=[10, 20, 30, 40, 50], power_number=12)
    assert orchestrator.create_order("euromillions", TicketTier.STANDARD, [line]).lines == 1

    orchestrator.leave_checkout()
    with pytest.raises(ValidationError) as exc_info:
        orchestrator.create_order("lotto-thai", TicketTier.STANDARD, [line])
    assert "between 1 and 49" in exc_info.value.fields["lines.1"]


def test_incomplete_lines_are_not_range_checked(orchestrator):
    lines = [complete_line("1"), LotteryLine(id="2", main_numbers=[99, 99])]
    assert orchestrator.create_order("powerball", TicketTier.STANDARD, lines).lines == 1


def test_unknown_game(orchestrator):
    with pytest.raises(NotFoundError):
        orchestrator.create_order("keno", TicketTier.STANDARD, selection())


async def test_select_method_requires_an_order(orchestrator):
    with pytest.raises(ValidationError):
        await orchestrator.select_method(PaymentMethod.CARD)


async def test_qr_success_issues_exactly_one_ticket(orchestrator, created, scheduler, events, engine):
    snapshot = await orchestrator.select_method(PaymentMethod.PROMPTPAY)
    assert snapshot.state == SessionState.POLLING
    assert orchestrator.view == CheckoutView.PAYMENT

    await scheduler.advance(60)

    tickets = ticket_db.list_tickets()
    assert len(tickets) == 1
    ticket = tickets[0]
    assert ticket.id == created.order_id
    assert ticket.status == TicketStatus.PENDING
    assert ticket.total_amount == Decimal("12.00")
    assert len(ticket.lines) == 2
    assert ticket.draw_date is not None
    assert ticket.transaction_id.startswith("pp_")

    assert orchestrator.view == CheckoutView.SUCCESS
    assert orchestrator.session is None
    assert orchestrator.last_ticket == ticket
    assert engine.active_count() == 0
    assert len(events.history(TicketIssued)) == 1
    assert [e.outcome for e in events.history(SessionEnded)] == ["succeeded"]


async def test_card_success(orchestrator, created):
    await orchestrator.select_method(PaymentMethod.CARD)
    snapshot = await orchestrator.perform(
        "pay",
        {
            "number": "4242 4242 4242 4242",
            "expiry_month": "08",
            "expiry_year": future_year(),
            "cvv": "123",
            "cardholder_name": "Somchai Jaidee",
        },
    )
    assert snapshot.state == SessionState.SUCCEEDED
    assert ticket_db.get_ticket(created.order_id).payment_method == "CARD"


async def test_cancel_returns_to_method_selection(orchestrator, created, events):
    await orchestrator.select_method(PaymentMethod.PROMPTPAY)
    await orchestrator.cancel()

    assert ticket_db.count() == 0
    assert orchestrator.view == CheckoutView.METHOD_SELECTION
    assert orchestrator.session is None
    assert orchestrator.order == created
    assert [e.outcome for e in events.history(SessionEnded)] == ["cancelled"]


@pytest.mark.parametrize("method", list(PaymentMethod))
async def test_every_method_can_be_cancelled_without_a_ticket(orchestrator, created, engine, method):
    await orchestrator.select_method(method)
    await orchestrator.cancel()

    assert ticket_db.count() == 0
    assert orchestrator.view == CheckoutView.METHOD_SELECTION
    assert engine.active_count() == 0


async def test_switching_method_tears_down_previous_driver(orchestrator, created, gateway, scheduler, engine, events):
    await orchestrator.select_method(PaymentMethod.PROMPTPAY)
    old_driver = orchestrator.session.driver
    reference = old_driver.reference
    assert engine.active_count() == 2

    await orchestrator.select_method(PaymentMethod.CARD)
    assert old_driver.closed
    assert engine.active_count() == 0
    assert orchestrator.session.method == PaymentMethod.CARD

    gateway.mark_paid(reference)
    await scheduler.advance(60)
    assert ticket_db.count() == 0
    assert [e.outcome for e in events.history(SessionEnded)] == ["switched"]
    assert [e.method for e in events.history(SessionStarted)] == ["PROMPTPAY", "CARD"]


async def test_cannot_switch_while_processing(orchestrator, created, scheduler):
    await orchestrator.select_method(PaymentMethod.BANK)
    await orchestrator.perform("continue")
    await orchestrator.perform("upload", {"filename": "slip.png", "content_type": "image/png", "content": png_bytes()})
    await orchestrator.perform("submit")

    with pytest.raises(SessionBusyError):
        await orchestrator.select_method(PaymentMethod.CARD)
    with pytest.raises(SessionBusyError):
        orchestrator.leave_checkout()

    await scheduler.advance(3)
    assert ticket_db.get_ticket(created.order_id).transaction_id.startswith("bank_TRV")


async def test_new_order_blocked_while_session_mounted(orchestrator, created):
    await orchestrator.select_method(PaymentMethod.WISE)
    with pytest.raises(SessionConflictError):
        orchestrator.create_order("powerball", TicketTier.STANDARD, selection())


async def test_leave_checkout_unmounts_without_outcome(orchestrator, created, engine, events):
    await orchestrator.select_method(PaymentMethod.ALIPAY)
    orchestrator.leave_checkout()

    assert orchestrator.session is None
    assert orchestrator.order is None
    assert orchestrator.view == CheckoutView.NUMBER_SELECTION
    assert engine.active_count() == 0
    assert ticket_db.count() == 0
    assert [e.outcome for e in events.history(SessionEnded)] == ["unmounted"]


async def test_no_session(orchestrator):
    with pytest.raises(NotFoundError):
        orchestrator.snapshot()
    with pytest.raises(NotFoundError):
        await orchestrator.cancel()


async def test_status(orchestrator, created):
    await orchestrator.select_method(PaymentMethod.OMISE)
    status = orchestrator.status()
    assert status.view == CheckoutView.PAYMENT
    assert status.order.order_id == created.order_id
    assert status.active_method == "OMISE"


async def test_shutdown_stops_everything(orchestrator, created, engine):
    await orchestrator.select_method(PaymentMethod.WECHAT)
    await orchestrator.shutdown()
    assert orchestrator.session is None
    assert engine.active_count() == 0


async def expire_qr(orchestrator, gateway, scheduler):
    await scheduler.advance(900)


async def enter_otp(orchestrator, gateway, scheduler):
    await orchestrator.perform("request_otp", {"phone_number": "0812345678"})


async def open_upload(orchestrator, gateway, scheduler):
    await orchestrator.perform("continue")


async def open_confirm(orchestrator, gateway, scheduler):
    await orchestrator.perform("continue")


async def decline_card(orchestrator, gateway, scheduler):
    await orchestrator.perform(
        "pay",
        {
            "number": "4000 0000 0000 0002",
            "expiry_month": "08",
            "expiry_year": future_year(),
            "cvv": "123",
            "cardholder_name": "Somchai Jaidee",
        },
    )


async def mount_omise_qr(orchestrator, gateway, scheduler):
    await orchestrator.perform("select", {"sub_method": "promptpay"})
    assert orchestrator.session.driver.child is not None


@pytest.mark.parametrize(
    "method,reach,step",
    [
        (PaymentMethod.PROMPTPAY, expire_qr, "EXPIRED"),
        (PaymentMethod.TRUEMONEY, enter_otp, "OTP_ENTRY"),
        (PaymentMethod.BANK, open_upload, "UPLOAD"),
        (PaymentMethod.WISE, open_confirm, "CONFIRM"),
        (PaymentMethod.CARD, decline_card, "FAILED"),
        (PaymentMethod.OMISE, mount_omise_qr, "QR"),
    ],
)
async def test_cancel_mid_flow_leaves_ticket_history_untouched(
    orchestrator, created, gateway, scheduler, engine, method, reach, step
):
    earlier = Ticket(
        id="TR-0000E001",
        game_id="powerball",
        game_name="Powerball",
        lines=[complete_line()],
        total_amount=Decimal("6.00"),
        purchase_date=date.today(),
        payment_method="CARD",
        transaction_id="txn_earlier",
    )
    ticket_db.append(earlier)
    gateway.polls_before_completion = -1
    history = [ticket.model_dump() for ticket in ticket_db.list_tickets()]

    await orchestrator.select_method(method)
    await reach(orchestrator, gateway, scheduler)
    assert orchestrator.snapshot().step == step

    await orchestrator.cancel()
    await scheduler.advance(900)

    assert [ticket.model_dump() for ticket in ticket_db.list_tickets()] == history
    assert ticket_db.get_ticket(created.order_id) is None
    assert orchestrator.view == CheckoutView.METHOD_SELECTION
    assert engine.active_count() == 0
