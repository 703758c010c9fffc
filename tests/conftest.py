"""Shared fixtures: virtual clock, simulated gateway, orders and drivers"""

import asyncio
import heapq
import itertools
from datetime import date, datetime
from decimal import Decimal

import pytest

from lottery_checkout.core.config import Settings
from lottery_checkout.core.events import EventBus
from lottery_checkout.core.timers import TimerEngine
from lottery_checkout.database.cards import card_db
from lottery_checkout.database.tickets import ticket_db
from lottery_checkout.models.game import LotteryLine, TicketTier
from lottery_checkout.models.order import Order
from lottery_checkout.services.gateway import SimulatedGateway
from lottery_checkout.services.orchestrator import CheckoutOrchestrator
from lottery_checkout.services.slips import slip_registry

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run to completion"""
    for _ in range(rounds):
        await asyncio.sleep(0)


class _Scheduled:
    def __init__(self, when: float, seq: int, callback):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: "_Scheduled") -> bool:
        return (self.when, self.seq) < (other.when, other.seq)


class VirtualScheduler:
    """Scheduler whose clock only moves when a test advances it"""

    def __init__(self):
        self.now = 0.0
        self._queue: list[_Scheduled] = []
        self._seq = itertools.count()

    def call_later(self, delay, callback):
        entry = _Scheduled(self.now + delay, next(self._seq), callback)
        heapq.heappush(self._queue, entry)
        return entry

    def time(self) -> float:
        return self.now

    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry.cancelled)

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        await settle()
        while self._queue and self._queue[0].when <= target:
            entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            self.now = entry.when
            entry.callback()
            await settle()
        self.now = target


class Recorder:
    """Collects terminal callbacks from a driver"""

    def __init__(self):
        self.successes: list[str] = []
        self.cancels = 0

    def on_success(self, transaction_id: str) -> None:
        self.successes.append(transaction_id)

    def on_cancel(self) -> None:
        self.cancels += 1

    @property
    def outcomes(self) -> int:
        return len(self.successes) + self.cancels


def future_year(years: int = 3) -> str:
    return f"{(date.today().year + years) % 100:02d}"


def complete_line(line_id: str = "1") -> LotteryLine:
    return LotteryLine(id=line_id, main_numbers=[1, 2, 3, 4, 5], power_number=6)


def png_bytes(size: int = 4096) -> bytes:
    return PNG_HEADER + b"\x00" * (size - len(PNG_HEADER))


@pytest.fixture(autouse=True)
def clean_stores():
    card_db.cards.clear()
    ticket_db.tickets.clear()
    ticket_db._order.clear()
    slip_registry._used.clear()
    yield
    card_db.cards.clear()
    ticket_db.tickets.clear()
    ticket_db._order.clear()
    slip_registry._used.clear()


@pytest.fixture
def config():
    return Settings(
        _env_file=None,
        qr_window_seconds=900,
        poll_interval_seconds=5.0,
        bank_review_delay_seconds=3.0,
        wise_processing_delay_seconds=2.0,
        simulated_latency_seconds=0,
        polls_before_completion=3,
    )


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def engine(scheduler):
    return TimerEngine(scheduler)


@pytest.fixture
def gateway():
    return SimulatedGateway(latency=0, polls_before_completion=3)


@pytest.fixture
def order():
    lines = (complete_line("1"), complete_line("2"), complete_line("3"))
    return Order(
        order_id="TR-0000ABCD",
        game_id="powerball",
        game_name="Powerball",
        tier=TicketTier.STANDARD,
        has_multiplier=True,
        lines=3,
        selected_lines=lines,
        amount_usd=Decimal("18.00"),
        created_at=datetime.utcnow(),
    )


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_driver(order, gateway, engine, recorder, config):
    """Build a driver wired to the recorder"""

    def make(driver_class, driver_order=None, rec=None, **kwargs):
        rec = rec or recorder
        return driver_class(
            driver_order or order,
            gateway,
            engine,
            on_success=rec.on_success,
            on_cancel=rec.on_cancel,
            config=config,
            **kwargs,
        )

    return make


@pytest.fixture
def events():
    bus = EventBus()
    bus.keep_history = True
    return bus


@pytest.fixture
def orchestrator(gateway, engine, events, config):
    return CheckoutOrchestrator(gateway=gateway, timer_engine=engine, events=events, config=config)
