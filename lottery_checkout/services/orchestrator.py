"""
Checkout Orchestrator

Owns the current order and at most one mounted payment driver. Reacts to
the driver's terminal callback by issuing a ticket (success) or returning
to method selection (cancel).
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from ..core.config import Settings, settings as default_settings
from ..core.errors import NotFoundError, SessionBusyError, SessionConflictError, ValidationError
from ..core.events import EventBus, SessionEnded, SessionStarted, TicketIssued
from ..core.timers import TimerEngine
from ..database.games import GameDatabase, game_db
from ..database.tickets import DuplicateTicketError, TicketDatabase, ticket_db
from ..models.game import LotteryLine, TicketTier, complete_lines
from ..models.order import CheckoutStatus, CheckoutView, Order, Quote
from ..models.payment import PaymentMethod, SessionSnapshot
from ..models.ticket import Ticket, TicketStatus
from . import pricing
from .currency import CurrencyConverter
from .drivers.base import PaymentDriver
from .drivers.registry import create_driver
from .gateway import PaymentGateway

logger = logging.getLogger(__name__)


def new_order_id() -> str:
    """TR- followed by 8 uppercase hex digits"""
    return f"TR-{uuid.uuid4().hex[:8].upper()}"


@dataclass
class ActiveSession:
    """The order being paid and the driver paying it"""
    order: Order
    method: PaymentMethod
    driver: Optional[PaymentDriver] = None
    started_at: datetime = field(default_factory=datetime.utcnow)


class CheckoutOrchestrator:
    """Single-order checkout flow"""

    def __init__(
        self,
        gateway: PaymentGateway,
        timer_engine: Optional[TimerEngine] = None,
        events: Optional[EventBus] = None,
        tickets: Optional[TicketDatabase] = None,
        games: Optional[GameDatabase] = None,
        converter: Optional[CurrencyConverter] = None,
        config: Optional[Settings] = None,
    ):
        self.gateway = gateway
        self.timer_engine = timer_engine or TimerEngine()
        self.events = events or EventBus()
        self.tickets = tickets or ticket_db
        self.games = games or game_db
        self.converter = converter
        self.config = config or default_settings

        self.view = CheckoutView.NUMBER_SELECTION
        self.order: Optional[Order] = None
        self.session: Optional[ActiveSession] = None
        self.last_ticket: Optional[Ticket] = None

    # ==================== Orders ====================

    def quote(
        self,
        game_id: str,
        tier: TicketTier,
        lines: list[LotteryLine],
        has_multiplier: bool = False,
    ) -> Quote:
        """Price a number selection for a game"""
        game = self._get_game(game_id)
        self._check_lines(game, lines)
        return pricing.quote(tier, lines, has_multiplier)

    def create_order(
        self,
        game_id: str,
        tier: TicketTier,
        lines: list[LotteryLine],
        has_multiplier: bool = False,
    ) -> Order:
        """
        Mint a new order for a number selection.

        Raises:
            SessionConflictError: a payment session is still mounted
            NotFoundError: unknown game
            ValidationError: no line has a complete number selection
                or a complete line does not fit the game's number ranges
        """
        if self.session is not None:
            raise SessionConflictError(
                f"Order {self.session.order.order_id} is being paid; finish or cancel that payment first"
            )

        game = self._get_game(game_id)
        self._check_lines(game, lines)
        price = pricing.quote(tier, lines, has_multiplier)
        if not price.eligible:
            raise ValidationError(
                "Pick at least one complete line before checkout",
                fields={"lines": "No line has all numbers selected"},
            )

        order_id = new_order_id()
        while self.tickets.get_ticket(order_id) is not None:
            order_id = new_order_id()

        selected = complete_lines(lines)
        self.order = Order(
            order_id=order_id,
            game_id=game.id,
            game_name=game.name,
            tier=tier,
            has_multiplier=has_multiplier,
            lines=len(selected),
            selected_lines=tuple(selected),
            amount_usd=price.total,
            created_at=datetime.utcnow(),
        )
        self.view = CheckoutView.METHOD_SELECTION
        logger.info(f"Order {order_id} created: {game.name}, {len(selected)} lines, ${price.total}")
        return self.order

    def _get_game(self, game_id: str):
        game = self.games.get_game(game_id)
        if game is None:
            raise NotFoundError("Game", game_id)
        return game

    def _check_lines(self, game, lines: list[LotteryLine]) -> None:
        problems = {}
        for line in complete_lines(lines):
            problem = game.line_problem(line)
            if problem:
                problems[f"lines.{line.id}"] = problem
        if problems:
            raise ValidationError(f"Some lines cannot be played in {game.name}", fields=problems)

    # ==================== Payment session ====================

    async def select_method(self, method: PaymentMethod) -> SessionSnapshot:
        """
        Mount the driver for a payment method.

        Any previously mounted driver is torn down first.

        Raises:
            ValidationError: there is no order to pay for
            SessionBusyError: the current driver is processing and cannot be interrupted
        """
        if self.order is None:
            raise ValidationError("There is no order to pay for", fields={"order": "required"})

        if self.session is not None:
            if self.session.driver.busy:
                raise SessionBusyError("The current payment is being processed, please wait")
            self._unmount("switched")

        session = ActiveSession(order=self.order, method=method)
        session.driver = create_driver(
            method,
            self.order,
            self.gateway,
            self.timer_engine,
            on_success=lambda transaction_id: self._handle_success(session, transaction_id),
            on_cancel=lambda: self._handle_cancel(session),
            converter=self.converter,
            config=self.config,
        )
        self.session = session
        self.view = CheckoutView.PAYMENT
        self.events.publish(SessionStarted(order_id=self.order.order_id, method=method.value))

        await session.driver.start()
        return session.driver.snapshot()

    def _require_session(self) -> ActiveSession:
        if self.session is None:
            raise NotFoundError("Payment session", "active")
        return self.session

    def snapshot(self) -> SessionSnapshot:
        """Current payment screen"""
        return self._require_session().driver.snapshot()

    async def perform(self, action: str, data: Optional[dict[str, Any]] = None) -> SessionSnapshot:
        """Forward a user action to the mounted driver"""
        session = self._require_session()
        await session.driver.perform(action, data or {})
        return session.driver.snapshot()

    async def cancel(self) -> SessionSnapshot:
        return await self.perform("cancel")

    def leave_checkout(self) -> None:
        """Navigate away: unmount the driver without an outcome and drop the order"""
        if self.session is not None:
            if self.session.driver.busy:
                raise SessionBusyError("The current payment is being processed, please wait")
            self._unmount("unmounted")
        self.order = None
        self.view = CheckoutView.NUMBER_SELECTION

    def status(self) -> CheckoutStatus:
        return CheckoutStatus(
            view=self.view,
            order=self.order,
            active_method=self.session.method.value if self.session else None,
        )

    def _unmount(self, outcome: str) -> None:
        session = self.session
        self.session = None
        session.driver.teardown()
        self.events.publish(SessionEnded(order_id=session.order.order_id, method=session.method.value, outcome=outcome))
        logger.info(f"{session.method.value} session for order {session.order.order_id} {outcome}")

    # ==================== Terminal callbacks ====================

    def _handle_success(self, session: ActiveSession, transaction_id: str) -> None:
        if session is not self.session:
            logger.warning(f"Ignoring success {transaction_id} from an unmounted session for {session.order.order_id}")
            return

        order = session.order
        ticket = Ticket(
            id=order.order_id,
            game_id=order.game_id,
            game_name=order.game_name,
            status=TicketStatus.PENDING,
            lines=list(order.selected_lines),
            total_amount=order.amount_usd,
            purchase_date=date.today(),
            draw_date=self._draw_date(order.game_id),
            payment_method=session.method.value,
            transaction_id=transaction_id,
        )
        try:
            self.tickets.append(ticket)
        except DuplicateTicketError:
            logger.error(f"Second success for order {order.order_id} ignored ({transaction_id})")
            return

        self.session = None
        self.order = None
        self.last_ticket = ticket
        self.view = CheckoutView.SUCCESS
        logger.info(f"Ticket {ticket.id} issued via {session.method.value} ({transaction_id})")

        self.events.publish(SessionEnded(order_id=order.order_id, method=session.method.value, outcome="succeeded"))
        self.events.publish(
            TicketIssued(
                order_id=order.order_id,
                ticket_id=ticket.id,
                transaction_id=transaction_id,
                method=session.method.value,
            )
        )

    def _handle_cancel(self, session: ActiveSession) -> None:
        if session is not self.session:
            logger.warning(f"Ignoring cancel from an unmounted session for {session.order.order_id}")
            return

        self.session = None
        self.view = CheckoutView.METHOD_SELECTION
        self.events.publish(SessionEnded(order_id=session.order.order_id, method=session.method.value, outcome="cancelled"))
        logger.info(f"Payment for order {session.order.order_id} cancelled, back to method selection")

    def _draw_date(self, game_id: str) -> Optional[str]:
        game = self.games.get_game(game_id)
        return game.next_draw if game else None

    # ==================== Shutdown ====================

    async def shutdown(self) -> None:
        """Tear down the mounted driver and wait for timer callbacks to finish"""
        if self.session is not None:
            self._unmount("unmounted")
        self.timer_engine.cancel_all()
        await self.timer_engine.drain()
