"""Ticket history storage"""

from typing import Optional

from ..models.ticket import Ticket


class DuplicateTicketError(Exception):
    """A ticket already exists for this order"""


class TicketDatabase:
    """In-memory order history"""

    def __init__(self):
        self.tickets: dict[str, Ticket] = {}
        self._order: list[str] = []

    def append(self, ticket: Ticket) -> Ticket:
        """Add a ticket to history. Each order id can appear once."""
        if ticket.id in self.tickets:
            raise DuplicateTicketError(f"Ticket already issued for order {ticket.id}")
        self.tickets[ticket.id] = ticket
        self._order.append(ticket.id)
        return ticket

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        """Get a ticket by ID"""
        return self.tickets.get(ticket_id)

    def list_tickets(self, limit: int = 50) -> list[Ticket]:
        """List tickets, newest first"""
        return [self.tickets[tid] for tid in reversed(self._order)][:limit]

    def count(self) -> int:
        return len(self.tickets)


# Singleton instance
ticket_db = TicketDatabase()
