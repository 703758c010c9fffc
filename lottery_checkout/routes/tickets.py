"""Ticket history API routes"""

from fastapi import APIRouter, HTTPException

from ..database.tickets import ticket_db
from ..models.ticket import Ticket

router = APIRouter(prefix="/api/tickets", tags=["Tickets"])


@router.get("", response_model=list[Ticket])
async def list_tickets(limit: int = 50):
    """List issued tickets, newest first"""
    return ticket_db.list_tickets(limit=limit)


@router.get("/{ticket_id}", response_model=Ticket)
async def get_ticket(ticket_id: str):
    """Get ticket details"""
    ticket = ticket_db.get_ticket(ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket
