"""
Support Desk Models Package

Pydantic domain models (tickets, messages, equipment profiles) and the request
models used to validate API input.
"""

from .equipment import EquipmentProfile, Machine, sanitize_machine
from .input import (
    AddEquipmentRequest,
    CreateTicketRequest,
    NotifyRequest,
    ReplyRequest,
    SaveEquipmentRequest,
    UpdateTicketRequest,
)
from .ticket import Ticket, TicketMessage, TicketPriority, TicketStatus, TicketType

__all__ = [
    # Domain models
    "Ticket",
    "TicketMessage",
    "TicketStatus",
    "TicketPriority",
    "TicketType",
    "EquipmentProfile",
    "Machine",
    "sanitize_machine",

    # Input models
    "CreateTicketRequest",
    "UpdateTicketRequest",
    "ReplyRequest",
    "NotifyRequest",
    "SaveEquipmentRequest",
    "AddEquipmentRequest",
]
