"""
Support desk service.

Serverless handlers for a customer-support ticketing system and a customer
equipment-profile store, following the three-layer architecture:

- handlers: one Lambda entry point per API endpoint
- logic: ticket lifecycle, equipment validation, notifications
- dal: REST data store and commerce GraphQL clients
- models: pydantic domain and request models
"""

__version__ = "1.0.0"
__description__ = "Support ticket and equipment profile Lambda handlers"

from support_desk.handlers.utils.observability import logger, metrics, tracer
from support_desk.models.equipment import EquipmentProfile, Machine
from support_desk.models.ticket import Ticket, TicketMessage, TicketStatus

__all__ = [
    "EquipmentProfile",
    "Machine",
    "Ticket",
    "TicketMessage",
    "TicketStatus",
    "logger",
    "metrics",
    "tracer",
]
