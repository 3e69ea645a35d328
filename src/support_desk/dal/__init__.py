"""
Data Access Layer (DAL) for the support desk.

The logic layer only talks to the protocols below; the concrete REST and
GraphQL clients live in ``supabase_handler`` and ``shopify_handler`` and can be
swapped for in-memory fakes in tests.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from support_desk.handlers.utils.errors import UpstreamError
from support_desk.models.equipment import EquipmentProfile
from support_desk.models.ticket import Ticket, TicketMessage


class DuplicateTicketNumberError(UpstreamError):
    """Raised when an insert hits the unique constraint on ticket_number."""

    def __init__(self, ticket_number: int):
        super().__init__(
            message=f"Ticket number {ticket_number} is already taken",
            service_name="data-store",
            status_code=409,
        )
        self.ticket_number = ticket_number


@dataclass
class TicketQuery:
    """Filters and pagination for ticket listings."""

    customer_id: Optional[str] = None
    status: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    customer_archived: Optional[bool] = None
    admin_archived: Optional[bool] = None
    limit: Optional[int] = None
    offset: int = 0
    count_total: bool = False


@dataclass
class TicketPage:
    tickets: List[Ticket]
    total: Optional[int] = None


@dataclass
class CustomerEquipment:
    """A commerce customer together with their stored equipment profile."""

    customer_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile: EquipmentProfile = field(default_factory=EquipmentProfile)
    # Set when a stored document exists but does not decode; the profile is then empty
    profile_malformed: bool = False

    def summary(self) -> Dict[str, Any]:
        return {
            "customerId": self.customer_id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "machineCount": self.profile.machine_count,
            "updatedAt": self.profile.updated_at,
        }


@dataclass
class CustomerPage:
    customers: List[CustomerEquipment]
    has_next_page: bool = False
    end_cursor: Optional[str] = None


@runtime_checkable
class TicketStore(Protocol):
    """Persistence for tickets and their messages."""

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        ...

    def list_tickets(self, query: TicketQuery) -> TicketPage:
        ...

    def get_max_ticket_number(self) -> Optional[int]:
        ...

    def insert_ticket(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket; raises DuplicateTicketNumberError on a number clash."""
        ...

    def update_ticket(self, ticket_id: str, changes: Dict[str, Any]) -> Optional[Ticket]:
        ...

    def list_messages(self, ticket_id: str, include_internal: bool) -> List[TicketMessage]:
        ...

    def insert_message(self, message: TicketMessage) -> TicketMessage:
        ...


@runtime_checkable
class EquipmentStore(Protocol):
    """Persistence for equipment profiles held in customer metafields."""

    def list_customers(self, first: int, after: Optional[str] = None) -> CustomerPage:
        ...

    def get_customer(self, customer_id: str) -> Optional[CustomerEquipment]:
        ...

    def save_profile(self, customer_id: str, profile: EquipmentProfile) -> None:
        ...


__all__ = [
    'CustomerEquipment',
    'CustomerPage',
    'DuplicateTicketNumberError',
    'EquipmentStore',
    'TicketPage',
    'TicketQuery',
    'TicketStore',
]
