"""
Ticket and message domain models.

Rows come back from the data store in snake_case; the storefront consumes
camelCase. Both shapes map onto the same models: fields are declared in
snake_case and serialized through a camelCase alias generator.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from support_desk.handlers.utils.observability import logger

FIRST_TICKET_NUMBER = 1001
ATTACHMENT_PLACEHOLDER = '(Attachment)'


class TicketStatus(str, Enum):
    """Ticket status enumeration."""

    OPEN = 'Open'
    PENDING = 'Pending'
    RESOLVED = 'Resolved'
    CLOSED = 'Closed'

    @property
    def is_terminal(self) -> bool:
        return self in (TicketStatus.RESOLVED, TicketStatus.CLOSED)


class TicketPriority(str, Enum):
    """Ticket priority enumeration."""

    NORMAL = 'normal'
    HIGH = 'high'
    URGENT = 'urgent'


class TicketType(str, Enum):
    """Ticket type enumeration."""

    RETURN = 'return'
    PARTS = 'parts'
    EQUIPMENT_HELP = 'equipment-help'
    ORDER_ISSUE = 'order-issue'
    GENERAL = 'general'


TICKET_TYPE_LABELS = {
    TicketType.RETURN: 'Return Request',
    TicketType.PARTS: 'Parts Request',
    TicketType.EQUIPMENT_HELP: 'Equipment Help',
    TicketType.ORDER_ISSUE: 'Order Issue',
    TicketType.GENERAL: 'General Inquiry',
}


def utc_now_iso() -> str:
    """Current time as an ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:20]}"


def decode_attachments(value: Any) -> Optional[List[Any]]:
    """
    Decode stored attachment metadata.

    The column may hold a JSON array or a JSON-encoded string of one. Anything
    unparseable degrades to None instead of failing the whole response.
    """
    if value is None or value == '':
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            logger.warning("Could not parse stored attachments", extra={"error": str(e)})
            return None
    if isinstance(value, list):
        return value
    logger.warning("Stored attachments are not a list", extra={"value_type": type(value).__name__})
    return None


class CamelModel(BaseModel):
    """Base model accepting snake_case or camelCase and dumping camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode='json')


class Ticket(CamelModel):
    """Core Ticket domain model."""

    id: Annotated[str, Field(
        description='Opaque ticket identifier',
        examples=['tkt_4f0c1d2e3a4b5c6d7e8f']
    )]

    ticket_number: Annotated[int, Field(
        ge=1,
        description='Human-facing sequential number',
        examples=[1001]
    )]

    customer_id: Annotated[str, Field(
        description='Commerce platform customer identifier'
    )]

    customer_email: Optional[str] = None
    customer_name: Optional[str] = None

    type: TicketType
    priority: TicketPriority = TicketPriority.NORMAL
    status: TicketStatus = TicketStatus.OPEN

    subject: str
    description: str

    order_number: Optional[str] = None
    return_reason: Optional[str] = None
    equipment_id: Optional[str] = None
    equipment_name: Optional[str] = None
    part_number: Optional[str] = None
    attachments: Optional[List[Any]] = None

    customer_archived: bool = False
    admin_archived: bool = False

    assigned_to: Optional[str] = None
    assigned_name: Optional[str] = None

    created_at: str
    updated_at: str
    resolved_at: Optional[str] = None

    @field_validator('customer_id', mode='before')
    @classmethod
    def coerce_customer_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator('customer_archived', 'admin_archived', mode='before')
    @classmethod
    def default_archive_flags(cls, v: Any) -> Any:
        # Rows created before the archive columns existed hold NULL
        return False if v is None else v

    @field_validator('attachments', mode='before')
    @classmethod
    def parse_attachments(cls, v: Any) -> Optional[List[Any]]:
        return decode_attachments(v)

    def to_row(self) -> dict:
        """Serialize for the data store (snake_case columns)."""
        return self.model_dump(mode='json')


class TicketMessage(CamelModel):
    """One entry of a ticket's conversation thread."""

    id: str
    ticket_id: str
    message: str
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    is_staff: bool = False
    is_internal: bool = False
    attachments: Optional[List[Any]] = None
    created_at: str

    @field_validator('author_id', mode='before')
    @classmethod
    def coerce_author_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator('is_staff', 'is_internal', mode='before')
    @classmethod
    def default_flags(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator('attachments', mode='before')
    @classmethod
    def parse_attachments(cls, v: Any) -> Optional[List[Any]]:
        return decode_attachments(v)

    def to_row(self) -> dict:
        return self.model_dump(mode='json')
