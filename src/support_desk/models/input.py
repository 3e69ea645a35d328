"""
Input models for request validation using Pydantic.

Request bodies arrive in camelCase from the storefront; the models accept
those names through the camelCase alias generator and expose snake_case
attributes to the logic layer.
"""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from support_desk.models.ticket import TicketPriority, TicketStatus, TicketType


def _enum_values(enum_cls) -> str:
    return ', '.join(member.value for member in enum_cls)


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateTicketRequest(RequestModel):
    """Request model for opening a new ticket."""

    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None

    type: Optional[str] = None
    priority: Annotated[Optional[str], Field(
        default=None,
        description='normal when omitted',
        examples=['normal', 'high', 'urgent']
    )] = None

    subject: Optional[str] = None
    description: Optional[str] = None

    order_number: Optional[str] = None
    return_reason: Optional[str] = None
    equipment_id: Optional[str] = None
    equipment_name: Optional[str] = None
    part_number: Optional[str] = None
    attachments: Optional[List[Any]] = None

    @field_validator('customer_id', 'order_number', 'equipment_id', 'part_number', mode='before')
    @classmethod
    def coerce_identifiers(cls, v: Any) -> Any:
        # Storefront sends numeric ids as JSON numbers
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v)) if float(v).is_integer() else str(v)
        return _blank_to_none(v)

    @field_validator(
        'customer_email', 'customer_name', 'type', 'priority', 'subject', 'description',
        'return_reason', 'equipment_name', mode='before'
    )
    @classmethod
    def blank_strings(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @model_validator(mode='after')
    def check_required_and_enums(self) -> 'CreateTicketRequest':
        if not (self.customer_id and self.type and self.subject and self.description):
            raise ValueError('Missing required fields: customerId, type, subject, description')
        if self.type not in {member.value for member in TicketType}:
            raise ValueError(f'Invalid type. Must be one of: {_enum_values(TicketType)}')
        if self.priority is not None and self.priority not in {member.value for member in TicketPriority}:
            raise ValueError(f'Invalid priority. Must be one of: {_enum_values(TicketPriority)}')
        return self


class UpdateTicketRequest(RequestModel):
    """Partial update of a ticket; only fields that are present are applied."""

    ticket_id: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    assigned_name: Optional[str] = None
    customer_archived: Optional[bool] = None
    admin_archived: Optional[bool] = None

    @field_validator('ticket_id', mode='before')
    @classmethod
    def blank_ticket_id(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator('status')
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in {member.value for member in TicketStatus}:
            raise ValueError(f'Invalid status. Must be one of: {_enum_values(TicketStatus)}')
        return v

    @field_validator('priority')
    @classmethod
    def validate_priority(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in {member.value for member in TicketPriority}:
            raise ValueError(f'Invalid priority. Must be one of: {_enum_values(TicketPriority)}')
        return v

    @field_validator('assigned_to', mode='before')
    @classmethod
    def coerce_assignee(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v

    @model_validator(mode='after')
    def check_ticket_id(self) -> 'UpdateTicketRequest':
        if not self.ticket_id:
            raise ValueError('ticketId is required')
        return self

    @property
    def assignment_requested(self) -> bool:
        return 'assigned_to' in self.model_fields_set


class ReplyRequest(RequestModel):
    """A message appended to a ticket by the customer or staff."""

    ticket_id: Optional[str] = None
    message: Optional[str] = None
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    is_staff: bool = False
    is_internal: bool = False
    attachments: Optional[List[Any]] = None

    @field_validator('author_id', mode='before')
    @classmethod
    def coerce_author_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v

    @field_validator('is_staff', 'is_internal', mode='before')
    @classmethod
    def null_flags(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator('ticket_id', 'author_name', mode='before')
    @classmethod
    def blank_strings(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @model_validator(mode='after')
    def check_content(self) -> 'ReplyRequest':
        has_text = bool(self.message and self.message.strip())
        if not self.ticket_id or not (has_text or self.attachments):
            raise ValueError('ticketId and message (or attachments) are required')
        return self


class NotifyRequest(RequestModel):
    """Fields consumed by the email templates."""

    type: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    admin_email: Optional[str] = None
    ticket_number: Optional[int] = None
    ticket_subject: Optional[str] = None
    ticket_type: Optional[str] = None
    ticket_description: Optional[str] = None
    message: Optional[str] = None
    new_status: Optional[str] = None
    staff_name: Optional[str] = None

    @field_validator('customer_email', 'admin_email', 'type', mode='before')
    @classmethod
    def blank_strings(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @model_validator(mode='after')
    def check_recipient(self) -> 'NotifyRequest':
        if not (self.customer_email or self.admin_email) or self.ticket_number is None:
            raise ValueError('Missing required fields')
        return self


class SaveEquipmentRequest(RequestModel):
    """Full replacement of a customer's equipment list."""

    customer_id: Optional[str] = None
    equipment_data: Optional[Dict[str, Any]] = None

    @field_validator('customer_id', mode='before')
    @classmethod
    def coerce_customer_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return _blank_to_none(v)

    @model_validator(mode='after')
    def check_machines(self) -> 'SaveEquipmentRequest':
        if not self.customer_id or not self.equipment_data or not isinstance(self.equipment_data.get('machines'), list):
            raise ValueError('Invalid data: customerId and equipmentData.machines are required')
        return self

    @property
    def machines(self) -> List[Any]:
        return self.equipment_data['machines']


class AddEquipmentRequest(RequestModel):
    """Append a single machine to a customer's equipment list."""

    customer_id: Optional[str] = None
    machine: Optional[Dict[str, Any]] = None

    @field_validator('customer_id', mode='before')
    @classmethod
    def coerce_customer_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return _blank_to_none(v)

    @model_validator(mode='after')
    def check_machine(self) -> 'AddEquipmentRequest':
        if not self.customer_id or not self.machine:
            raise ValueError('Invalid data: customerId and machine are required')
        return self
