"""
Business Logic Layer for support tickets.

This module owns the ticket lifecycle: sequential numbering on creation,
status/priority/assignment/archive updates with the ``resolvedAt`` rule, and
the status flip a reply causes on its parent ticket.
"""

from typing import Any, Dict, List, Optional

from aws_lambda_powertools.metrics import MetricUnit

from support_desk.dal import DuplicateTicketNumberError, TicketPage, TicketQuery, TicketStore
from support_desk.handlers.utils.errors import ErrorContext, NotFoundError, UpstreamError
from support_desk.handlers.utils.observability import logger, metrics, tracer
from support_desk.logic.notification_service import NotificationDispatcher, NotificationType
from support_desk.models.input import CreateTicketRequest, NotifyRequest, ReplyRequest, UpdateTicketRequest
from support_desk.models.ticket import (
    ATTACHMENT_PLACEHOLDER,
    FIRST_TICKET_NUMBER,
    Ticket,
    TicketMessage,
    TicketPriority,
    TicketStatus,
    generate_id,
    utc_now_iso,
)

DEFAULT_AUTHOR_NAME = 'Customer'
DEFAULT_STAFF_NAME = 'Support Team'


class TicketNotFoundError(NotFoundError):
    """Raised when a ticket id does not resolve."""

    def __init__(self, ticket_id: str, context: Optional[ErrorContext] = None):
        super().__init__(resource_type="Ticket", resource_id=ticket_id, context=context)


def next_status_after_reply(is_staff: bool, is_internal: bool) -> Optional[TicketStatus]:
    """
    Status a ticket moves to when a message is added.

    Customer replies reopen the ticket, public staff replies hand it back to
    the customer, internal notes leave it alone.
    """
    if not is_staff:
        return TicketStatus.OPEN
    if not is_internal:
        return TicketStatus.PENDING
    return None


class TicketService:
    """Business logic service for ticket management."""

    def __init__(
        self,
        store: TicketStore,
        dispatcher: Optional[NotificationDispatcher] = None,
        admin_email: Optional[str] = None,
        max_number_attempts: int = 5,
    ) -> None:
        """
        Initialize ticket service.

        Args:
            store: Ticket persistence
            dispatcher: Best-effort notification dispatch; None disables notifications
            admin_email: Recipient of new-ticket alerts
            max_number_attempts: Insert attempts when the ticket number is taken concurrently
        """
        self.store = store
        self.dispatcher = dispatcher
        self.admin_email = admin_email or None
        self.max_number_attempts = max_number_attempts

    @tracer.capture_method
    def get_ticket(self, ticket_id: str, context: Optional[ErrorContext] = None) -> Ticket:
        ticket = self.store.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id, context=context)
        return ticket

    @tracer.capture_method
    def list_tickets(self, query: TicketQuery) -> TicketPage:
        page = self.store.list_tickets(query)
        logger.info("Tickets listed", extra={
            "customer_id": query.customer_id,
            "status_filter": query.status,
            "returned": len(page.tickets),
            "total": page.total,
        })
        return page

    def _next_ticket_number(self) -> int:
        current_max = self.store.get_max_ticket_number()
        return FIRST_TICKET_NUMBER if current_max is None else current_max + 1

    @tracer.capture_method
    def create_ticket(self, request: CreateTicketRequest, context: Optional[ErrorContext] = None) -> Ticket:
        """
        Open a new ticket with the next sequential number.

        The number is derived from the current maximum; the data store's
        unique constraint rejects a number taken by a concurrent insert, in
        which case the maximum is re-read and the insert retried.

        Raises:
            UpstreamError: If the store fails or no free number is found
        """
        now = utc_now_iso()
        ticket_id = generate_id('tkt')

        for attempt in range(1, self.max_number_attempts + 1):
            ticket = Ticket(
                id=ticket_id,
                ticket_number=self._next_ticket_number(),
                customer_id=request.customer_id,
                customer_email=request.customer_email,
                customer_name=request.customer_name,
                type=request.type,
                priority=request.priority or TicketPriority.NORMAL,
                status=TicketStatus.OPEN,
                subject=request.subject,
                description=request.description,
                order_number=request.order_number,
                return_reason=request.return_reason,
                equipment_id=request.equipment_id,
                equipment_name=request.equipment_name,
                part_number=request.part_number,
                attachments=request.attachments or None,
                created_at=now,
                updated_at=now,
            )
            try:
                created = self.store.insert_ticket(ticket)
                break
            except DuplicateTicketNumberError as e:
                metrics.add_metric(name="TicketNumberCollision", unit=MetricUnit.Count, value=1)
                logger.warning("Ticket number taken by a concurrent insert, retrying", extra={
                    "ticket_number": e.ticket_number,
                    "attempt": attempt,
                })
        else:
            raise UpstreamError(
                message="Failed to create ticket",
                service_name="data-store",
                context=context,
            )

        metrics.add_metric(name="TicketCreated", unit=MetricUnit.Count, value=1)
        logger.info("Ticket created", extra={
            "ticket_id": created.id,
            "ticket_number": created.ticket_number,
            "customer_id": created.customer_id,
            "ticket_type": created.type,
        })

        self._notify_created(created)
        return created

    def _notify_created(self, ticket: Ticket) -> None:
        if self.dispatcher is None:
            return

        requests = []
        if ticket.customer_email:
            requests.append(NotifyRequest(
                type=NotificationType.TICKET_CREATED.value,
                customer_email=ticket.customer_email,
                customer_name=ticket.customer_name,
                ticket_number=ticket.ticket_number,
                ticket_subject=ticket.subject,
            ))
        if self.admin_email:
            requests.append(NotifyRequest(
                type=NotificationType.NEW_TICKET_ADMIN.value,
                admin_email=self.admin_email,
                customer_email=ticket.customer_email,
                customer_name=ticket.customer_name,
                ticket_number=ticket.ticket_number,
                ticket_subject=ticket.subject,
                ticket_type=ticket.type,
                ticket_description=ticket.description,
            ))
        self.dispatcher.dispatch(requests)

    @tracer.capture_method
    def update_ticket(self, request: UpdateTicketRequest, context: Optional[ErrorContext] = None) -> Ticket:
        """
        Apply a partial update.

        ``updatedAt`` is always bumped; ``resolvedAt`` is stamped when the new
        status is Resolved or Closed.
        """
        self.get_ticket(request.ticket_id, context=context)

        now = utc_now_iso()
        changes: Dict[str, Any] = {'updated_at': now}

        if request.status is not None:
            status = TicketStatus(request.status)
            changes['status'] = status.value
            if status.is_terminal:
                changes['resolved_at'] = now

        if request.priority is not None:
            changes['priority'] = request.priority

        if request.assignment_requested:
            changes['assigned_to'] = request.assigned_to
            changes['assigned_name'] = request.assigned_name or None

        if request.customer_archived is not None:
            changes['customer_archived'] = request.customer_archived
        if request.admin_archived is not None:
            changes['admin_archived'] = request.admin_archived

        updated = self.store.update_ticket(request.ticket_id, changes)
        if updated is None:
            raise TicketNotFoundError(request.ticket_id, context=context)

        metrics.add_metric(name="TicketUpdated", unit=MetricUnit.Count, value=1)
        logger.info("Ticket updated", extra={
            "ticket_id": updated.id,
            "changed_fields": sorted(changes),
            "status": updated.status,
        })
        return updated

    @tracer.capture_method
    def list_messages(self, ticket_id: str, include_internal: bool) -> List[TicketMessage]:
        messages = self.store.list_messages(ticket_id, include_internal=include_internal)
        logger.debug("Messages listed", extra={
            "ticket_id": ticket_id,
            "include_internal": include_internal,
            "count": len(messages),
        })
        return messages

    @tracer.capture_method
    def add_reply(self, request: ReplyRequest, context: Optional[ErrorContext] = None) -> TicketMessage:
        """
        Append a message to a ticket and move the ticket's status accordingly.

        A public staff reply also notifies the customer when an email is on file.
        """
        ticket = self.get_ticket(request.ticket_id, context=context)

        now = utc_now_iso()
        text = (request.message or '').strip()
        message = self.store.insert_message(TicketMessage(
            id=generate_id('msg'),
            ticket_id=ticket.id,
            message=text or ATTACHMENT_PLACEHOLDER,
            author_id=request.author_id,
            author_name=request.author_name or DEFAULT_AUTHOR_NAME,
            author_email=request.author_email,
            is_staff=request.is_staff,
            is_internal=request.is_internal,
            attachments=request.attachments or None,
            created_at=now,
        ))

        changes: Dict[str, Any] = {'updated_at': now}
        new_status = next_status_after_reply(request.is_staff, request.is_internal)
        if new_status is not None:
            changes['status'] = new_status.value
        self.store.update_ticket(ticket.id, changes)

        metrics.add_metric(name="ReplyCreated", unit=MetricUnit.Count, value=1)
        logger.info("Reply added", extra={
            "ticket_id": ticket.id,
            "message_id": message.id,
            "is_staff": request.is_staff,
            "is_internal": request.is_internal,
            "new_status": new_status.value if new_status else None,
        })

        if request.is_staff and not request.is_internal and ticket.customer_email and self.dispatcher:
            self.dispatcher.dispatch([NotifyRequest(
                type=NotificationType.ADMIN_REPLY.value,
                customer_email=ticket.customer_email,
                customer_name=ticket.customer_name,
                ticket_number=ticket.ticket_number,
                ticket_subject=ticket.subject,
                message=text,
                staff_name=request.author_name or DEFAULT_STAFF_NAME,
            )])

        return message
