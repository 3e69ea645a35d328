"""
Postgres REST (PostgREST dialect) implementation of the ticket store.

Tickets and messages live in two tables. Rows are exchanged as snake_case
JSON and decoded into the domain models; a row that does not decode is
reported as an ``UpstreamError`` rather than leaking a parse exception.
"""

from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from support_desk.dal import DuplicateTicketNumberError, TicketPage, TicketQuery
from support_desk.handlers.utils.errors import UpstreamError
from support_desk.handlers.utils.observability import logger, tracer
from support_desk.models.ticket import Ticket, TicketMessage

SERVICE_NAME = 'data-store'
UNIQUE_VIOLATION = '23505'
# Returned for an offset past the last row when an exact count is requested
RANGE_NOT_SATISFIABLE = 416

RowModel = TypeVar('RowModel', bound=BaseModel)


def parse_content_range_total(header: Optional[str]) -> Optional[int]:
    """Extract the total from a ``Content-Range: 0-49/123`` header."""
    if not header or '/' not in header:
        return None
    total = header.rsplit('/', 1)[1]
    return int(total) if total.isdigit() else None


def _archived_filter(value: bool) -> str:
    # NULL means "never archived"
    return 'is.true' if value else 'not.is.true'


class SupabaseTicketStore:
    """Ticket store backed by the Postgres REST API."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        tickets_table: str = 'support_tickets',
        messages_table: str = 'ticket_messages',
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            base_url: Project URL, without the ``/rest/v1`` suffix
            service_key: Service role key
            tickets_table: Table holding tickets
            messages_table: Table holding ticket messages
            timeout: Per-request timeout in seconds
            client: Pre-built HTTP client, mainly for tests
        """
        self.tickets_table = tickets_table
        self.messages_table = messages_table
        self.client = client or httpx.Client(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={
                'apikey': service_key,
                'Authorization': f'Bearer {service_key}',
            },
            timeout=timeout,
        )

        logger.debug("Data store client initialized", extra={
            "tickets_table": tickets_table,
            "messages_table": messages_table,
        })

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        prefer: Optional[str] = None,
        allowed_statuses: Tuple[int, ...] = (),
    ) -> httpx.Response:
        headers = {'Prefer': prefer} if prefer else None
        try:
            response = self.client.request(method, f'/{path}', params=params, json=json_body, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Data store request failed", extra={"operation": operation, "error": str(e)})
            raise UpstreamError(message=f"Failed to {operation}", service_name=SERVICE_NAME) from e

        if response.is_success or response.status_code in allowed_statuses:
            return response

        error_body = self._error_body(response)
        logger.error("Data store returned an error", extra={
            "operation": operation,
            "status_code": response.status_code,
            "error_body": error_body,
        })
        raise UpstreamError(
            message=f"Failed to {operation}",
            service_name=SERVICE_NAME,
            status_code=response.status_code,
        )

    @staticmethod
    def _error_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {"message": response.text}
        return body if isinstance(body, dict) else {"message": str(body)}

    @staticmethod
    def _rows(response: httpx.Response, operation: str) -> List[Dict[str, Any]]:
        try:
            rows = response.json()
        except ValueError as e:
            raise UpstreamError(message=f"Malformed response while trying to {operation}", service_name=SERVICE_NAME) from e
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise UpstreamError(message=f"Malformed response while trying to {operation}", service_name=SERVICE_NAME)
        return rows

    @staticmethod
    def _decode(model: Type[RowModel], row: Dict[str, Any], operation: str) -> RowModel:
        try:
            return model.model_validate(row)
        except PydanticValidationError as e:
            logger.error("Data store row did not match the expected shape", extra={
                "operation": operation,
                "model": model.__name__,
                "errors": e.errors(include_url=False),
            })
            raise UpstreamError(message=f"Malformed response while trying to {operation}", service_name=SERVICE_NAME) from e

    @tracer.capture_method
    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        operation = 'fetch ticket'
        response = self._request('GET', self.tickets_table, operation, params={
            'id': f'eq.{ticket_id}',
            'limit': '1',
        })
        rows = self._rows(response, operation)
        if not rows:
            logger.info("Ticket not found", extra={"ticket_id": ticket_id})
            return None
        return self._decode(Ticket, rows[0], operation)

    @tracer.capture_method
    def list_tickets(self, query: TicketQuery) -> TicketPage:
        operation = 'fetch tickets'
        params: Dict[str, str] = {'order': 'created_at.desc'}

        for column in ('customer_id', 'status', 'type', 'priority'):
            value = getattr(query, column)
            if value is not None:
                params[column] = f'eq.{value}'
        if query.customer_archived is not None:
            params['customer_archived'] = _archived_filter(query.customer_archived)
        if query.admin_archived is not None:
            params['admin_archived'] = _archived_filter(query.admin_archived)
        if query.limit is not None:
            params['limit'] = str(query.limit)
        if query.offset:
            params['offset'] = str(query.offset)

        response = self._request(
            'GET', self.tickets_table, operation,
            params=params,
            prefer='count=exact' if query.count_total else None,
            allowed_statuses=(RANGE_NOT_SATISFIABLE,),
        )
        if response.status_code == RANGE_NOT_SATISFIABLE:
            logger.info("Requested page is past the last ticket", extra={"offset": query.offset})
            tickets = []
        else:
            tickets = [self._decode(Ticket, row, operation) for row in self._rows(response, operation)]

        total = None
        if query.count_total:
            total = parse_content_range_total(response.headers.get('content-range'))
            if total is None:
                total = query.offset + len(tickets)

        return TicketPage(tickets=tickets, total=total)

    @tracer.capture_method
    def get_max_ticket_number(self) -> Optional[int]:
        operation = 'read ticket numbers'
        response = self._request('GET', self.tickets_table, operation, params={
            'select': 'ticket_number',
            'order': 'ticket_number.desc.nullslast',
            'limit': '1',
        })
        rows = self._rows(response, operation)
        if not rows or rows[0].get('ticket_number') is None:
            return None
        try:
            return int(rows[0]['ticket_number'])
        except (TypeError, ValueError) as e:
            raise UpstreamError(message=f"Malformed response while trying to {operation}", service_name=SERVICE_NAME) from e

    @tracer.capture_method
    def insert_ticket(self, ticket: Ticket) -> Ticket:
        operation = 'create ticket'
        try:
            response = self.client.post(
                f'/{self.tickets_table}',
                json=ticket.to_row(),
                headers={'Prefer': 'return=representation'},
            )
        except httpx.HTTPError as e:
            logger.error("Data store request failed", extra={"operation": operation, "error": str(e)})
            raise UpstreamError(message="Failed to create ticket", service_name=SERVICE_NAME) from e

        if response.status_code == 409 or (
            not response.is_success and self._error_body(response).get('code') == UNIQUE_VIOLATION
        ):
            raise DuplicateTicketNumberError(ticket.ticket_number)

        if not response.is_success:
            logger.error("Data store returned an error", extra={
                "operation": operation,
                "status_code": response.status_code,
                "error_body": self._error_body(response),
            })
            raise UpstreamError(message="Failed to create ticket", service_name=SERVICE_NAME, status_code=response.status_code)

        rows = self._rows(response, operation)
        if not rows:
            raise UpstreamError(message="Failed to create ticket", service_name=SERVICE_NAME)
        return self._decode(Ticket, rows[0], operation)

    @tracer.capture_method
    def update_ticket(self, ticket_id: str, changes: Dict[str, Any]) -> Optional[Ticket]:
        operation = 'update ticket'
        response = self._request(
            'PATCH', self.tickets_table, operation,
            params={'id': f'eq.{ticket_id}'},
            json_body=changes,
            prefer='return=representation',
        )
        rows = self._rows(response, operation)
        if not rows:
            return None
        return self._decode(Ticket, rows[0], operation)

    @tracer.capture_method
    def list_messages(self, ticket_id: str, include_internal: bool) -> List[TicketMessage]:
        operation = 'fetch messages'
        params = {
            'ticket_id': f'eq.{ticket_id}',
            'order': 'created_at.asc',
        }
        if not include_internal:
            params['is_internal'] = 'not.is.true'

        response = self._request('GET', self.messages_table, operation, params=params)
        return [self._decode(TicketMessage, row, operation) for row in self._rows(response, operation)]

    @tracer.capture_method
    def insert_message(self, message: TicketMessage) -> TicketMessage:
        operation = 'create message'
        response = self._request(
            'POST', self.messages_table, operation,
            json_body=message.to_row(),
            prefer='return=representation',
        )
        rows = self._rows(response, operation)
        if not rows:
            raise UpstreamError(message="Failed to create message", service_name=SERVICE_NAME)
        return self._decode(TicketMessage, rows[0], operation)
