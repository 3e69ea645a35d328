"""
Ticket Reader, customer view.

``GET ?ticketId=`` returns one ticket; ``GET ?customerId=`` lists that
customer's tickets newest first, with optional status/type/priority/archived
filters and page/limit pagination.
"""

from typing import Any, Dict, Optional

from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from aws_lambda_powertools.utilities.typing import LambdaContext

from support_desk.dal import TicketQuery
from support_desk.handlers.utils.dependencies import get_ticket_service
from support_desk.handlers.utils.errors import ValidationError
from support_desk.handlers.utils.observability import logger, metrics, tracer
from support_desk.handlers.utils.rest_api import (
    api_endpoint,
    get_query_params,
    parse_enum_filter,
    parse_optional_bool,
    parse_positive_int,
    request_error_context,
)
from support_desk.logic.ticket_service import TicketService
from support_desk.models.ticket import TicketPriority, TicketStatus, TicketType


@api_endpoint("GET")
def handle_ticket_get(event: APIGatewayProxyEvent, service: Optional[TicketService] = None) -> Dict[str, Any]:
    params = get_query_params(event)

    ticket_id = params.get("ticketId")
    if ticket_id:
        service = service or get_ticket_service()
        context = request_error_context(event, "get_ticket", resource_id=ticket_id)
        ticket = service.get_ticket(ticket_id, context=context)
        return {"ticket": ticket.to_wire()}

    customer_id = params.get("customerId")
    if not customer_id:
        raise ValidationError(message="customerId is required")

    limit = parse_positive_int(params.get("limit"), "limit")
    page = parse_positive_int(params.get("page"), "page", default=1)

    query = TicketQuery(
        customer_id=customer_id,
        status=parse_enum_filter(params.get("status"), TicketStatus, "status"),
        type=parse_enum_filter(params.get("type"), TicketType, "type"),
        priority=parse_enum_filter(params.get("priority"), TicketPriority, "priority"),
        customer_archived=parse_optional_bool(params.get("archived"), "archived"),
        limit=limit,
        offset=(page - 1) * limit if limit else 0,
    )

    service = service or get_ticket_service()
    result = service.list_tickets(query)
    tickets = [ticket.to_wire() for ticket in result.tickets]
    return {"tickets": tickets, "count": len(tickets)}


@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    return handle_ticket_get(event)
