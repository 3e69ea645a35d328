"""
Ticket Reader, admin view.

Lists every customer's tickets with filters and page/limit pagination. The
total comes from the data store's exact row count so the admin UI can render
page numbers.
"""

from typing import Any, Dict, Optional

from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from aws_lambda_powertools.utilities.typing import LambdaContext

from support_desk.dal import TicketQuery
from support_desk.handlers.utils.dependencies import get_ticket_service
from support_desk.handlers.utils.observability import logger, metrics, tracer
from support_desk.handlers.utils.rest_api import (
    api_endpoint,
    get_query_params,
    parse_enum_filter,
    parse_optional_bool,
    parse_positive_int,
)
from support_desk.logic.ticket_service import TicketService
from support_desk.models.ticket import TicketPriority, TicketStatus, TicketType

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


@api_endpoint("GET")
def handle_ticket_admin_list(
    event: APIGatewayProxyEvent,
    service: Optional[TicketService] = None,
) -> Dict[str, Any]:
    params = get_query_params(event)

    page = parse_positive_int(params.get("page"), "page", default=1)
    limit = min(parse_positive_int(params.get("limit"), "limit", default=DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)

    query = TicketQuery(
        status=parse_enum_filter(params.get("status"), TicketStatus, "status"),
        type=parse_enum_filter(params.get("type"), TicketType, "type"),
        priority=parse_enum_filter(params.get("priority"), TicketPriority, "priority"),
        admin_archived=parse_optional_bool(params.get("archived"), "archived"),
        limit=limit,
        offset=(page - 1) * limit,
        count_total=True,
    )

    service = service or get_ticket_service()
    result = service.list_tickets(query)
    tickets = [ticket.to_wire() for ticket in result.tickets]

    return {
        "tickets": tickets,
        "count": len(tickets),
        "total": result.total if result.total is not None else len(tickets),
        "page": page,
        "limit": limit,
    }


@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    return handle_ticket_admin_list(event)
