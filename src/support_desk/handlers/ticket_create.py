"""
Ticket Writer: opens a ticket with the next sequential ticket number.
"""

from typing import Any, Dict, Optional

from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from aws_lambda_powertools.utilities.typing import LambdaContext

from support_desk.handlers.utils.dependencies import get_ticket_service
from support_desk.handlers.utils.observability import logger, metrics, tracer
from support_desk.handlers.utils.rest_api import api_endpoint, parse_json_body, request_error_context
from support_desk.logic.ticket_service import TicketService
from support_desk.models.input import CreateTicketRequest


@api_endpoint("POST")
def handle_ticket_create(event: APIGatewayProxyEvent, service: Optional[TicketService] = None) -> Dict[str, Any]:
    request = CreateTicketRequest.model_validate(parse_json_body(event))

    service = service or get_ticket_service()
    ticket = service.create_ticket(request, context=request_error_context(event, "create_ticket"))

    return {
        "ticket": ticket.to_wire(),
        "message": f"Ticket #{ticket.ticket_number} created successfully",
    }


@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    return handle_ticket_create(event)
