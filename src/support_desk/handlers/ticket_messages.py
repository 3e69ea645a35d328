"""
Message Reader: a ticket's conversation, oldest first.
"""

from typing import Any, Dict, Optional

from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from aws_lambda_powertools.utilities.typing import LambdaContext

from support_desk.handlers.utils.dependencies import get_ticket_service
from support_desk.handlers.utils.errors import ValidationError
from support_desk.handlers.utils.observability import logger, metrics, tracer
from support_desk.handlers.utils.rest_api import api_endpoint, get_query_params
from support_desk.logic.ticket_service import TicketService


@api_endpoint("GET")
def handle_ticket_messages(event: APIGatewayProxyEvent, service: Optional[TicketService] = None) -> Dict[str, Any]:
    params = get_query_params(event)

    ticket_id = params.get("ticketId")
    if not ticket_id:
        raise ValidationError(message="ticketId is required")

    # Only the exact string "true" exposes internal notes
    include_internal = params.get("includeInternal") == "true"

    service = service or get_ticket_service()
    messages = [message.to_wire() for message in service.list_messages(ticket_id, include_internal)]
    return {"messages": messages, "count": len(messages)}


@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    return handle_ticket_messages(event)
