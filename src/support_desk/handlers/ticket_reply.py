"""
Message Writer: appends a customer reply, staff reply or internal note.
"""

from typing import Any, Dict, Optional

from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from aws_lambda_powertools.utilities.typing import LambdaContext

from support_desk.handlers.utils.dependencies import get_ticket_service
from support_desk.handlers.utils.observability import logger, metrics, tracer
from support_desk.handlers.utils.rest_api import api_endpoint, parse_json_body, request_error_context
from support_desk.logic.ticket_service import TicketService
from support_desk.models.input import ReplyRequest


@api_endpoint("POST")
def handle_ticket_reply(event: APIGatewayProxyEvent, service: Optional[TicketService] = None) -> Dict[str, Any]:
    request = ReplyRequest.model_validate(parse_json_body(event))

    service = service or get_ticket_service()
    context = request_error_context(event, "add_reply", resource_id=request.ticket_id)
    message = service.add_reply(request, context=context)

    return {"message": message.to_wire()}


@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    return handle_ticket_reply(event)
