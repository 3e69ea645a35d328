"""
Notifier endpoint: renders and sends one ticket email on request.

Unlike the in-process dispatch used by the ticket writers, failures here are
reported to the caller.
"""

from typing import Any, Dict, Optional

from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from aws_lambda_powertools.utilities.typing import LambdaContext

from support_desk.handlers.utils.dependencies import get_notifier
from support_desk.handlers.utils.observability import logger, metrics, tracer
from support_desk.handlers.utils.rest_api import api_endpoint, parse_json_body
from support_desk.logic.notification_service import Notifier
from support_desk.models.input import NotifyRequest


@api_endpoint("POST")
def handle_ticket_notify(event: APIGatewayProxyEvent, notifier: Optional[Notifier] = None) -> Dict[str, Any]:
    request = NotifyRequest.model_validate(parse_json_body(event))

    notifier = notifier or get_notifier()
    result = notifier.notify(request)

    if not result.sent:
        return {"warning": result.warning}
    return {"emailId": result.email_id}


@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    return handle_ticket_notify(event)
