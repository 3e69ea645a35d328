"""
Equipment Store endpoint.

GET  ``?action=list-customers[&limit=&cursor=]``  customers that have equipment
GET  ``?action=get-customer&customerId=``           one customer's profile
POST ``{customerId, equipmentData: {machines}}``    replace the whole list
POST ``{action: "add", customerId, machine}``       append one machine

The action of a POST may also be given in the query string.
"""

from typing import Any, Dict, Optional

from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from aws_lambda_powertools.utilities.typing import LambdaContext

from support_desk.handlers.utils.dependencies import get_equipment_service
from support_desk.handlers.utils.errors import ValidationError
from support_desk.handlers.utils.observability import logger, metrics, tracer
from support_desk.handlers.utils.rest_api import (
    api_endpoint,
    get_query_params,
    parse_json_body,
    parse_positive_int,
    request_error_context,
)
from support_desk.logic.equipment_service import EquipmentService
from support_desk.models.input import AddEquipmentRequest, SaveEquipmentRequest

ACTION_LIST_CUSTOMERS = 'list-customers'
ACTION_GET_CUSTOMER = 'get-customer'
ACTION_ADD = 'add'

DEFAULT_CUSTOMER_PAGE_SIZE = 50
MAX_CUSTOMER_PAGE_SIZE = 250


def _list_customers(params: Dict[str, str], service: EquipmentService) -> Dict[str, Any]:
    limit = min(
        parse_positive_int(params.get("limit"), "limit", default=DEFAULT_CUSTOMER_PAGE_SIZE),
        MAX_CUSTOMER_PAGE_SIZE,
    )
    page = service.list_customers(limit=limit, cursor=params.get("cursor") or None)
    return {
        "customers": [customer.summary() for customer in page.customers],
        "pageInfo": {"hasNextPage": page.has_next_page, "endCursor": page.end_cursor},
    }


def _get_customer(event: APIGatewayProxyEvent, params: Dict[str, str], service: EquipmentService) -> Dict[str, Any]:
    customer_id = params.get("customerId")
    if not customer_id:
        raise ValidationError(message="customerId is required")

    context = request_error_context(event, "get_customer", resource_id=customer_id)
    customer = service.get_customer(customer_id, context=context)
    return {"customerId": customer.customer_id, "equipmentData": customer.profile.to_wire()}


@api_endpoint("GET", "POST")
def handle_equipment(event: APIGatewayProxyEvent, service: Optional[EquipmentService] = None) -> Dict[str, Any]:
    params = get_query_params(event)

    if event.http_method.upper() == "GET":
        action = params.get("action")
        if action == ACTION_LIST_CUSTOMERS:
            return _list_customers(params, service or get_equipment_service())
        if action == ACTION_GET_CUSTOMER:
            return _get_customer(event, params, service or get_equipment_service())
        raise ValidationError(message="Invalid action")

    body = parse_json_body(event)
    action = params.get("action") or body.get("action")

    if action == ACTION_ADD:
        request = AddEquipmentRequest.model_validate(body)
        service = service or get_equipment_service()
        context = request_error_context(event, "add_machine", resource_id=request.customer_id)
        profile = service.add_machine(request.customer_id, request.machine, context=context)
        return {"message": "Machine added", "equipmentData": profile.to_wire()}

    request = SaveEquipmentRequest.model_validate(body)
    service = service or get_equipment_service()
    context = request_error_context(event, "save_profile", resource_id=request.customer_id)
    profile = service.save_profile(request.customer_id, request.machines, context=context)
    return {"message": "Equipment list saved", "equipmentData": profile.to_wire()}


@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    return handle_equipment(event)
