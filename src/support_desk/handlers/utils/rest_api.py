"""
API Gateway proxy plumbing shared by every support desk endpoint.

Each endpoint is its own Lambda function, so instead of a path router this
module offers the ``api_endpoint`` decorator: it answers CORS preflight,
rejects unsupported verbs with 405, wraps the handler's payload in the
``{"success": true, ...}`` envelope and turns service errors into JSON error
responses.
"""

import functools
import json
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type

from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from pydantic import ValidationError as PydanticValidationError

from support_desk.handlers.utils.errors import (
    BaseServiceError,
    MethodNotAllowedError,
    ErrorContext,
    ValidationError,
    create_error_context,
    format_error_response,
    get_http_status_code,
    log_error_metrics,
)
from support_desk.handlers.utils.observability import logger, metrics

OPTIONS_METHOD = 'OPTIONS'


def build_cors_headers(allowed_methods: List[str]) -> Dict[str, str]:
    """
    Headers attached to every response of an endpoint.

    Built here rather than through Powertools ``CORSConfig`` because the
    resolver only emits them from its router, and each endpoint must answer
    its own preflight with a 200 and every other unlisted verb with a 405.
    """
    return {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Methods": ", ".join([*allowed_methods, OPTIONS_METHOD]),
    }


def create_api_response(
    status_code: int,
    body: Any,
    headers: Dict[str, str],
) -> Dict[str, Any]:
    """Create an API Gateway proxy response."""
    return {
        "statusCode": status_code,
        "headers": dict(headers),
        "body": body if isinstance(body, str) else json.dumps(body),
    }


def parse_json_body(event: APIGatewayProxyEvent) -> Dict[str, Any]:
    """
    Decode the request body as a JSON object.

    An absent body is treated as an empty object so the request models can
    report which fields are missing.
    """
    raw_body = event.decoded_body if event.body else None
    if not raw_body:
        return {}

    try:
        body = json.loads(raw_body)
    except json.JSONDecodeError as e:
        raise ValidationError(message="Invalid JSON in request body") from e

    if not isinstance(body, dict):
        raise ValidationError(message="Request body must be a JSON object")

    return body


def get_query_params(event: APIGatewayProxyEvent) -> Dict[str, str]:
    return dict(event.query_string_parameters or {})


def parse_positive_int(value: Optional[str], name: str, default: Optional[int] = None) -> Optional[int]:
    """Parse a query string integer that must be >= 1."""
    if value is None or value == '':
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(message=f"{name} must be a positive integer") from e
    if parsed < 1:
        raise ValidationError(message=f"{name} must be a positive integer")
    return parsed


def parse_optional_bool(value: Optional[str], name: str) -> Optional[bool]:
    """Parse a ``true``/``false`` query string flag; absent means no filter."""
    if value is None or value == '':
        return None
    lowered = value.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    raise ValidationError(message=f"{name} must be 'true' or 'false'")


def parse_enum_filter(value: Optional[str], enum_cls: Type[Enum], name: str) -> Optional[str]:
    """Validate an optional query string filter against an enum."""
    if value is None or value == '':
        return None
    allowed = [member.value for member in enum_cls]
    if value not in allowed:
        raise ValidationError(message=f"Invalid {name}. Must be one of: {', '.join(allowed)}")
    return value


def request_error_context(
    event: APIGatewayProxyEvent,
    operation: str,
    resource_id: Optional[str] = None,
) -> ErrorContext:
    """Error context carrying the API Gateway request id."""
    request_context = event.get("requestContext") or {}
    return create_error_context(
        request_id=request_context.get("requestId", "unknown"),
        operation=operation,
        resource_id=resource_id,
    )


def validation_error_from_pydantic(error: PydanticValidationError) -> ValidationError:
    """Convert a request model validation failure into a service ValidationError."""
    field_errors = []
    for detail in error.errors():
        message = str(detail.get("msg", "Invalid value")).removeprefix("Value error, ")
        location = detail.get("loc") or ()
        field_errors.append({
            "field": str(location[-1]) if location else "",
            "message": message,
        })

    first_message = field_errors[0]["message"] if field_errors else "Request validation failed"
    return ValidationError(message=first_message, field_errors=field_errors)


def api_endpoint(*allowed_methods: str) -> Callable:
    """
    Decorator for an endpoint function ``func(event, *args, **kwargs) -> dict``.

    The raw proxy event is wrapped in ``APIGatewayProxyEvent`` before the
    function sees it. The returned dict is merged into the success envelope.
    """
    methods = [method.upper() for method in allowed_methods]

    def decorator(func: Callable[..., Dict[str, Any]]) -> Callable[..., Dict[str, Any]]:
        @functools.wraps(func)
        def wrapper(raw_event: Dict[str, Any], *args: Any, **kwargs: Any) -> Dict[str, Any]:
            event = APIGatewayProxyEvent(raw_event)
            headers = build_cors_headers(methods)
            http_method = (event.http_method or '').upper()

            if http_method == OPTIONS_METHOD:
                return create_api_response(status_code=200, body='', headers=headers)

            try:
                if http_method not in methods:
                    raise MethodNotAllowedError(method=http_method, allowed_methods=methods)

                payload = func(event, *args, **kwargs)
                return create_api_response(
                    status_code=200,
                    body={"success": True, **payload},
                    headers=headers,
                )

            except BaseServiceError as e:
                log_error_metrics(e)
                return create_api_response(
                    status_code=get_http_status_code(e),
                    body=format_error_response(e),
                    headers=headers,
                )

            except PydanticValidationError as e:
                logger.warning("Request validation failed", extra={
                    "validation_errors": str(e),
                    "error_count": e.error_count(),
                    "function_name": func.__name__,
                })
                validation_error = validation_error_from_pydantic(e)
                log_error_metrics(validation_error)
                return create_api_response(
                    status_code=400,
                    body=format_error_response(validation_error),
                    headers=headers,
                )

            except Exception as e:
                logger.exception("Unexpected error in handler", extra={
                    "error": str(e),
                    "function_name": func.__name__,
                })
                metrics.add_metric(name="UnexpectedError", unit=MetricUnit.Count, value=1)
                return create_api_response(
                    status_code=500,
                    body={"success": False, "error": "Internal server error", "code": "INTERNAL_SERVER_ERROR"},
                    headers=headers,
                )

        return wrapper

    return decorator
