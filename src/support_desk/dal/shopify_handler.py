"""
Commerce platform GraphQL implementation of the equipment store.

Each customer's equipment profile is a JSON metafield
(``custom.equipment_list``) on the customer record.
"""

import json
from typing import Any, Dict, Optional, Tuple

import httpx
from pydantic import ValidationError as PydanticValidationError

from support_desk.dal import CustomerEquipment, CustomerPage
from support_desk.handlers.utils.errors import UpstreamError
from support_desk.handlers.utils.observability import logger, tracer
from support_desk.models.equipment import EquipmentProfile

SERVICE_NAME = 'commerce-api'
METAFIELD_NAMESPACE = 'custom'
METAFIELD_KEY = 'equipment_list'
CUSTOMER_GID_PREFIX = 'gid://shopify/Customer/'

CUSTOMER_FIELDS = """
    id
    email
    firstName
    lastName
    metafield(namespace: "%s", key: "%s") { value }
""" % (METAFIELD_NAMESPACE, METAFIELD_KEY)

GET_CUSTOMER_QUERY = """
query GetCustomerEquipment($id: ID!) {
  customer(id: $id) {%s}
}
""" % CUSTOMER_FIELDS

LIST_CUSTOMERS_QUERY = """
query ListCustomersWithEquipment($first: Int!, $after: String) {
  customers(first: $first, after: $after, sortKey: UPDATED_AT, reverse: true) {
    pageInfo { hasNextPage endCursor }
    edges { node {%s} }
  }
}
""" % CUSTOMER_FIELDS

SAVE_PROFILE_MUTATION = """
mutation SaveCustomerEquipment($input: CustomerInput!) {
  customerUpdate(input: $input) {
    customer { id }
    userErrors { field message }
  }
}
"""


def to_customer_gid(customer_id: str) -> str:
    customer_id = str(customer_id)
    if customer_id.startswith(CUSTOMER_GID_PREFIX):
        return customer_id
    return f'{CUSTOMER_GID_PREFIX}{customer_id}'


def from_customer_gid(gid: str) -> str:
    return gid.rsplit('/', 1)[-1]


def decode_stored_profile(metafield: Optional[Dict[str, Any]], customer_id: str) -> Tuple[EquipmentProfile, bool]:
    """
    Decode a metafield into a profile and report whether it was malformed.

    A missing metafield is an empty, well-formed profile. A value that is not
    valid JSON or does not look like a profile is logged and returned as an
    empty profile flagged as malformed.
    """
    if not metafield or not metafield.get('value'):
        return EquipmentProfile(), False

    try:
        document = json.loads(metafield['value'])
        if not isinstance(document, dict):
            raise ValueError('equipment document is not an object')
        return EquipmentProfile.model_validate(document), False
    except (ValueError, PydanticValidationError) as e:
        logger.warning("Stored equipment profile is malformed", extra={
            "customer_id": customer_id,
            "error": str(e),
        })
        return EquipmentProfile(), True


def decode_profile(metafield: Optional[Dict[str, Any]], customer_id: str) -> EquipmentProfile:
    """Decode a metafield for display; malformed values read as an empty profile."""
    return decode_stored_profile(metafield, customer_id)[0]


class ShopifyEquipmentStore:
    """Equipment store backed by the commerce platform Admin GraphQL API."""

    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str = '2024-01',
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.endpoint = f'https://{store_domain}/admin/api/{api_version}/graphql.json'
        self.client = client or httpx.Client(
            headers={
                'Content-Type': 'application/json',
                'X-Shopify-Access-Token': access_token,
            },
            timeout=timeout,
        )

    def _execute(self, query: str, variables: Dict[str, Any], operation: str) -> Dict[str, Any]:
        try:
            response = self.client.post(self.endpoint, json={'query': query, 'variables': variables})
        except httpx.HTTPError as e:
            logger.error("Commerce API request failed", extra={"operation": operation, "error": str(e)})
            raise UpstreamError(message=f"Failed to {operation}", service_name=SERVICE_NAME) from e

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError(
                message=f"Failed to {operation}",
                service_name=SERVICE_NAME,
                status_code=response.status_code,
            ) from e

        if not isinstance(body, dict):
            raise UpstreamError(message=f"Malformed response while trying to {operation}", service_name=SERVICE_NAME)

        errors = body.get('errors')
        if errors:
            message = errors[0].get('message') if isinstance(errors, list) and isinstance(errors[0], dict) else str(errors)
            logger.error("Commerce API returned errors", extra={"operation": operation, "errors": errors})
            raise UpstreamError(message=message or f"Failed to {operation}", service_name=SERVICE_NAME, status_code=response.status_code)

        if not response.is_success:
            raise UpstreamError(message=f"Failed to {operation}", service_name=SERVICE_NAME, status_code=response.status_code)

        data = body.get('data')
        if not isinstance(data, dict):
            raise UpstreamError(message=f"Malformed response while trying to {operation}", service_name=SERVICE_NAME)
        return data

    @staticmethod
    def _customer_from_node(node: Dict[str, Any]) -> CustomerEquipment:
        customer_id = from_customer_gid(str(node.get('id', '')))
        profile, malformed = decode_stored_profile(node.get('metafield'), customer_id)
        return CustomerEquipment(
            customer_id=customer_id,
            email=node.get('email'),
            first_name=node.get('firstName'),
            last_name=node.get('lastName'),
            profile=profile,
            profile_malformed=malformed,
        )

    @tracer.capture_method
    def list_customers(self, first: int, after: Optional[str] = None) -> CustomerPage:
        """One page of customers, keeping only those with a non-empty profile."""
        operation = 'list customers'
        data = self._execute(LIST_CUSTOMERS_QUERY, {'first': first, 'after': after}, operation)

        connection = data.get('customers')
        if not isinstance(connection, dict):
            raise UpstreamError(message=f"Malformed response while trying to {operation}", service_name=SERVICE_NAME)

        customers = []
        for edge in connection.get('edges') or []:
            node = edge.get('node') if isinstance(edge, dict) else None
            if not node:
                continue
            customer = self._customer_from_node(node)
            if customer.profile.machine_count:
                customers.append(customer)

        page_info = connection.get('pageInfo') or {}
        return CustomerPage(
            customers=customers,
            has_next_page=bool(page_info.get('hasNextPage')),
            end_cursor=page_info.get('endCursor'),
        )

    @tracer.capture_method
    def get_customer(self, customer_id: str) -> Optional[CustomerEquipment]:
        data = self._execute(GET_CUSTOMER_QUERY, {'id': to_customer_gid(customer_id)}, 'fetch customer')
        node = data.get('customer')
        if not node:
            logger.info("Customer not found", extra={"customer_id": customer_id})
            return None
        return self._customer_from_node(node)

    @tracer.capture_method
    def save_profile(self, customer_id: str, profile: EquipmentProfile) -> None:
        operation = 'save equipment'
        variables = {
            'input': {
                'id': to_customer_gid(customer_id),
                'metafields': [{
                    'namespace': METAFIELD_NAMESPACE,
                    'key': METAFIELD_KEY,
                    'type': 'json',
                    'value': json.dumps(profile.to_wire()),
                }],
            },
        }
        data = self._execute(SAVE_PROFILE_MUTATION, variables, operation)

        result = data.get('customerUpdate') or {}
        user_errors = result.get('userErrors') or []
        if user_errors:
            logger.error("Equipment metafield write rejected", extra={
                "customer_id": customer_id,
                "user_errors": user_errors,
            })
            raise UpstreamError(message=user_errors[0].get('message') or f"Failed to {operation}", service_name=SERVICE_NAME)

        logger.info("Equipment profile saved", extra={
            "customer_id": customer_id,
            "machine_count": profile.machine_count,
        })
