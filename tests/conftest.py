"""
Pytest configuration and shared fixtures for the support desk handlers.

This module provides the test environment, API Gateway event builders and
in-memory stand-ins for the data store, the commerce API and the email
provider, used across unit and integration tests.
"""

import json
import os
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import Mock

import pytest

from support_desk.dal import (
    CustomerEquipment,
    CustomerPage,
    DuplicateTicketNumberError,
    TicketPage,
    TicketQuery,
)
from support_desk.handlers.utils.dependencies import reset_dependencies
from support_desk.handlers.utils.errors import UpstreamError
from support_desk.handlers.utils.observability import metrics
from support_desk.logic.equipment_service import EquipmentService
from support_desk.logic.notification_service import NotificationDispatcher, Notifier
from support_desk.logic.ticket_service import TicketService
from support_desk.models.equipment import EquipmentProfile
from support_desk.models.ticket import Ticket, TicketMessage
from support_desk.notifications.email_client import EmailMessage
from support_desk.notifications.templates import Branding


# Test environment configuration
@pytest.fixture(scope="session", autouse=True)
def test_environment():
    """Set up test environment variables."""
    os.environ.update({
        "SUPABASE_URL": "https://test-project.supabase.co",
        "SUPABASE_SERVICE_KEY": "test-service-key",
        "SHOPIFY_STORE_DOMAIN": "test-store.myshopify.com",
        "SHOPIFY_ADMIN_ACCESS_TOKEN": "shpat_test",
        "STORE_NAME": "Test Store",
        "STORE_URL": "https://test-store.example.com",
        "POWERTOOLS_SERVICE_NAME": "test-support-desk",
        "POWERTOOLS_METRICS_NAMESPACE": "TestSupportDesk",
        "LOG_LEVEL": "DEBUG",
        "POWERTOOLS_TRACE_DISABLED": "true",  # Disable X-Ray in tests
    })


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset cached services and buffered metrics between tests."""
    reset_dependencies()
    metrics.clear_metrics()
    yield
    reset_dependencies()
    metrics.clear_metrics()


# In-memory backends
class FakeTicketStore:
    """Ticket store keeping rows in dictionaries."""

    def __init__(self) -> None:
        self.tickets: Dict[str, Ticket] = {}
        self.messages: List[TicketMessage] = []
        self.updates: List[Dict[str, Any]] = []
        # Number of upcoming inserts that lose the race for their ticket number
        self.concurrent_inserts = 0

    def add_ticket(self, **overrides: Any) -> Ticket:
        number = overrides.pop("ticket_number", None) or (self.get_max_ticket_number() or 1000) + 1
        values = {
            "id": f"tkt_{number}",
            "ticket_number": number,
            "customer_id": "42",
            "customer_email": "customer@example.com",
            "customer_name": "Casey Customer",
            "type": "general",
            "priority": "normal",
            "status": "Open",
            "subject": f"Subject {number}",
            "description": "Something is wrong",
            "created_at": f"2024-01-01T00:00:{number % 60:02d}.000Z",
            "updated_at": f"2024-01-01T00:00:{number % 60:02d}.000Z",
        }
        values.update(overrides)
        ticket = Ticket.model_validate(values)
        self.tickets[ticket.id] = ticket
        return ticket

    def add_message(self, **overrides: Any) -> TicketMessage:
        values = {
            "id": f"msg_{len(self.messages) + 1}",
            "ticket_id": "tkt_1001",
            "message": "Hello",
            "author_name": "Customer",
            "is_staff": False,
            "is_internal": False,
            "created_at": f"2024-01-01T00:0{len(self.messages)}:00.000Z",
        }
        values.update(overrides)
        message = TicketMessage.model_validate(values)
        self.messages.append(message)
        return message

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        return self.tickets.get(ticket_id)

    def list_tickets(self, query: TicketQuery) -> TicketPage:
        def matches(ticket: Ticket) -> bool:
            for column in ("customer_id", "status", "type", "priority"):
                wanted = getattr(query, column)
                if wanted is not None and getattr(ticket, column) != wanted:
                    return False
            if query.customer_archived is not None and ticket.customer_archived != query.customer_archived:
                return False
            if query.admin_archived is not None and ticket.admin_archived != query.admin_archived:
                return False
            return True

        found = sorted(
            (ticket for ticket in self.tickets.values() if matches(ticket)),
            key=lambda ticket: ticket.created_at,
            reverse=True,
        )
        window = found[query.offset:]
        if query.limit is not None:
            window = window[:query.limit]
        return TicketPage(tickets=window, total=len(found) if query.count_total else None)

    def get_max_ticket_number(self) -> Optional[int]:
        numbers = [ticket.ticket_number for ticket in self.tickets.values()]
        return max(numbers) if numbers else None

    def insert_ticket(self, ticket: Ticket) -> Ticket:
        if self.concurrent_inserts:
            self.concurrent_inserts -= 1
            self.add_ticket(id=f"tkt_other_{ticket.ticket_number}", ticket_number=ticket.ticket_number)
        if any(existing.ticket_number == ticket.ticket_number for existing in self.tickets.values()):
            raise DuplicateTicketNumberError(ticket.ticket_number)
        self.tickets[ticket.id] = ticket
        return ticket

    def update_ticket(self, ticket_id: str, changes: Dict[str, Any]) -> Optional[Ticket]:
        self.updates.append({"ticket_id": ticket_id, **changes})
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            return None
        updated = Ticket.model_validate({**ticket.to_row(), **changes})
        self.tickets[ticket_id] = updated
        return updated

    def list_messages(self, ticket_id: str, include_internal: bool) -> List[TicketMessage]:
        found = [
            message for message in self.messages
            if message.ticket_id == ticket_id and (include_internal or not message.is_internal)
        ]
        return sorted(found, key=lambda message: message.created_at)

    def insert_message(self, message: TicketMessage) -> TicketMessage:
        self.messages.append(message)
        return message


class FakeEquipmentStore:
    """Equipment store keeping customer profiles in a dictionary."""

    def __init__(self) -> None:
        self.customers: Dict[str, CustomerEquipment] = {}
        self.saves: List[Dict[str, Any]] = []

    def add_customer(self, customer_id: str, machines: Optional[List[Dict[str, Any]]] = None, **fields: Any) -> CustomerEquipment:
        profile = EquipmentProfile.model_validate({"machines": machines or [], "updatedAt": None})
        customer = CustomerEquipment(customer_id=customer_id, profile=profile, **fields)
        self.customers[customer_id] = customer
        return customer

    def list_customers(self, first: int, after: Optional[str] = None) -> CustomerPage:
        ordered = list(self.customers.values())
        start = int(after) if after else 0
        window = ordered[start:start + first]
        has_next = start + first < len(ordered)
        return CustomerPage(
            customers=[customer for customer in window if customer.profile.machine_count],
            has_next_page=has_next,
            end_cursor=str(start + first) if has_next else None,
        )

    def get_customer(self, customer_id: str) -> Optional[CustomerEquipment]:
        return self.customers.get(customer_id)

    def save_profile(self, customer_id: str, profile: EquipmentProfile) -> None:
        self.saves.append({"customer_id": customer_id, "profile": profile})
        if customer_id in self.customers:
            self.customers[customer_id].profile = profile
        else:
            self.customers[customer_id] = CustomerEquipment(customer_id=customer_id, profile=profile)


class FakeEmailClient:
    """Records sent emails; can be told to fail like the provider would."""

    def __init__(self, fail_with: Optional[str] = None) -> None:
        self.sent: List[EmailMessage] = []
        self.fail_with = fail_with

    def send(self, email: EmailMessage) -> Optional[str]:
        if self.fail_with:
            raise UpstreamError(message=self.fail_with, service_name="email-api", status_code=422)
        self.sent.append(email)
        return f"email_{len(self.sent)}"


@pytest.fixture
def ticket_store() -> FakeTicketStore:
    return FakeTicketStore()


@pytest.fixture
def equipment_store() -> FakeEquipmentStore:
    return FakeEquipmentStore()


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture
def failing_email_client() -> FakeEmailClient:
    return FakeEmailClient(fail_with="The domain is not verified")


@pytest.fixture
def branding() -> Branding:
    return Branding(store_name="Test Store", store_url="https://test-store.example.com")


@pytest.fixture
def notifier(branding, email_client) -> Notifier:
    return Notifier(
        branding=branding,
        from_email="support@test-store.example.com",
        email_client=email_client,
        admin_email="admin@test-store.example.com",
    )


@pytest.fixture
def ticket_service(ticket_store, notifier) -> TicketService:
    return TicketService(
        store=ticket_store,
        dispatcher=NotificationDispatcher(notifier),
        admin_email=notifier.admin_email,
    )


@pytest.fixture
def equipment_service(equipment_store) -> EquipmentService:
    return EquipmentService(store=equipment_store)


# API Gateway events
@pytest.fixture
def api_gateway_event() -> Callable[..., Dict[str, Any]]:
    """Build an API Gateway REST proxy event."""

    def build(
        method: str = "GET",
        body: Any = None,
        query: Optional[Dict[str, str]] = None,
        path: str = "/.netlify/functions/test",
    ) -> Dict[str, Any]:
        if body is not None and not isinstance(body, str):
            body = json.dumps(body)
        return {
            "httpMethod": method,
            "path": path,
            "headers": {
                "Content-Type": "application/json",
                "User-Agent": "test-agent/1.0",
            },
            "body": body,
            "requestContext": {
                "requestId": "test-request-id-123",
                "accountId": "123456789012",
                "stage": "test",
                "httpMethod": method,
                "path": path,
                "protocol": "HTTP/1.1",
                "requestTime": "2024-01-01T12:00:00.000Z",
                "requestTimeEpoch": 1704110400000,
                "identity": {
                    "sourceIp": "127.0.0.1",
                    "userAgent": "test-agent/1.0",
                },
            },
            "pathParameters": None,
            "queryStringParameters": query,
            "multiValueQueryStringParameters": None,
            "stageVariables": None,
            "isBase64Encoded": False,
        }

    return build


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context for testing."""
    context = Mock()
    context.function_name = "test-lambda-function"
    context.function_version = "1"
    context.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:test-lambda-function"
    context.memory_limit_in_mb = "512"
    context.remaining_time_in_millis = lambda: 30000
    context.aws_request_id = "test-request-id-123"
    context.log_group_name = "/aws/lambda/test-lambda-function"
    context.log_stream_name = "2024/01/01/[$LATEST]test123"
    return context


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
