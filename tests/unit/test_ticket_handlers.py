"""
Unit tests for the ticket endpoint handlers.

The handlers are called with in-memory services; the last class drives a
full ``lambda_handler`` invocation through the Powertools decorators.
"""

import json

import pytest

from support_desk.handlers import ticket_create, ticket_get
from support_desk.handlers.ticket_admin_list import handle_ticket_admin_list
from support_desk.handlers.ticket_create import handle_ticket_create
from support_desk.handlers.ticket_get import handle_ticket_get
from support_desk.handlers.ticket_messages import handle_ticket_messages
from support_desk.handlers.ticket_notify import handle_ticket_notify
from support_desk.handlers.ticket_reply import handle_ticket_reply
from support_desk.handlers.ticket_update import handle_ticket_update
from support_desk.handlers.utils import dependencies
from support_desk.handlers.utils.errors import ConfigurationError
from support_desk.logic.notification_service import Notifier


def body_of(response):
    return json.loads(response["body"])


class TestCommonBehaviour:
    """CORS, preflight and method enforcement shared by every endpoint."""

    @pytest.mark.parametrize("handler", [
        handle_ticket_get,
        handle_ticket_admin_list,
        handle_ticket_create,
        handle_ticket_update,
        handle_ticket_messages,
        handle_ticket_reply,
        handle_ticket_notify,
    ])
    def test_preflight_returns_empty_200(self, handler, api_gateway_event):
        response = handler(api_gateway_event("OPTIONS"))

        assert response["statusCode"] == 200
        assert response["body"] == ""
        assert response["headers"]["Access-Control-Allow-Origin"] == "*"

    def test_wrong_method_is_405(self, api_gateway_event, ticket_service):
        response = handle_ticket_create(api_gateway_event("GET"), ticket_service)

        assert response["statusCode"] == 405
        assert body_of(response) == {"success": False, "error": "Method not allowed", "code": "METHOD_NOT_ALLOWED"}

    def test_cors_headers(self, api_gateway_event, ticket_service):
        response = handle_ticket_create(api_gateway_event("POST", {}), ticket_service)

        assert response["headers"] == {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Allow-Methods": "POST, OPTIONS",
        }

    def test_malformed_json_is_400(self, api_gateway_event, ticket_service):
        response = handle_ticket_create(api_gateway_event("POST", "{not json"), ticket_service)

        assert response["statusCode"] == 400
        assert body_of(response)["error"] == "Invalid JSON in request body"

    def test_unexpected_error_is_generic_500(self, api_gateway_event, ticket_store, ticket_service):
        def explode(ticket_id):
            raise RuntimeError("connection pool exhausted")

        ticket_store.get_ticket = explode

        response = handle_ticket_get(api_gateway_event("GET", query={"ticketId": "tkt_1"}), ticket_service)

        assert response["statusCode"] == 500
        assert body_of(response) == {"success": False, "error": "Internal server error", "code": "INTERNAL_SERVER_ERROR"}


class TestTicketGet:
    def test_single_ticket(self, api_gateway_event, ticket_service, ticket_store):
        ticket = ticket_store.add_ticket()

        response = handle_ticket_get(api_gateway_event("GET", query={"ticketId": ticket.id}), ticket_service)

        assert response["statusCode"] == 200
        body = body_of(response)
        assert body["success"] is True
        assert body["ticket"]["ticketNumber"] == ticket.ticket_number

    def test_unknown_ticket_is_404(self, api_gateway_event, ticket_service):
        response = handle_ticket_get(api_gateway_event("GET", query={"ticketId": "tkt_nope"}), ticket_service)

        assert response["statusCode"] == 404
        assert body_of(response)["error"] == "Ticket not found"

    def test_customer_id_required(self, api_gateway_event, ticket_service):
        response = handle_ticket_get(api_gateway_event("GET"), ticket_service)

        assert response["statusCode"] == 400
        assert body_of(response)["error"] == "customerId is required"

    def test_customer_listing_is_newest_first_and_filtered(self, api_gateway_event, ticket_service, ticket_store):
        ticket_store.add_ticket(customer_id="42", status="Open")
        ticket_store.add_ticket(customer_id="42", status="Closed")
        ticket_store.add_ticket(customer_id="42", status="Open")
        ticket_store.add_ticket(customer_id="7", status="Open")

        response = handle_ticket_get(
            api_gateway_event("GET", query={"customerId": "42", "status": "Open"}), ticket_service,
        )

        body = body_of(response)
        assert body["count"] == 2
        assert [t["ticketNumber"] for t in body["tickets"]] == [1003, 1001]

    def test_pagination(self, api_gateway_event, ticket_service, ticket_store):
        for _ in range(5):
            ticket_store.add_ticket(customer_id="42")

        response = handle_ticket_get(
            api_gateway_event("GET", query={"customerId": "42", "limit": "2", "page": "2"}), ticket_service,
        )

        assert [t["ticketNumber"] for t in body_of(response)["tickets"]] == [1003, 1002]

    def test_archived_filter(self, api_gateway_event, ticket_service, ticket_store):
        ticket_store.add_ticket(customer_id="42", customer_archived=True)
        ticket_store.add_ticket(customer_id="42")

        response = handle_ticket_get(
            api_gateway_event("GET", query={"customerId": "42", "archived": "false"}), ticket_service,
        )

        assert [t["ticketNumber"] for t in body_of(response)["tickets"]] == [1002]

    @pytest.mark.parametrize("query", [
        {"customerId": "42", "limit": "0"},
        {"customerId": "42", "page": "abc"},
        {"customerId": "42", "status": "Escalated"},
        {"customerId": "42", "archived": "maybe"},
    ])
    def test_bad_query_values_are_400(self, api_gateway_event, ticket_service, query):
        response = handle_ticket_get(api_gateway_event("GET", query=query), ticket_service)
        assert response["statusCode"] == 400


class TestTicketAdminList:
    def test_defaults_and_total(self, api_gateway_event, ticket_service, ticket_store):
        for _ in range(3):
            ticket_store.add_ticket()

        body = body_of(handle_ticket_admin_list(api_gateway_event("GET"), ticket_service))

        assert body["page"] == 1
        assert body["limit"] == 50
        assert body["count"] == 3
        assert body["total"] == 3

    def test_limit_is_capped(self, api_gateway_event, ticket_service):
        body = body_of(handle_ticket_admin_list(api_gateway_event("GET", query={"limit": "500"}), ticket_service))
        assert body["limit"] == 100

    def test_page_window_with_total(self, api_gateway_event, ticket_service, ticket_store):
        for _ in range(5):
            ticket_store.add_ticket(type="parts")
        ticket_store.add_ticket(type="return")

        body = body_of(handle_ticket_admin_list(
            api_gateway_event("GET", query={"type": "parts", "page": "3", "limit": "2"}), ticket_service,
        ))

        assert body["count"] == 1
        assert body["total"] == 5
        assert body["tickets"][0]["ticketNumber"] == 1001

    def test_admin_archive_filter(self, api_gateway_event, ticket_service, ticket_store):
        ticket_store.add_ticket(admin_archived=True)
        ticket_store.add_ticket(customer_archived=True)

        body = body_of(handle_ticket_admin_list(api_gateway_event("GET", query={"archived": "true"}), ticket_service))

        assert [t["ticketNumber"] for t in body["tickets"]] == [1001]


class TestTicketCreate:
    def test_create_on_empty_store(self, api_gateway_event, ticket_service):
        response = handle_ticket_create(api_gateway_event("POST", {
            "customerId": 123,
            "customerEmail": "casey@example.com",
            "type": "general",
            "subject": "Hello",
            "description": "Question",
        }), ticket_service)

        assert response["statusCode"] == 200
        body = body_of(response)
        assert body["ticket"]["ticketNumber"] == 1001
        assert body["ticket"]["status"] == "Open"
        assert body["ticket"]["customerId"] == "123"
        assert body["message"] == "Ticket #1001 created successfully"

    def test_missing_fields(self, api_gateway_event, ticket_service, ticket_store):
        response = handle_ticket_create(api_gateway_event("POST", {"customerId": "1"}), ticket_service)

        assert response["statusCode"] == 400
        body = body_of(response)
        assert body["error"] == "Missing required fields: customerId, type, subject, description"
        assert body["code"] == "VALIDATION_ERROR"
        assert "fieldErrors" in body
        assert ticket_store.tickets == {}


class TestTicketUpdate:
    def test_close_returns_subset_with_resolved_at(self, api_gateway_event, ticket_service, ticket_store):
        ticket = ticket_store.add_ticket()

        body = body_of(handle_ticket_update(
            api_gateway_event("POST", {"ticketId": ticket.id, "status": "Closed"}), ticket_service,
        ))

        assert set(body["ticket"]) == {
            "id", "ticketNumber", "status", "priority", "assignedTo", "assignedName",
            "customerArchived", "adminArchived", "updatedAt", "resolvedAt",
        }
        assert body["ticket"]["status"] == "Closed"
        assert body["ticket"]["resolvedAt"] is not None

    def test_invalid_status_never_reaches_store(self, api_gateway_event, ticket_service, ticket_store):
        ticket = ticket_store.add_ticket()

        response = handle_ticket_update(
            api_gateway_event("POST", {"ticketId": ticket.id, "status": "Done"}), ticket_service,
        )

        assert response["statusCode"] == 400
        assert body_of(response)["error"] == "Invalid status. Must be one of: Open, Pending, Resolved, Closed"
        assert ticket_store.updates == []

    def test_invalid_priority_never_reaches_store(self, api_gateway_event, ticket_service, ticket_store):
        ticket = ticket_store.add_ticket()

        response = handle_ticket_update(
            api_gateway_event("POST", {"ticketId": ticket.id, "priority": "asap"}), ticket_service,
        )

        assert response["statusCode"] == 400
        assert body_of(response)["error"] == "Invalid priority. Must be one of: normal, high, urgent"
        assert ticket_store.updates == []
        assert ticket_store.tickets[ticket.id] == ticket

    def test_unknown_ticket_is_404(self, api_gateway_event, ticket_service):
        response = handle_ticket_update(
            api_gateway_event("POST", {"ticketId": "tkt_nope", "priority": "high"}), ticket_service,
        )
        assert response["statusCode"] == 404


class TestTicketMessages:
    def test_internal_notes_hidden_without_flag(self, api_gateway_event, ticket_service, ticket_store):
        ticket_store.add_message(message="first")
        ticket_store.add_message(message="note", is_staff=True, is_internal=True)
        ticket_store.add_message(message="second")

        body = body_of(handle_ticket_messages(
            api_gateway_event("GET", query={"ticketId": "tkt_1001", "includeInternal": "TRUE"}), ticket_service,
        ))

        assert [m["message"] for m in body["messages"]] == ["first", "second"]
        assert body["count"] == 2

    def test_internal_notes_shown_with_exact_true(self, api_gateway_event, ticket_service, ticket_store):
        ticket_store.add_message(message="first")
        ticket_store.add_message(message="note", is_staff=True, is_internal=True)

        body = body_of(handle_ticket_messages(
            api_gateway_event("GET", query={"ticketId": "tkt_1001", "includeInternal": "true"}), ticket_service,
        ))

        assert [m["message"] for m in body["messages"]] == ["first", "note"]

    def test_ticket_id_required(self, api_gateway_event, ticket_service):
        response = handle_ticket_messages(api_gateway_event("GET"), ticket_service)
        assert response["statusCode"] == 400


class TestTicketReply:
    def test_staff_reply(self, api_gateway_event, ticket_service, ticket_store, email_client):
        ticket = ticket_store.add_ticket()

        body = body_of(handle_ticket_reply(api_gateway_event("POST", {
            "ticketId": ticket.id,
            "message": "Here is the part number",
            "isStaff": True,
            "authorName": "Sam",
        }), ticket_service))

        assert body["message"]["isStaff"] is True
        assert body["message"]["authorName"] == "Sam"
        assert body["message"]["id"].startswith("msg_")
        assert ticket_store.get_ticket(ticket.id).status == "Pending"
        assert "Sam from our team" in email_client.sent[0].html

    def test_missing_content(self, api_gateway_event, ticket_service):
        response = handle_ticket_reply(api_gateway_event("POST", {"ticketId": "tkt_1"}), ticket_service)

        assert response["statusCode"] == 400
        assert body_of(response)["error"] == "ticketId and message (or attachments) are required"

    def test_unknown_ticket(self, api_gateway_event, ticket_service):
        response = handle_ticket_reply(api_gateway_event("POST", {"ticketId": "tkt_1", "message": "hi"}), ticket_service)
        assert response["statusCode"] == 404


class TestTicketNotify:
    def test_sends_email(self, api_gateway_event, notifier):
        body = body_of(handle_ticket_notify(api_gateway_event("POST", {
            "type": "status_changed",
            "customerEmail": "casey@example.com",
            "ticketNumber": 1001,
            "ticketSubject": "Hello",
            "newStatus": "Resolved",
        }), notifier))

        assert body == {"success": True, "emailId": "email_1"}

    def test_email_not_configured(self, api_gateway_event, branding):
        body = body_of(handle_ticket_notify(api_gateway_event("POST", {
            "type": "ticket_created", "customerEmail": "casey@example.com", "ticketNumber": 1001,
        }), Notifier(branding, "support@x.com")))

        assert body == {"success": True, "warning": "Email not configured"}

    def test_missing_fields(self, api_gateway_event, notifier):
        response = handle_ticket_notify(api_gateway_event("POST", {"type": "ticket_created"}), notifier)

        assert response["statusCode"] == 400
        assert body_of(response)["error"] == "Missing required fields"

    def test_invalid_type(self, api_gateway_event, notifier):
        response = handle_ticket_notify(api_gateway_event("POST", {
            "type": "digest", "customerEmail": "a@b.c", "ticketNumber": 1,
        }), notifier)

        assert response["statusCode"] == 400
        assert body_of(response)["error"] == "Invalid notification type"

    def test_provider_error_is_500(self, api_gateway_event, branding, failing_email_client):
        notifier = Notifier(branding, "support@x.com", email_client=failing_email_client)

        response = handle_ticket_notify(api_gateway_event("POST", {
            "type": "ticket_created", "customerEmail": "a@b.c", "ticketNumber": 1,
        }), notifier)

        assert response["statusCode"] == 500
        assert body_of(response)["error"] == "The domain is not verified"


class TestLambdaEntryPoints:
    """Full invocations through the Powertools decorators."""

    def test_create_through_lambda_handler(self, monkeypatch, api_gateway_event, lambda_context, ticket_service):
        monkeypatch.setattr(dependencies, "_ticket_service", ticket_service)

        response = ticket_create.lambda_handler(api_gateway_event("POST", {
            "customerId": "42", "type": "general", "subject": "s", "description": "d",
        }), lambda_context)

        assert response["statusCode"] == 200
        assert body_of(response)["ticket"]["ticketNumber"] == 1001

    def test_missing_configuration_is_500(self, monkeypatch, api_gateway_event, lambda_context):
        monkeypatch.setattr(ticket_get, "get_ticket_service", _raise_configuration_error)

        response = ticket_get.lambda_handler(api_gateway_event("GET", query={"ticketId": "tkt_1"}), lambda_context)

        assert response["statusCode"] == 500
        assert body_of(response) == {"success": False, "error": "Config error", "code": "CONFIGURATION_ERROR"}


def _raise_configuration_error():
    raise ConfigurationError(message="SUPABASE_URL is not set", missing=["SUPABASE_URL"])
