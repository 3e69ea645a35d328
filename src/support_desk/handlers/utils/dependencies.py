"""
Construction of services from environment configuration.

Handlers receive their service as an argument; when none is given (the normal
Lambda path) they fall back to the process-wide instances built here. The
instances are created on first use so that a cold start only pays for the
backends the invoked function actually needs.
"""

from typing import Optional

from support_desk.dal.shopify_handler import ShopifyEquipmentStore
from support_desk.dal.supabase_handler import SupabaseTicketStore
from support_desk.handlers.models.env_vars import (
    CommerceEnvVars,
    DataStoreEnvVars,
    NotificationEnvVars,
    load_env_vars,
)
from support_desk.logic.equipment_service import EquipmentService
from support_desk.logic.notification_service import NotificationDispatcher, Notifier
from support_desk.logic.ticket_service import TicketService
from support_desk.notifications.email_client import ResendEmailClient
from support_desk.notifications.templates import Branding

_notifier: Optional[Notifier] = None
_ticket_service: Optional[TicketService] = None
_equipment_service: Optional[EquipmentService] = None


def build_notifier(env: NotificationEnvVars) -> Notifier:
    email_client = None
    if env.email_enabled:
        email_client = ResendEmailClient(api_key=env.RESEND_API_KEY, timeout=env.HTTP_TIMEOUT_SECONDS)
    return Notifier(
        branding=Branding(store_name=env.STORE_NAME, store_url=env.STORE_URL),
        from_email=env.NOTIFICATION_FROM_EMAIL,
        email_client=email_client,
        admin_email=env.ADMIN_NOTIFICATION_EMAIL,
    )


def get_notifier() -> Notifier:
    global _notifier

    if _notifier is None:
        _notifier = build_notifier(load_env_vars(NotificationEnvVars))

    return _notifier


def get_ticket_service() -> TicketService:
    global _ticket_service

    if _ticket_service is None:
        env = load_env_vars(DataStoreEnvVars)
        store = SupabaseTicketStore(
            base_url=str(env.SUPABASE_URL),
            service_key=env.SUPABASE_SERVICE_KEY,
            tickets_table=env.TICKETS_TABLE,
            messages_table=env.MESSAGES_TABLE,
            timeout=env.HTTP_TIMEOUT_SECONDS,
        )
        notifier = get_notifier()
        _ticket_service = TicketService(
            store=store,
            dispatcher=NotificationDispatcher(notifier),
            admin_email=notifier.admin_email,
        )

    return _ticket_service


def get_equipment_service() -> EquipmentService:
    global _equipment_service

    if _equipment_service is None:
        env = load_env_vars(CommerceEnvVars)
        _equipment_service = EquipmentService(store=ShopifyEquipmentStore(
            store_domain=env.SHOPIFY_STORE_DOMAIN,
            access_token=env.SHOPIFY_ADMIN_ACCESS_TOKEN,
            api_version=env.SHOPIFY_API_VERSION,
            timeout=env.HTTP_TIMEOUT_SECONDS,
        ))

    return _equipment_service


def reset_dependencies() -> None:
    """Drop cached instances (used by tests that change the environment)."""
    global _notifier, _ticket_service, _equipment_service
    _notifier = None
    _ticket_service = None
    _equipment_service = None
