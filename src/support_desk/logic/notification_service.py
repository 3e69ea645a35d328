"""
Business logic for ticket notifications.

``Notifier`` renders one of the four templates and hands it to the email
client. ``NotificationDispatcher`` is what the ticket workflows use: it runs
notifications as best-effort side calls whose failures are logged and counted
but never raised.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol

from aws_lambda_powertools.metrics import MetricUnit

from support_desk.handlers.utils.errors import ValidationError
from support_desk.handlers.utils.observability import logger, metrics, tracer
from support_desk.models.input import NotifyRequest
from support_desk.notifications.email_client import EmailMessage
from support_desk.notifications.templates import (
    Branding,
    render_admin_email,
    render_confirmation_email,
    render_reply_email,
    render_status_email,
)

EMAIL_NOT_CONFIGURED = 'Email not configured'


class NotificationType(str, Enum):
    """Email templates the notifier can send."""

    ADMIN_REPLY = 'admin_reply'
    STATUS_CHANGED = 'status_changed'
    TICKET_CREATED = 'ticket_created'
    NEW_TICKET_ADMIN = 'new_ticket_admin'


class EmailSender(Protocol):
    def send(self, email: EmailMessage) -> Optional[str]:
        ...


@dataclass
class NotificationResult:
    sent: bool
    email_id: Optional[str] = None
    warning: Optional[str] = None


class Notifier:
    """Renders notification emails and sends them through the email client."""

    def __init__(
        self,
        branding: Branding,
        from_email: str,
        email_client: Optional[EmailSender] = None,
        admin_email: Optional[str] = None,
    ) -> None:
        """
        Args:
            branding: Store name and URL used in the templates
            from_email: Sender address
            email_client: Email provider client; None disables sending
            admin_email: Default recipient of new-ticket alerts
        """
        self.branding = branding
        self.from_email = from_email
        self.email_client = email_client
        self.admin_email = admin_email or None

    @property
    def sender(self) -> str:
        return f'{self.branding.store_name} Support <{self.from_email}>'

    def _compose(self, notification_type: NotificationType, request: NotifyRequest) -> EmailMessage:
        number = request.ticket_number
        subject_line = request.ticket_subject or ''

        if notification_type is NotificationType.ADMIN_REPLY:
            recipient = request.customer_email
            subject = f'Re: Ticket #{number} - {subject_line}'
            html = render_reply_email(
                self.branding, request.customer_name, number, request.ticket_subject,
                request.message, request.staff_name,
            )
        elif notification_type is NotificationType.STATUS_CHANGED:
            recipient = request.customer_email
            subject = f'Ticket #{number} - Status Updated to {request.new_status}'
            html = render_status_email(
                self.branding, request.customer_name, number, request.ticket_subject, request.new_status,
            )
        elif notification_type is NotificationType.TICKET_CREATED:
            recipient = request.customer_email
            subject = f'Ticket #{number} Received - {subject_line}'
            html = render_confirmation_email(
                self.branding, request.customer_name, number, request.ticket_subject,
            )
        else:
            recipient = request.admin_email or self.admin_email
            subject = f'New Ticket #{number} - {subject_line}'
            html = render_admin_email(
                self.branding, request.customer_name, request.customer_email, number,
                request.ticket_subject, request.ticket_type, request.ticket_description,
            )

        if not recipient:
            raise ValidationError(message=f'No recipient email for notification type {notification_type.value}')

        return EmailMessage(sender=self.sender, to=recipient, subject=subject, html=html)

    @tracer.capture_method
    def notify(self, request: NotifyRequest) -> NotificationResult:
        """
        Render and send one notification.

        Raises:
            ValidationError: Unknown type or no recipient for the template
            UpstreamError: The email provider rejected the email
        """
        try:
            notification_type = NotificationType(request.type)
        except ValueError as e:
            raise ValidationError(message='Invalid notification type') from e

        email = self._compose(notification_type, request)

        if self.email_client is None:
            logger.info("Email provider not configured, skipping email", extra={
                "notification_type": notification_type.value,
                "ticket_number": request.ticket_number,
            })
            metrics.add_metric(name="NotificationSkipped", unit=MetricUnit.Count, value=1)
            return NotificationResult(sent=False, warning=EMAIL_NOT_CONFIGURED)

        email_id = self.email_client.send(email)

        metrics.add_metric(name="NotificationSent", unit=MetricUnit.Count, value=1)
        logger.info("Notification sent", extra={
            "notification_type": notification_type.value,
            "ticket_number": request.ticket_number,
            "email_id": email_id,
        })
        return NotificationResult(sent=True, email_id=email_id)


class NotificationDispatcher:
    """Best-effort delivery of notifications attached to ticket writes."""

    def __init__(self, notifier: Notifier, max_workers: int = 2) -> None:
        self.notifier = notifier
        self.max_workers = max_workers

    def _deliver(self, request: NotifyRequest) -> Optional[NotificationResult]:
        try:
            return self.notifier.notify(request)
        except Exception as e:
            # Never fail the primary write because of an email
            logger.warning("Notification failed", extra={
                "notification_type": request.type,
                "ticket_number": request.ticket_number,
                "error": str(e),
            })
            metrics.add_metric(name="NotificationFailed", unit=MetricUnit.Count, value=1)
            return None

    def dispatch(self, requests: List[NotifyRequest]) -> List[Optional[NotificationResult]]:
        """Send all notifications concurrently and wait for them to settle."""
        if not requests:
            return []
        if len(requests) == 1:
            return [self._deliver(requests[0])]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(requests))) as executor:
            return list(executor.map(self._deliver, requests))
