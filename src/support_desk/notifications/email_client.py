"""
Transactional email API client.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from support_desk.handlers.utils.errors import UpstreamError
from support_desk.handlers.utils.observability import logger, tracer

SERVICE_NAME = 'email-api'
RESEND_API_URL = 'https://api.resend.com'


@dataclass
class EmailMessage:
    sender: str
    to: str
    subject: str
    html: str


class ResendEmailClient:
    """Sends one HTML email per call through the Resend REST API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = RESEND_API_URL,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.client = client or httpx.Client(
            base_url=base_url,
            headers={
                'Authorization': f'Bearer {api_key}',
                'Content-Type': 'application/json',
            },
            timeout=timeout,
        )

    @tracer.capture_method
    def send(self, email: EmailMessage) -> Optional[str]:
        """
        Send an email.

        Returns:
            Provider id of the accepted email

        Raises:
            UpstreamError: With the provider's message when it rejects the email
        """
        try:
            response = self.client.post('/emails', json={
                'from': email.sender,
                'to': email.to,
                'subject': email.subject,
                'html': email.html,
            })
        except httpx.HTTPError as e:
            logger.error("Email API request failed", extra={"error": str(e)})
            raise UpstreamError(message=f"Failed to send email: {e}", service_name=SERVICE_NAME) from e

        try:
            result = response.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}

        if not response.is_success:
            logger.error("Email API rejected the email", extra={
                "status_code": response.status_code,
                "result": result,
            })
            raise UpstreamError(
                message=result.get('message') or 'Failed to send email',
                service_name=SERVICE_NAME,
                status_code=response.status_code,
            )

        return result.get('id')
