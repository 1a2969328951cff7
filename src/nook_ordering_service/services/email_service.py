"""Client for sending transactional email through the Resend HTTP API."""

import logging
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from nook_ordering_service.observability.metrics import record_email_failure
from nook_ordering_service.services.email_templates import (
    OrderEmailData,
    RenderedEmail,
    business_notification_email,
    order_confirmation_email,
    password_reset_email,
    verification_email,
)

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


@dataclass
class EmailResult:
    """Outcome of one send attempt.

    Attributes:
        success: Whether the mail API accepted the message
        message_id: Id assigned by the mail API, if accepted
        error: Error description if the send failed, None otherwise
    """

    success: bool
    message_id: str | None = None
    error: str | None = None


class EmailService:
    """Renders and sends transactional email.

    Sending never raises: failures are logged, counted and reported through
    ``EmailResult`` so callers can carry on with the operation that
    triggered the email.
    """

    def __init__(
        self,
        api_key: str | None,
        from_address: str,
        business_name: str,
        public_base_url: str,
        business_email: str | None = None,
        api_url: str = RESEND_API_URL,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the email service.

        Args:
            api_key: Resend API key; sending is disabled when empty
            from_address: Sender address
            business_name: Display name used as sender and in templates
            public_base_url: Base URL for links to this API (e.g., "https://api.example.com")
            business_email: Recipient of new-order notifications, if any
            api_url: Mail API endpoint
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.from_address = from_address
        self.business_name = business_name
        self.public_base_url = public_base_url.rstrip("/")
        self.business_email = business_email
        self.api_url = api_url
        self.timeout = timeout

    async def send_verification_email(self, email: str, token: str) -> EmailResult:
        url = f"{self.public_base_url}/api/auth/verify-email?token={quote(token)}"
        rendered = verification_email(self.business_name, url)
        return await self._send(email, rendered, template="verification")

    async def send_password_reset_email(self, email: str, token: str) -> EmailResult:
        url = f"{self.public_base_url}/api/auth/reset-password?token={quote(token)}"
        rendered = password_reset_email(self.business_name, url)
        return await self._send(email, rendered, template="password_reset")

    async def send_order_confirmation_email(self, order: OrderEmailData) -> EmailResult:
        rendered = order_confirmation_email(self.business_name, order)
        return await self._send(order.email, rendered, template="order_confirmation")

    async def send_business_notification_email(self, order: OrderEmailData) -> EmailResult:
        """Notify the business of a new order.

        Returns:
            EmailResult; unsuccessful without a request when no business address is configured
        """
        if not self.business_email:
            logger.info(f"No business notification address configured, skipping {order.order_number}")
            return EmailResult(success=False, error="Business notification email not configured")

        rendered = business_notification_email(self.business_name, order)
        return await self._send(self.business_email, rendered, template="business_notification")

    async def _send(self, to: str, rendered: RenderedEmail, template: str) -> EmailResult:
        if not self.api_key:
            logger.warning(f"Email sending disabled (no API key), dropping {template} email")
            record_email_failure(template)
            return EmailResult(success=False, error="Email API key not configured")

        payload = {
            "from": f"{self.business_name} <{self.from_address}>",
            "to": [to],
            "subject": rendered.subject,
            "html": rendered.html,
            "text": rendered.text,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPStatusError, httpx.RequestError, ValueError) as e:
            logger.error(f"Failed to send {template} email: {e}")
            record_email_failure(template)
            return EmailResult(success=False, error=str(e))

        message_id = data.get("id") if isinstance(data, dict) else None
        logger.info(f"Sent {template} email, message id {message_id}")
        return EmailResult(success=True, message_id=message_id)
