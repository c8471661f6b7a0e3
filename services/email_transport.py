# services/email_transport.py
"""
SendGrid v3 transport for alert notifications

One POST per email, with no session state kept between sends. Failures of any kind (missing credentials, non-2xx
status, network errors) come back as False; nothing is retried.
"""

import logging
from typing import Any, Dict, Mapping, Optional

import requests

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = 'https://api.sendgrid.com/v3/mail/send'


class SendGridClient:
    """Minimal client for the SendGrid mail/send endpoint"""

    def __init__(self,
                 api_key: str,
                 from_email: str,
                 from_name: str = 'Security Guard',
                 api_url: str = SENDGRID_SEND_URL,
                 timeout: Optional[float] = None):
        """
        Args:
            api_key: SendGrid API key, sent as a bearer token
            from_email: Sender address for every notification
            from_name: Display name for the sender
            api_url: Send endpoint, overridable for testing
            timeout: Request timeout in seconds, None to wait indefinitely
        """
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.api_url = api_url
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'SendGridClient':
        return cls(
            api_key=config.get('SENDGRID_API_KEY', ''),
            from_email=config.get('FROM_EMAIL', ''),
            from_name=config.get('FROM_NAME', 'Security Guard'),
            api_url=config.get('SENDGRID_API_URL', SENDGRID_SEND_URL),
            timeout=config.get('EMAIL_API_TIMEOUT'),
        )

    def build_payload(self, to: str, subject: str, html: str) -> Dict[str, Any]:
        return {
            'personalizations': [{'to': [{'email': to}]}],
            'from': {'email': self.from_email, 'name': self.from_name},
            'subject': subject,
            'content': [{'type': 'text/html', 'value': html}],
        }

    def send_email(self, to: str, subject: str, html: str) -> bool:
        """
        Send an HTML email

        Returns:
            True if SendGrid accepted the message, False otherwise
        """
        if not self.api_key:
            logger.error("SENDGRID_API_KEY not configured")
            return False

        headers = {
            'Authorization': f"Bearer {self.api_key}",
            'Content-Type': 'application/json',
        }

        try:
            response = requests.post(
                self.api_url,
                json=self.build_payload(to, subject, html),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"SendGrid request failed: {str(e)}")
            return False

        if not response.ok:
            logger.error(f"SendGrid error: {response.status_code} {response.text[:500]}")
            return False

        logger.info(f"Sent email to {to}: {subject[:80]}")
        return True
