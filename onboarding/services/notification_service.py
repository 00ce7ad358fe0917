import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import requests

from onboarding.exceptions import NotificationFailure

logger = logging.getLogger(__name__)


def mask_code(code: str) -> str:
    """Keep invitation codes out of the logs"""
    if not code:
        return ''
    return code[:2] + '*' * max(len(code) - 2, 0)


@dataclass
class NotificationResult:
    ok: bool
    error: Optional[str] = None


class NotificationSender:
    """Delivers invitation codes. Subclasses implement _deliver."""

    def send(
        self,
        email: str,
        invitation_code: str,
        expires_at: datetime,
        name: Optional[str] = None,
        role: Optional[str] = None
    ) -> NotificationResult:
        try:
            self._deliver(email, invitation_code, expires_at, name, role)
        except NotificationFailure as e:
            logger.warning("Invitation %s for %s not delivered: %s", mask_code(invitation_code), email, e)
            return NotificationResult(ok=False, error=str(e))
        return NotificationResult(ok=True)

    def _deliver(self, email, invitation_code, expires_at, name, role):
        raise NotImplementedError


class LogNotificationSender(NotificationSender):
    """Used when no email relay is configured"""

    def _deliver(self, email, invitation_code, expires_at, name, role):
        logger.info(
            "Invitation %s for %s (%s) valid until %s",
            mask_code(invitation_code), email, role or 'teacher', expires_at.isoformat()
        )


class EmailNotificationSender(NotificationSender):
    """Posts invitation emails to an HTTP email relay"""

    def __init__(self, api_url: str, api_key: str = '', sender: str = '', timeout: int = 10):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    def get_headers(self):
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        return headers

    def build_message(self, email, invitation_code, expires_at, name, role) -> dict:
        greeting = f"Hi {name}," if name else "Hi,"
        return {
            'from': self.sender,
            'to': email,
            'subject': "You're invited to join your school",
            'text': (
                f"{greeting}\n\n"
                f"You have been invited to join as a {role or 'teacher'}.\n"
                f"Your invitation code is {invitation_code}.\n"
                f"It expires on {expires_at.strftime('%d %B %Y')}."
            ),
            'metadata': {
                'invitation_code': invitation_code,
                'expires_at': expires_at.isoformat(),
            }
        }

    def _deliver(self, email, invitation_code, expires_at, name, role):
        try:
            response = requests.post(
                self.api_url,
                json=self.build_message(email, invitation_code, expires_at, name, role),
                headers=self.get_headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.Timeout as e:
            raise NotificationFailure(f"Email relay timed out after {self.timeout}s", "NOTIFICATION_TIMEOUT") from e
        except requests.RequestException as e:
            raise NotificationFailure(f"Email relay rejected the invitation: {e}") from e


def build_notification_sender(config) -> NotificationSender:
    if config.get('EMAIL_API_URL'):
        return EmailNotificationSender(
            api_url=config['EMAIL_API_URL'],
            api_key=config.get('EMAIL_API_KEY', ''),
            sender=config.get('EMAIL_FROM', ''),
            timeout=config.get('NOTIFY_TIMEOUT_SECONDS', 10)
        )
    return LogNotificationSender()
