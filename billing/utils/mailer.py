# billing/utils/mailer.py
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from billing.core.config import settings
from billing.core.exceptions import TransportFailure

logger = logging.getLogger(__name__)


class Mailer:
    """Service for sending plain-text mail over SMTP"""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        encryption: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.host = host or settings.mail_host
        self.port = port or settings.mail_port
        self.username = username if username is not None else settings.mail_username
        self.password = password if password is not None else settings.mail_password
        self.encryption = (encryption or settings.mail_encryption).lower()
        self.timeout = timeout or settings.mail_timeout
        self.sender = formataddr((settings.mail_from_name, settings.mail_from_address))

    def _connect(self) -> smtplib.SMTP:
        if self.encryption == "ssl":
            client = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            if self.encryption == "tls":
                client.starttls()
        if self.username:
            client.login(self.username, self.password)
        return client

    def send(self, recipient: str, subject: str, body: str) -> None:
        """
        Send one message.

        Raises:
            TransportFailure: the SMTP server could not be reached or refused the message
        """
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)

        try:
            with self._connect() as client:
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send mail to {recipient}: {e}")
            raise TransportFailure(f"Failed to send mail to {recipient}: {e}")

        logger.info(f"Mail sent successfully to {recipient}")
