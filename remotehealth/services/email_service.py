import logging
import smtplib
import time
from email.mime.text import MIMEText

from remotehealth.errors import EmailSendingError, ValidationError


logger = logging.getLogger("email_service")

DEFAULT_SUBJECT = "Health Monitoring Notification"


class EmailNotifier:
    """SMTP sender with a bounded, fixed-delay retry."""

    def __init__(self, host: str, port: int, username: str, password: str,
                 timeout: float = 5, max_retries: int = 3, retry_delay: float = 2,
                 enabled: bool = True):
        self.host = host
        self.port = int(port)
        self.username = username
        self.password = password
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.retry_delay = retry_delay
        self.enabled = enabled

    @classmethod
    def from_config(cls, config) -> "EmailNotifier":
        return cls(
            host=config["SMTP_HOST"],
            port=config["SMTP_PORT"],
            username=config["SMTP_USERNAME"],
            password=config["SMTP_PASSWORD"],
            timeout=config["SMTP_TIMEOUT"],
            max_retries=config["EMAIL_MAX_RETRIES"],
            retry_delay=config["EMAIL_RETRY_DELAY_SEC"],
            enabled=config["EMAIL_ENABLED"],
        )

    def send_notification(self, to: str, message: str):
        self.send_email(to, DEFAULT_SUBJECT, message)

    def send_email(self, to_email: str, subject: str, body: str):
        """Raises EmailSendingError once every attempt has failed."""
        if not to_email or not to_email.strip():
            raise ValidationError("Recipient email cannot be null or empty")
        if not subject or not subject.strip():
            raise ValidationError("Email subject cannot be null or empty")

        if not self.enabled:
            logger.info(f"[send_email] Email disabled, skipping '{subject}' to {to_email}")
            return

        last_error = None
        for attempt in range(1, self.max_retries + 1):
            if attempt > 1:
                logger.info(f"[send_email] Retry attempt {attempt} for email to: {to_email}")
                time.sleep(self.retry_delay)
            try:
                self._deliver(to_email.strip(), subject, body)
                logger.info(f"[send_email] Email successfully sent to: {to_email}")
                return
            except (smtplib.SMTPException, OSError) as e:
                last_error = e
                logger.warning(f"[send_email] Email attempt {attempt} failed for {to_email}: {e}")

        error_msg = f"Failed to send email to {to_email} after {self.max_retries} attempts"
        logger.error(f"[send_email] {error_msg}: {last_error}")
        raise EmailSendingError(error_msg) from last_error

    def _deliver(self, to_email: str, subject: str, body: str):
        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self.username
        msg["To"] = to_email

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.username, [to_email], msg.as_string())
