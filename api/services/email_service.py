import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
import logging

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ["SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASSWORD", "SENDER_EMAIL", "SENDER_NAME"]


class EmailService:
    """
    Sends alert emails over SMTP (any provider: Gmail, SendGrid, Mailgun, SES, SMTP2GO...).
    """

    def __init__(self, config: dict, timeout: float = 10.0):
        """
        Args:
            config (dict): SMTP settings. Expected keys:
                           - 'SMTP_HOST': SMTP server hostname
                           - 'SMTP_PORT': 465 for implicit SSL, anything else uses STARTTLS
                           - 'SMTP_USER' / 'SMTP_PASSWORD': login credentials
                           - 'SENDER_EMAIL' / 'SENDER_NAME': the From header
                           - 'SMTP_USE_TLS': "true"/"false" (default "true")
            timeout (float): socket timeout for the SMTP connection, in seconds.
        """
        if not all(config.get(k) for k in REQUIRED_KEYS):
            raise ValueError(f"Config must contain: {', '.join(REQUIRED_KEYS)}")

        self.smtp_host = config["SMTP_HOST"]
        self.smtp_port = int(config["SMTP_PORT"])
        self.smtp_user = config["SMTP_USER"]
        self.smtp_password = config["SMTP_PASSWORD"]
        self.sender_email = config["SENDER_EMAIL"]
        self.sender_name = config["SENDER_NAME"]
        self.use_tls = (config.get("SMTP_USE_TLS") or "true").lower() == "true"
        self.timeout = timeout

    def send_alert(
        self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None
    ) -> tuple[bool, str]:
        """
        Sends one email.

        Returns:
            tuple[bool, str]: success flag and "sent" or the error description.
        """
        try:
            message = MIMEMultipart("alternative")
            message["Subject"] = subject
            message["From"] = f"{self.sender_name} <{self.sender_email}>"
            message["To"] = to_email

            # Plain part first so clients prefer the HTML one
            if text_content:
                message.attach(MIMEText(text_content, "plain"))
            message.attach(MIMEText(html_content, "html"))

            context = ssl.create_default_context()

            if self.smtp_port == 465:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=self.timeout) as server:
                    server.login(self.smtp_user, self.smtp_password)
                    server.send_message(message)
            else:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                    if self.use_tls:
                        server.starttls(context=context)
                    server.login(self.smtp_user, self.smtp_password)
                    server.send_message(message)

            logger.info(f"Email sent successfully to {to_email}")
            return True, "sent"

        except smtplib.SMTPAuthenticationError as e:
            error_message = f"SMTP authentication failed: {str(e)}"
            logger.error(error_message)
            return False, error_message
        except (smtplib.SMTPException, OSError) as e:
            error_message = f"SMTP error: {str(e)}"
            logger.error(error_message)
            return False, error_message
