"""
Transactional email through Amazon SES.

Sending is best-effort: when SES or the sender address is not configured the
message is skipped, and SES failures are logged instead of raised, so a
notification can never fail the operation that triggered it.
"""
import html
import logging
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from . import config
from .ical import generate_ical_event
from .utils import parse_instant

logger = logging.getLogger(__name__)


def confirmation_email_html(link: str) -> str:
    link = html.escape(link)
    return (
        "<div>"
        "<h1>Confirm your email</h1>"
        "<p>Click the link below to confirm your email:</p>"
        f'<a href="{link}">{link}</a>'
        "</div>"
    )


class Mailer:
    """SES-backed notification sender."""

    def __init__(self, sender: Optional[str], client=None,
                 frontend_url: Optional[str] = None, app_url: Optional[str] = None):
        self.sender = sender
        self.client = client
        self.frontend_url = frontend_url
        self.app_url = app_url

    @property
    def configured(self) -> bool:
        return bool(self.client and self.sender)

    def send_email(self, to: str, subject: str, body_html: str) -> bool:
        """Send an HTML email. Returns True if SES accepted it."""
        if not self.configured:
            logger.warning("SES not configured, skipping email to %s (%s)", to, subject)
            return False
        try:
            self.client.send_email(
                Source=self.sender,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {"Html": {"Data": body_html, "Charset": "UTF-8"}},
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning("Failed to send email to %s (%s): %s", to, subject, e)
            return False
        logger.info("Sent email to %s: %s", to, subject)
        return True

    def send_email_with_attachment(self, to: str, subject: str, body_html: str,
                                   attachment: Dict[str, str]) -> bool:
        """
        Send an HTML email with one attachment as a raw MIME message.

        Args:
            attachment: {"filename", "content", "content_type"}
        """
        if not self.configured:
            logger.warning("SES not configured, skipping email to %s (%s)", to, subject)
            return False

        message = MIMEMultipart("mixed")
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = to
        message.attach(MIMEText(body_html, "html", "utf-8"))

        part = MIMEApplication(attachment["content"].encode("utf-8"))
        part.replace_header("Content-Type", f'{attachment["content_type"]}; name="{attachment["filename"]}"')
        part.add_header("Content-Disposition", "attachment", filename=attachment["filename"])
        message.attach(part)

        try:
            self.client.send_raw_email(
                Source=self.sender,
                Destinations=[to],
                RawMessage={"Data": message.as_string()},
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning("Failed to send email to %s (%s): %s", to, subject, e)
            return False
        logger.info("Sent email with attachment to %s: %s", to, subject)
        return True

    # --- Notifications ---

    def send_confirmation_email(self, email: str, token: str) -> bool:
        if not self.frontend_url:
            logger.warning("FRONTEND_URL is not configured, confirmation link not sent to %s", email)
            return False
        link = f"{self.frontend_url.rstrip('/')}/auth/confirm-email?token={token}"
        return self.send_email(email, "Email Confirmation", confirmation_email_html(link))

    def send_account_deactivated(self, email: str, user_name: str) -> bool:
        body = (
            f"<p>Hello {html.escape(user_name or '')}, your account has been deactivated. "
            "If this wasn't you, please contact us.</p>"
        )
        return self.send_email(email, "Account Deactivated", body)

    def send_event_created(self, email: str, event: dict) -> bool:
        body = f"<p>The event <strong>{html.escape(event['name'])}</strong> has been created!</p>"
        return self.send_email(email, "New Event Created", body)

    def send_event_canceled(self, email: str, event: dict) -> bool:
        body = (
            f"<p>The event <strong>{html.escape(event['name'])}</strong> has been canceled. "
            "If you have any questions, please contact us.</p>"
        )
        return self.send_email(email, "Event Canceled", body)

    def send_event_subscription(self, email: str, event: dict) -> bool:
        body = (
            "<p>You have successfully subscribed to the event "
            f"<strong>{html.escape(event['name'])}</strong></p>"
        )
        return self.send_email_with_attachment(
            email,
            "Event Subscription Confirmed",
            body,
            {
                "filename": "event.ics",
                "content": generate_ical_event(event, self.app_url),
                "content_type": "text/calendar",
            },
        )

    def send_subscription_canceled(self, email: str, event: dict) -> bool:
        when = parse_instant(event["date"]).strftime("%Y-%m-%d %H:%M %Z")
        body = (
            "<p>You have canceled your subscription to the event "
            f"<strong>{html.escape(event['name'])}</strong>.</p>"
            f"<p><strong>Date:</strong> {when}</p>"
            f"<p><strong>Description:</strong> {html.escape(event.get('description') or '')}</p>"
        )
        return self.send_email(email, f"Subscription canceled for the event: {event['name']}", body)


def build_mailer_from_env() -> Mailer:
    """
    Mailer from environment variables. Without EMAIL_FROM or AWS credentials
    the mailer is returned unconfigured and every send is skipped.
    """
    client = None
    if config.EMAIL_FROM and boto3.session.Session().get_credentials() is not None:
        client = boto3.client("ses", region_name=config.AWS_SES_REGION)
    else:
        logger.warning("SES: missing sender or credentials, emails will be skipped")
    return Mailer(config.EMAIL_FROM, client, config.FRONTEND_URL, config.APP_URL)
