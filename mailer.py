"""
SMTP delivery for the contact form.

Messages are built as multipart (plain text + HTML) ``EmailMessage`` objects
and sent over a single STARTTLS session. Failures to reach the relay at all
are raised as ``MailTransportUnavailable`` so callers can fall back to
logging; everything else (auth rejected, recipient refused) propagates as the
original ``smtplib`` error.
"""

import html
import logging
import smtplib
import socket
import ssl
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Iterable, Optional

from config import MailSettings

logger = logging.getLogger(__name__)

SITE_NAME = "J's Recipe Box"
SITE_URL = "https://jsrecipebox.com"
EXCERPT_LENGTH = 100

CONNECTION_ERRORS = (
    TimeoutError,
    ConnectionError,
    socket.gaierror,
    smtplib.SMTPConnectError,
    smtplib.SMTPServerDisconnected,
)


class MailTransportUnavailable(Exception):
    """The relay could not be reached or dropped the connection."""


def excerpt(text: str, length: int = EXCERPT_LENGTH) -> str:
    return text[:length] + ("..." if len(text) > length else "")


def _message(sender: str, to: str, subject: str, text: str, body_html: str,
             reply_to: Optional[str] = None) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = to
    msg["Subject"] = subject
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.set_content(text)
    msg.add_alternative(body_html, subtype="html")
    return msg


def build_admin_notification(settings: MailSettings, name: str, email: str,
                             subject: Optional[str], message: str,
                             received_at: Optional[datetime] = None) -> EmailMessage:
    received_at = received_at or datetime.now(timezone.utc)
    e = html.escape
    body_html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #ddd; border-radius: 8px;">
  <h2 style="color: #16a34a; border-bottom: 2px solid #16a34a; padding-bottom: 10px;">New Contact Form Submission</h2>
  <div style="margin: 20px 0;">
    <h3 style="color: #374151; margin-bottom: 15px;">Contact Details:</h3>
    <div style="background-color: #f9fafb; padding: 15px; border-radius: 5px; margin-bottom: 15px;">
      <p style="margin: 5px 0;"><strong>Name:</strong> {e(name)}</p>
      <p style="margin: 5px 0;"><strong>Email:</strong> {e(email)}</p>
      <p style="margin: 5px 0;"><strong>Subject:</strong> {e(subject or 'No subject provided')}</p>
    </div>
    <h3 style="color: #374151; margin-bottom: 10px;">Message:</h3>
    <div style="background-color: #f3f4f6; padding: 15px; border-radius: 5px; border-left: 4px solid #16a34a;">
      <p style="margin: 0; line-height: 1.6; white-space: pre-wrap;">{e(message)}</p>
    </div>
  </div>
  <div style="margin-top: 20px; padding-top: 15px; border-top: 1px solid #e5e7eb; font-size: 12px; color: #6b7280;">
    <p style="margin: 0;">This message was sent from the {e(SITE_NAME)} contact form.</p>
    <p style="margin: 5px 0 0 0;">Received on: {received_at:%Y-%m-%d %H:%M UTC}</p>
  </div>
</div>
"""
    text = (
        f"New contact form submission\n\n"
        f"Name: {name}\nEmail: {email}\nSubject: {subject or 'No subject provided'}\n\n"
        f"{message}\n"
    )
    return _message(
        settings.user,
        settings.admin_email,
        f"Contact Form: {subject or 'New Message'} - from {name}",
        text,
        body_html,
        reply_to=email,
    )


def build_auto_reply(settings: MailSettings, name: str, email: str,
                     subject: Optional[str], message: str) -> EmailMessage:
    e = html.escape
    body_html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #ddd; border-radius: 8px;">
  <div style="text-align: center; margin-bottom: 20px;">
    <h1 style="color: #16a34a; font-size: 36px; margin: 0;">{e(SITE_NAME)}</h1>
  </div>
  <h2 style="color: #374151;">Thank you for reaching out, {e(name)}!</h2>
  <p style="color: #4b5563; line-height: 1.6;">
    We've received your message and appreciate you taking the time to contact us.
    Our team will review your inquiry and get back to you as soon as possible,
    typically within 24 hours.
  </p>
  <div style="background-color: #f0fdf4; padding: 15px; border-radius: 5px; border-left: 4px solid #16a34a; margin: 20px 0;">
    <h3 style="color: #15803d; margin-top: 0;">Your Message Summary:</h3>
    <p style="margin: 5px 0;"><strong>Subject:</strong> {e(subject or 'General Inquiry')}</p>
    <p style="margin: 5px 0;"><strong>Message:</strong></p>
    <p style="margin: 10px 0; font-style: italic; color: #6b7280;">"{e(excerpt(message))}"</p>
  </div>
  <div style="text-align: center; margin: 30px 0;">
    <a href="{SITE_URL}" style="background-color: #16a34a; color: white; padding: 12px 24px; text-decoration: none; border-radius: 5px; display: inline-block;">Explore Recipes</a>
  </div>
  <div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #e5e7eb; font-size: 14px; color: #6b7280;">
    <p style="margin: 0;">Best regards,</p>
    <p style="margin: 5px 0;"><strong>The {e(SITE_NAME)} Team</strong></p>
  </div>
</div>
"""
    text = (
        f"Thank you for reaching out, {name}!\n\n"
        f"We've received your message and will get back to you within 24 hours.\n\n"
        f"Subject: {subject or 'General Inquiry'}\n"
        f"Message: \"{excerpt(message)}\"\n\n"
        f"The {SITE_NAME} Team\n"
    )
    return _message(settings.user, email, f"Thank you for contacting {SITE_NAME}!", text, body_html)


def send_messages(settings: MailSettings, messages: Iterable[EmailMessage]) -> int:
    """Deliver ``messages`` over one SMTP session and return how many were sent."""
    sent = 0
    try:
        with smtplib.SMTP(settings.host, settings.port, timeout=settings.timeout) as smtp:
            smtp.starttls(context=ssl.create_default_context())
            smtp.login(settings.user, settings.password)
            for msg in messages:
                smtp.send_message(msg)
                sent += 1
    except CONNECTION_ERRORS as exc:
        raise MailTransportUnavailable(f"{settings.host}:{settings.port}: {exc}") from exc
    logger.info("Sent %d message(s) via %s", sent, settings.host)
    return sent
