import logging
import re
import smtplib
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import MailerConfigError, MailSettings
from database import utcnow
from mailer import MailTransportUnavailable, build_admin_notification, build_auto_reply, send_messages

router = APIRouter()
logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

CONTACT_INFO = {
    "email": "hello@jsrecipebox.com",
    "location": "Cameroon, Central Africa",
    "business_hours": "Monday - Friday, 9:00 AM - 6:00 PM (GMT+1)",
    "response_time": "We typically respond within 24 hours",
    "subjects": [
        {"value": "general", "label": "General Question"},
        {"value": "recipe", "label": "Recipe Support"},
        {"value": "account", "label": "Account Issues"},
        {"value": "business", "label": "Business Inquiry"},
        {"value": "feedback", "label": "Feedback"},
        {"value": "other", "label": "Other"},
    ],
}


class ContactRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None


def _reply(status_code: int, success: bool, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": success, "message": message})


def log_undelivered(payload: ContactRequest) -> None:
    logger.warning(
        "CONTACT FORM SUBMISSION (email failed)\n"
        "  Name: %s\n  Email: %s\n  Subject: %s\n  Message: %s\n  Timestamp: %s",
        payload.name,
        payload.email,
        payload.subject or "No subject",
        payload.message,
        utcnow().isoformat(),
    )


@router.post("")
def send_contact_email(payload: ContactRequest):
    # header values: fold CR/LF and runs of whitespace into single spaces
    name = " ".join((payload.name or "").split())
    email = (payload.email or "").strip()
    message = (payload.message or "").strip()
    if not name or not email or not message:
        return _reply(400, False, "Name, email, and message are required fields")
    if not EMAIL_RE.match(email):
        return _reply(400, False, "Please provide a valid email address")
    subject = " ".join((payload.subject or "").split()) or None

    try:
        settings = MailSettings.from_env()
        send_messages(settings, [
            build_admin_notification(settings, name, email, subject, message),
            build_auto_reply(settings, name, email, subject, message),
        ])
    except MailTransportUnavailable as exc:
        logger.error("Mail relay unreachable: %s", exc)
        log_undelivered(payload)
        return _reply(
            200,
            True,
            "Message received! Due to email service limitations, we'll respond "
            "directly to your email address within 24 hours.",
        )
    except (MailerConfigError, smtplib.SMTPException, OSError, ValueError):
        logger.error("Contact form error", exc_info=True)
        return _reply(500, False, "Failed to send message. Please try again later.")

    return _reply(200, True, "Message sent successfully! We'll get back to you soon.")


@router.get("/info")
def get_contact_info():
    return {"success": True, "data": CONTACT_INFO}
