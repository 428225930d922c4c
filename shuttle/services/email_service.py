import logging
import re
import smtplib
import uuid
from datetime import datetime, timezone
from email.message import EmailMessage

import requests
from sqlalchemy.orm import Session

from shuttle.core.config import settings
from shuttle.models.email_log import ABANDONED, FAILED, QUEUED, RETRYABLE_STATUSES, SENT, EmailLog

logger = logging.getLogger(__name__)

# local@domain with no whitespace or control characters; .local and other dev domains pass
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+$")


def is_valid_email(address: str) -> bool:
    return bool(EMAIL_RE.fullmatch(address or ""))


class EmailSendError(RuntimeError):
    pass


def queue_email(db: Session, to_email: str, subject: str, body: str, related_booking_ref: str = "") -> str:
    """Queue and attempt immediate send. Body is stored so the worker can retry on failure.

    With EMAILS_ENABLED off the email stays queued.
    """
    log = EmailLog(
        id=str(uuid.uuid4()),
        to_email=to_email,
        subject=subject,
        body=body,
        status=QUEUED,
        related_booking_ref=related_booking_ref,
        attempts=0,
    )
    db.add(log)
    db.commit()

    if settings.EMAILS_ENABLED:
        _attempt(log)
        db.commit()
    return log.id


def _attempt(log: EmailLog) -> bool:
    """One send of a logged email; records the outcome on the row. Caller commits."""
    log.attempts = (log.attempts or 0) + 1
    if not is_valid_email(log.to_email):
        log.status = ABANDONED
        log.last_error = "invalid recipient address"
        logger.error("Email %s abandoned: invalid recipient %r", log.id, log.to_email)
        return False
    try:
        send_email(log.to_email, log.subject, log.body or "")
    except Exception as e:  # SMTP, HTTP and header errors alike
        log.last_error = str(e)[:1000]
        if log.attempts >= settings.EMAIL_MAX_ATTEMPTS:
            log.status = ABANDONED
            logger.error("Email %s to %s abandoned after %s attempts: %s", log.id, log.to_email, log.attempts, e)
        else:
            log.status = FAILED
            logger.warning("Email %s to %s failed (attempt %s): %s", log.id, log.to_email, log.attempts, e)
        return False
    log.status = SENT
    log.sent_at = datetime.now(timezone.utc)
    log.last_error = None
    return True


def send_email(to_email: str, subject: str, body: str):
    """Send email via SendGrid if configured, otherwise SMTP (MailHog recommended for local)."""

    if settings.SENDGRID_API_KEY:
        _send_via_sendgrid(to_email, subject, body)
        return

    msg = EmailMessage()
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(msg)


def _send_via_sendgrid(to_email: str, subject: str, body: str):
    from_email = settings.SENDGRID_FROM_EMAIL or settings.SMTP_FROM
    payload = {
        "personalizations": [{"to": [{"email": to_email}]}],
        "from": {"email": from_email},
        "subject": subject,
        "content": [{"type": "text/plain", "value": body}],
    }
    r = requests.post(
        "https://api.sendgrid.com/v3/mail/send",
        json=payload,
        headers={"Authorization": f"Bearer {settings.SENDGRID_API_KEY}"},
        timeout=20,
    )
    if r.status_code >= 400:
        raise EmailSendError(f"SendGrid error {r.status_code}: {r.text}")


def booking_confirmation(booking, departure, schedule, route, return_leg=None) -> tuple[str, str]:
    """Subject and plain-text body for a booking confirmation."""
    name = f"{booking.guest_first_name} {booking.guest_last_name}".strip() or "traveller"
    lines = [
        f"Hi {name},",
        "",
        f"Your shuttle booking {booking.booking_ref} is confirmed.",
        "",
        f"Route: {route.label}",
        f"Departure: {departure.departure_date.isoformat()} at {schedule.time}",
    ]
    if return_leg is not None:
        r_departure, r_schedule = return_leg
        lines.append(f"Return: {r_departure.departure_date.isoformat()} at {r_schedule.time}")
    lines += [
        f"Passengers: {booking.passenger_count}",
        f"Total: ${booking.total_amount}",
    ]
    if booking.savings:
        lines.append(f"Round-trip savings: ${booking.savings}")
    if settings.CLIENT_BASE_URL:
        lines += ["", f"Manage your booking: {settings.CLIENT_BASE_URL.rstrip('/')}/booking/{booking.booking_ref}"]
    return f"Shuttle booking confirmed - {booking.booking_ref}", "\n".join(lines)


def process_pending_emails(db: Session, limit: int = 50) -> dict:
    """Retry up to `limit` queued or failed emails, oldest first. Returns counts."""
    if not settings.EMAILS_ENABLED:
        return {"processed": 0, "sent": 0, "failed": 0, "abandoned": 0}
    pending = (
        db.query(EmailLog)
        .filter(EmailLog.status.in_(RETRYABLE_STATUSES), EmailLog.body.isnot(None), EmailLog.body != "")
        .order_by(EmailLog.created_at.asc())
        .limit(limit)
        .all()
    )
    sent = 0
    for log in pending:
        if _attempt(log):
            sent += 1
    if pending:
        db.commit()
    abandoned = sum(1 for log in pending if log.status == ABANDONED)
    return {"processed": len(pending), "sent": sent, "failed": len(pending) - sent - abandoned, "abandoned": abandoned}
