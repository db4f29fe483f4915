"""Best-effort in-app notifications and logged email delivery."""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils.html import format_html

from notifications.models import Notification, NotificationLog

logger = logging.getLogger(__name__)


def create_notification(user, message: str, link: str = "") -> Notification | None:
    """
    Persist a notification for ``user``.

    Failures are logged and swallowed so the calling operation still succeeds.
    """
    if user is None:
        return None
    try:
        return Notification.objects.create(user=user, message=message, link=link or "")
    except Exception:
        logger.exception(
            "notifications: failed to create notification",
            extra={"user_id": getattr(user, "pk", None)},
        )
        return None


def frontend_link(path: str) -> str:
    origin = (getattr(settings, "FRONTEND_ORIGIN", "") or "").rstrip("/")
    return f"{origin}{path}" if origin else path


def _log_notification(
    type_: str,
    status: str,
    *,
    user_id: int | None = None,
    booking_id: int | None = None,
    error: str | None = None,
) -> None:
    try:
        NotificationLog.objects.create(
            channel=NotificationLog.Channel.EMAIL,
            type=type_,
            status=status,
            user_id=user_id,
            booking_id=booking_id,
            error=error or "",
        )
    except Exception:
        logger.exception(
            "notifications: failed to persist notification log",
            extra={"type": type_, "status": status},
        )


def send_email_logged(
    type_: str,
    *,
    to_email: str | None,
    subject: str,
    body: str,
    html_body: str | None = None,
    user_id: int | None = None,
    booking_id: int | None = None,
) -> bool:
    if not to_email:
        _log_notification(
            type_,
            NotificationLog.Status.FAILED,
            user_id=user_id,
            booking_id=booking_id,
            error="missing recipient email",
        )
        logger.warning("notifications: cannot send email without recipient")
        return False

    message = EmailMultiAlternatives(
        subject=subject,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to_email],
    )
    if html_body:
        message.attach_alternative(html_body, "text/html")

    try:
        message.send(fail_silently=False)
    except Exception as exc:
        logger.exception(
            "notifications: email send failed",
            extra={"type": type_, "booking_id": booking_id, "user_id": user_id},
        )
        _log_notification(
            type_,
            NotificationLog.Status.FAILED,
            user_id=user_id,
            booking_id=booking_id,
            error=str(exc) or exc.__class__.__name__,
        )
        return False

    _log_notification(
        type_,
        NotificationLog.Status.SENT,
        user_id=user_id,
        booking_id=booking_id,
    )
    return True


def send_verification_code_email(user, code: str) -> bool:
    """Deliver the email verification code."""
    ttl = getattr(settings, "EMAIL_VERIFICATION_TTL_MINUTES", 15)
    body = (
        f"Hi {user.display_name()},\n\n"
        f"Your DriveHub verification code is {code}. It expires in {ttl} minutes.\n\n"
        "If you did not request this code you can ignore this email."
    )
    html_body = format_html(
        "<p>Hi {},</p><p>Your DriveHub verification code is <strong>{}</strong>. "
        "It expires in {} minutes.</p>",
        user.display_name(),
        code,
        ttl,
    )
    return send_email_logged(
        "email_verification_code",
        to_email=user.email,
        subject="Your DriveHub verification code",
        body=body,
        html_body=html_body,
        user_id=user.pk,
    )
