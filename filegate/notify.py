import os
import smtplib
from email.message import EmailMessage

EMAIL_OUTBOX: list[tuple[str, str, str]] = []

SUBJECT_PREFIX = os.getenv("EMAIL_SUBJECT_PREFIX", "[filegate]")


def send_email(to_email: str, subject: str, message: str):
    if os.getenv("TESTING") == "1":
        EMAIL_OUTBOX.append((to_email, subject, message))
        return
    server = os.getenv("SMTP_SERVER")
    if not server:
        return
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = os.getenv("EMAIL_FROM", "noreply@example.com")
    msg["To"] = to_email
    msg.set_content(message)
    with smtplib.SMTP(server, int(os.getenv("SMTP_PORT", "25"))) as s:
        s.send_message(msg)


def send_notification_email(to_email: str, title: str, message: str):
    """Mirror an in-app notification into the recipient's mailbox."""
    body = (
        f"{message}\n\n"
        "You are receiving this because email notifications are enabled in your settings."
    )
    send_email(to_email, f"{SUBJECT_PREFIX} {title}", body)
