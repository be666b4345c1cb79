# portal/utils/email_service.py
import os
import smtplib
import ssl
import logging
from email.message import EmailMessage

log = logging.getLogger(__name__)


def _format_from(from_email: str, from_name: str = ""):
    if from_name:
        return f"{from_name} <{from_email}>"
    return from_email


def _get_smtp_config():
    """Read SMTP config from environment at call time (fresh values)."""
    return {
        "host": os.getenv("SMTP_HOST"),
        "port": int(os.getenv("SMTP_PORT") or 587),
        "user": os.getenv("SMTP_USER"),
        "pass": os.getenv("SMTP_PASS"),
        "from_email": os.getenv("FROM_EMAIL") or os.getenv("SMTP_USER"),
        "from_name": os.getenv("FROM_NAME") or "Employee Portal",
    }


def send_email(to_email: str, subject: str, body: str, html: str = None):
    """
    Send an email using SMTP settings from environment.
    Returns True on success, raises RuntimeError on failure.
    """
    cfg = _get_smtp_config()

    # DEBUG MODE: without SMTP settings, log instead of sending so dev flows keep working
    if not cfg["host"] or not cfg["user"] or not cfg["pass"]:
        log.info("EMAIL DEBUG MODE: SMTP not configured. Would send to %s (subject=%s)", to_email, subject)
        log.debug("Body: %s", body)
        return True

    msg = EmailMessage()
    msg["From"] = _format_from(cfg["from_email"], cfg["from_name"])
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")

    context = ssl.create_default_context()

    try:
        # port 465 means implicit SSL
        if cfg["port"] == 465:
            with smtplib.SMTP_SSL(cfg["host"], cfg["port"], context=context, timeout=30) as smtp:
                smtp.login(cfg["user"], cfg["pass"])
                smtp.send_message(msg)
        else:
            with smtplib.SMTP(cfg["host"], cfg["port"], timeout=30) as smtp:
                smtp.ehlo()
                smtp.starttls(context=context)
                smtp.ehlo()
                smtp.login(cfg["user"], cfg["pass"])
                smtp.send_message(msg)

        log.info("Email sent to %s (subject: %s)", to_email, subject)
        return True

    except smtplib.SMTPAuthenticationError as e:
        log.exception("SMTP Authentication failed")
        raise RuntimeError("SMTP Authentication failed. Check SMTP_USER or SMTP_PASS.") from e
    except (smtplib.SMTPException, OSError) as e:
        log.exception("Email sending failed")
        raise RuntimeError(f"Email sending failed: {e}") from e
