import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from quizroom.config import settings

logger = logging.getLogger(__name__)


def mail_enabled() -> bool:
    return bool(settings.smtp_host)


def send_email(receiver: str, subject: str, html: str) -> bool:
    """Send an HTML mail. Returns False when SMTP is not configured or the send fails."""
    if not mail_enabled():
        logger.info("SMTP not configured; skipping mail to %s", receiver)
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.mail_sender or settings.smtp_user
    msg["To"] = receiver
    msg.attach(MIMEText(html, "html"))

    try:
        with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=20) as server:
            if settings.smtp_user:
                server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(msg["From"], receiver, msg.as_string())
    except (smtplib.SMTPException, OSError):
        logger.exception("SMTP send to %s failed", receiver)
        return False
    return True
