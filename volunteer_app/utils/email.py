import asyncio
import logging
from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from volunteer_app.core.config import settings

logger = logging.getLogger("email")


async def _deliver(message: EmailMessage):
    if not settings.smtp_configured:
        raise RuntimeError("SMTP not configured (SMTP_HOST/SMTP_USER/SMTP_PASS)")
    # port 465 is implicit TLS; 587 and 25 upgrade with STARTTLS
    implicit_tls = settings.SMTP_SSL or settings.SMTP_PORT == 465
    upgrade_tls = not implicit_tls and settings.SMTP_PORT in (587, 25)
    logger.info(f"Delivering mail to {message['To']} through {settings.SMTP_HOST}:{settings.SMTP_PORT}")
    try:
        await aiosmtplib.send(
            message,
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASS,
            use_tls=implicit_tls,
            start_tls=upgrade_tls,
        )
    except Exception as e:
        logger.error(f"SMTP delivery to {message['To']} failed: {e}")
        raise
    logger.info(f"Mail delivered to {message['To']}")


def build_confirmation_email(to_email: str, code: str, valid_for_seconds: int = 120, subject: Optional[str] = None) -> EmailMessage:
    minutes = max(1, valid_for_seconds // 60)
    msg = EmailMessage()
    if settings.SMTP_FROM:
        msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = subject or "Your login confirmation code"
    msg.set_content(
        f"Hello,\n\nYour confirmation code is: {code}\n\n"
        f"It expires in {minutes} minute(s). If you did not try to log in, ignore this email.\n"
    )
    msg.add_alternative(
        f"""
    <html>
        <body style='font-family: Arial, sans-serif; color: #1f2937;'>
            <div style='max-width:560px;margin:0 auto;padding:24px;'>
                <h2>Confirm your login</h2>
                <p>Enter this code to finish logging in. It expires in {minutes} minute(s).</p>
                <p style='text-align:center;font-size:28px;font-weight:700;letter-spacing:6px;'>{code}</p>
                <p style='color:#6b7280;font-size:13px;'>If you did not try to log in, ignore this email.</p>
            </div>
        </body>
    </html>
    """,
        subtype="html",
        charset="utf-8",
    )
    return msg


def send_confirmation_email_sync(to_email: str, code: str, valid_for_seconds: int = 120):
    """Deliver a login confirmation code; failures are logged, never raised.

    Runs as a background task after the login response is sent, outside any
    event loop, so it drives the async SMTP client with ``asyncio.run``.
    """
    msg = build_confirmation_email(to_email, code, valid_for_seconds)
    try:
        asyncio.run(_deliver(msg))
    except RuntimeError as e:
        logger.warning(f"Confirmation email skipped: {e}")
    except Exception as e:
        logger.error(f"Failed to send confirmation email: {e}")
