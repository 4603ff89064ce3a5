"""
Email service for owner notifications.

Sends real emails via SMTP when configured, falls back to logging in mock mode.
Only the events an owner opted into (user.notification_settings["email_<event>"])
are emailed; see storedesk.services.notifications.

Environment variables:
- SMTP_HOST: SMTP server hostname (e.g., smtp.gmail.com)
- SMTP_PORT: SMTP server port (default: 587 for TLS)
- SMTP_USERNAME: SMTP authentication username
- SMTP_PASSWORD: SMTP authentication password (for Gmail, use App Password)
- SMTP_FROM_EMAIL: Sender email address
"""

import logging
import os
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from .services.helpers import format_price

logger = logging.getLogger(__name__)

# SMTP configuration from environment
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")

PAYMENT_LABELS = {
    "qpay": "QPay",
    "bank": "Банк шилжүүлэг",
    "cash": "Бэлэн мөнгө",
}


def is_email_configured() -> bool:
    """Check if SMTP is properly configured."""
    return all([SMTP_HOST, SMTP_USERNAME, SMTP_PASSWORD, SMTP_FROM_EMAIL])


def send_email(to_email: str, subject: str, body_text: str, body_html: str) -> dict:
    """
    Send one email, or log it when SMTP is not configured.

    Returns:
        dict with status ("sent" or "error"), mock flag and message
    """
    if not is_email_configured():
        # Mock mode - just log the email
        logger.info("MOCK EMAIL to %s: Subject: %s | Body: %s", to_email, subject, body_text[:200])
        return {"status": "sent", "to_email": to_email, "subject": subject, "mock": True}

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = SMTP_FROM_EMAIL
        msg["To"] = to_email
        msg.attach(MIMEText(body_text, "plain"))
        msg.attach(MIMEText(body_html, "html"))

        context = ssl.create_default_context()
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT) as server:
            server.starttls(context=context)
            server.login(SMTP_USERNAME, SMTP_PASSWORD)
            server.sendmail(SMTP_FROM_EMAIL, to_email, msg.as_string())

        logger.info("Email sent to %s: %s", to_email, subject)
        return {"status": "sent", "to_email": to_email, "subject": subject, "mock": False}

    except Exception as e:
        logger.error("Failed to send email to %s: %s", to_email, str(e))
        return {"status": "error", "to_email": to_email, "error": str(e), "mock": False}


def _wrap_html(heading: str, rows: str, footer: str, color: str = "#1e293b") -> str:
    return f"""
<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: {color};">{heading}</h2>
  <div style="background: #f1f5f9; border-radius: 8px; padding: 16px; margin: 16px 0;">
{rows}
  </div>
  <p style="color: #64748b; font-size: 14px;">{footer}</p>
</div>
"""


def send_order_email(to_email: str, order_number: str, total_amount: float, payment_method: Optional[str]) -> dict:
    amount = format_price(total_amount)
    payment = PAYMENT_LABELS.get(payment_method or "", "Тодорхойгүй")
    subject = f"Шинэ захиалга #{order_number}"
    body_text = (
        f"Шинэ захиалга ирлээ!\n"
        f"Захиалгын дугаар: #{order_number}\n"
        f"Нийт дүн: {amount}\n"
        f"Төлбөр: {payment}\n"
    )
    rows = (
        f'    <p style="margin: 4px 0;"><strong>Захиалгын дугаар:</strong> #{order_number}</p>\n'
        f'    <p style="margin: 4px 0;"><strong>Нийт дүн:</strong> {amount}</p>\n'
        f'    <p style="margin: 4px 0;"><strong>Төлбөр:</strong> {payment}</p>'
    )
    body_html = _wrap_html("Шинэ захиалга ирлээ!", rows, "Захиалгыг удирдах самбараас харна уу.")
    return send_email(to_email, subject, body_text, body_html)


def send_message_email(to_email: str, customer_name: str, message: str) -> dict:
    truncated = message[:200] + "..." if len(message) > 200 else message
    subject = f"Шинэ мессеж: {customer_name}"
    body_text = f"Шинэ мессеж ирлээ\nХарилцагч: {customer_name}\nМессеж:\n{truncated}\n"
    rows = (
        f'    <p style="margin: 4px 0;"><strong>Харилцагч:</strong> {customer_name}</p>\n'
        f'    <p style="margin: 4px 0;"><strong>Мессеж:</strong></p>\n'
        f'    <p style="margin: 4px 0; color: #334155;">{truncated}</p>'
    )
    body_html = _wrap_html("Шинэ мессеж ирлээ", rows, "Чат хэсгээс хариу бичнэ үү.")
    return send_email(to_email, subject, body_text, body_html)


def send_low_stock_email(to_email: str, product_name: str, remaining: int) -> dict:
    subject = f"Нөөц дуусаж байна: {product_name}"
    body_text = f"Нөөц бага байна!\nБүтээгдэхүүн: {product_name}\nҮлдэгдэл: {remaining} ширхэг\n"
    rows = (
        f'    <p style="margin: 4px 0;"><strong>Бүтээгдэхүүн:</strong> {product_name}</p>\n'
        f'    <p style="margin: 4px 0;"><strong>Үлдэгдэл:</strong> {remaining} ширхэг</p>'
    )
    body_html = _wrap_html(
        "Нөөц бага байна!", rows, "Бүтээгдэхүүний нөөцийг нэмэхийг зөвлөж байна.", color="#dc2626",
    )
    return send_email(to_email, subject, body_text, body_html)
