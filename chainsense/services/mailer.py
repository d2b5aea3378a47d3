# chainsense/services/mailer.py
"""
Outbound transports for notifications.

Both senders take a plain config mapping (a snapshot of app.config) so they
can run on a worker thread without an application context.
"""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Mapping, Sequence

import requests

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"

TRANSPORT_KEYS = (
    "MAIL_SERVER",
    "MAIL_PORT",
    "MAIL_USE_TLS",
    "MAIL_USERNAME",
    "MAIL_PASSWORD",
    "MAIL_DEFAULT_SENDER",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_FROM_NUMBER",
)


def transport_config(app_config: Mapping) -> dict:
    return {k: app_config.get(k) for k in TRANSPORT_KEYS}


def email_configured(cfg: Mapping) -> bool:
    return bool(cfg.get("MAIL_USERNAME") and cfg.get("MAIL_PASSWORD"))


def sms_configured(cfg: Mapping) -> bool:
    return bool(cfg.get("TWILIO_ACCOUNT_SID") and cfg.get("TWILIO_AUTH_TOKEN") and cfg.get("TWILIO_FROM_NUMBER"))


def send_email(
    cfg: Mapping,
    *,
    to: str,
    subject: str,
    html: str,
    text: str | None = None,
    attachments: Sequence[tuple[str, bytes]] | None = None,
) -> dict:
    """
    Send one email over SMTP. attachments: (filename, pdf bytes) pairs.
    Raises smtplib/OSError errors to the caller.
    """
    if not email_configured(cfg):
        logger.warning("Email not configured. Skipping send to %s.", to)
        return {"skipped": True}

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = cfg.get("MAIL_DEFAULT_SENDER") or cfg["MAIL_USERNAME"]
    msg["To"] = to
    msg.set_content(text or "This message requires an HTML-capable mail client.")
    msg.add_alternative(html, subtype="html")

    for filename, data in attachments or ():
        msg.add_attachment(data, maintype="application", subtype="pdf", filename=filename)

    with smtplib.SMTP(cfg.get("MAIL_SERVER") or "smtp.gmail.com", int(cfg.get("MAIL_PORT") or 587), timeout=10) as server:
        if cfg.get("MAIL_USE_TLS", True):
            server.starttls()
        server.login(cfg["MAIL_USERNAME"], cfg["MAIL_PASSWORD"])
        server.send_message(msg)

    logger.info("Email sent to %s (%s)", to, subject)
    return {"sent": True}


def send_sms(cfg: Mapping, *, to: str, body: str) -> dict:
    """Send one SMS through the Twilio REST API."""
    if not sms_configured(cfg):
        logger.warning("SMS not configured. Skipping send to %s.", to)
        return {"skipped": True}

    resp = requests.post(
        TWILIO_MESSAGES_URL.format(sid=cfg["TWILIO_ACCOUNT_SID"]),
        data={"From": cfg["TWILIO_FROM_NUMBER"], "To": to, "Body": body},
        auth=(cfg["TWILIO_ACCOUNT_SID"], cfg["TWILIO_AUTH_TOKEN"]),
        timeout=10,
    )
    resp.raise_for_status()
    logger.info("SMS sent to %s", to)
    return {"sent": True}
