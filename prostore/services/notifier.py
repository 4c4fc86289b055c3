"""
Aviso de alteração de preço para os administradores.

Roda como background task depois da resposta. Qualquer falha é registrada e
descartada: o update do produto já foi confirmado quando isto executa.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from email.message import EmailMessage

import aiosmtplib
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from prostore import models
from prostore.db import SessionLocal, settings
from prostore.templating import render_template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceSnapshot:
    product_id: str
    name: str
    price: Decimal


def format_price(value: Decimal | None) -> str:
    if value is None:
        return "-"
    return f"${Decimal(value):,.2f}"


def admin_emails(db: Session) -> list[str]:
    stmt = (
        select(models.User.email)
        .join(models.Role, models.User.role_id == models.Role.id)
        .where(models.Role.name == models.RoleName.admin)
        .order_by(models.User.email)
    )
    return [email for email in db.scalars(stmt).all() if email]


def load_admin_emails() -> list[str]:
    with SessionLocal() as db:
        return admin_emails(db)


def build_price_change_message(snapshot: PriceSnapshot, old_price: Decimal, recipients: list[str]) -> EmailMessage:
    product_url = f"{settings.frontend_url}/products/{snapshot.product_id}" if settings.frontend_url else None
    html = render_template(
        "price_change_email.html",
        product_name=snapshot.name,
        old_price=format_price(old_price),
        new_price=format_price(snapshot.price),
        product_url=product_url,
    )
    message = EmailMessage()
    message["From"] = settings.mail_from
    message["To"] = ", ".join(recipients)
    message["Subject"] = f"Price update: {snapshot.name}"
    message.set_content(
        f"The price of {snapshot.name} changed from {format_price(old_price)} to {format_price(snapshot.price)}."
    )
    message.add_alternative(html, subtype="html")
    return message


async def send_message(message: EmailMessage) -> None:
    await aiosmtplib.send(
        message,
        hostname=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username or None,
        password=settings.smtp_password or None,
        start_tls=settings.smtp_use_tls,
        timeout=30,
    )


async def notify_price_change(snapshot: PriceSnapshot, old_price: Decimal) -> None:
    if not settings.smtp_enabled:
        logger.info("SMTP not configured; skipping price notification product_id=%s", snapshot.product_id)
        return
    try:
        # sessão síncrona fora do event loop
        recipients = await run_in_threadpool(load_admin_emails)
        if not recipients:
            logger.info("No admin recipients; skipping price notification product_id=%s", snapshot.product_id)
            return
        await send_message(build_price_change_message(snapshot, old_price, recipients))
    except Exception:
        logger.exception("Failed to send price notification product_id=%s", snapshot.product_id)
        return
    logger.info(
        "Price notification sent product_id=%s recipients=%s",
        snapshot.product_id,
        len(recipients),
    )
