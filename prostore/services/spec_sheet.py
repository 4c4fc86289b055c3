"""Ficha técnica do produto em PDF (HTML Jinja2 renderizado pelo WeasyPrint)."""
from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from prostore import models
from prostore.services.notifier import format_price
from prostore.templating import render_template

logger = logging.getLogger(__name__)

IMAGE_FETCH_TIMEOUT_SECONDS = 15.0
NO_IMAGE_TEXT = "(No image assigned)"
IMAGE_ERROR_TEXT = "(Could not load image)"


@dataclass(frozen=True)
class EmbeddedImage:
    src: str | None
    placeholder: str | None = None
    failed: bool = False


def _get_weasyprint():
    # import tardio: o WeasyPrint carrega libs nativas (pango/cairo)
    from weasyprint import HTML

    return HTML


def fetch_image(url: str | None) -> EmbeddedImage:
    if not url:
        return EmbeddedImage(src=None, placeholder=NO_IMAGE_TEXT)
    try:
        response = httpx.get(url, timeout=IMAGE_FETCH_TIMEOUT_SECONDS, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Failed to fetch product image url=%s error=%s", url, exc)
        return EmbeddedImage(src=None, placeholder=IMAGE_ERROR_TEXT, failed=True)
    content_type = response.headers.get("content-type", "image/jpeg").split(";", 1)[0].strip()
    encoded = base64.b64encode(response.content).decode("ascii")
    return EmbeddedImage(src=f"data:{content_type};base64,{encoded}")


def spec_sheet_filename(product: models.Product) -> str:
    safe_name = re.sub(r"[^a-zA-Z0-9]", "_", product.name)
    return f"Spec-{safe_name}-{product.id}.pdf"


def render_spec_sheet_html(product: models.Product, image: EmbeddedImage) -> str:
    return render_template(
        "spec_sheet.html",
        product=product,
        brand=product.brand.name if product.brand else None,
        model=product.model.name if product.model else None,
        color=product.color.name if product.color else None,
        size=product.size.name if product.size else None,
        price=format_price(product.price),
        image_src=image.src,
        image_placeholder=image.placeholder,
        image_failed=image.failed,
        generated_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
    )


def build_spec_sheet(product: models.Product) -> bytes:
    html = render_spec_sheet_html(product, fetch_image(product.image_url))
    HTML = _get_weasyprint()
    pdf = HTML(string=html).write_pdf()
    logger.info("Spec sheet generated product_id=%s bytes=%s", product.id, len(pdf))
    return pdf
