"""Delivery email rendering."""

from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Any

from vauntico_api.services.catalog.resolver import ProductRecord


@dataclass(frozen=True)
class RenderedTemplate:
    subject: str
    text_body: str
    html_body: str


def _display(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def _esc(value: Any) -> str:
    return html.escape(_display(value))


def render_delivery_email(
    product: ProductRecord,
    recipient: str,
    *,
    extra_data: str | None = None,
) -> RenderedTemplate:
    """Render the customer-facing delivery email for a resolved product."""

    name = product.product_name or ""
    subject = f"Your {name} is ready!"

    text_lines = [f"{name}"]
    if product.short_description:
        text_lines.extend(["", product.short_description])
    text_lines.extend(
        [
            "",
            f"Type: {_display(product.product_type)}",
            f"Price: ZAR {_display(product.price_zar)}",
            f"Description: {_display(product.product_description)}",
        ]
    )
    if product.tags:
        text_lines.append(f"Tags: {_display(product.tags)}")
    text_lines.append(f"Delivery Format: {_display(product.delivery_format)}")
    if product.download_link:
        text_lines.append(f"Download your product: {product.download_link}")
    if product.download_file:
        text_lines.append(f"Attachment: {product.download_file.filename} ({product.download_file.url})")
    text_lines.extend(
        [
            "",
            f"Status: {_display(product.status)}",
            f"Order ID: {_display(product.order_id)}",
            f"Delivered To: {recipient}",
        ]
    )
    if product.product_summary_ai:
        text_lines.extend(["", "Summary", product.product_summary_ai])
    if extra_data:
        text_lines.extend(["", extra_data])

    tags_html = f"<p><strong>Tags:</strong> {_esc(product.tags)}</p>" if product.tags else ""
    link_html = (
        f'<p><a href="{_esc(product.download_link)}">Download your product</a></p>'
        if product.download_link
        else ""
    )
    attachment_html = (
        f'<p>Attachment: <a href="{_esc(product.download_file.url)}">{_esc(product.download_file.filename)}</a></p>'
        if product.download_file
        else ""
    )
    extra_html = f"<hr/><p>{_esc(extra_data)}</p>" if extra_data else ""

    html_body = f"""<html>
  <body>
    <h1>{_esc(name)}</h1>
    <p><em>{_esc(product.short_description)}</em></p>
    <p><strong>Type:</strong> {_esc(product.product_type)}</p>
    <p><strong>Price:</strong> ZAR {_esc(product.price_zar)}</p>
    <p><strong>Description:</strong> {_esc(product.product_description)}</p>
    {tags_html}
    <p><strong>Delivery Format:</strong> {_esc(product.delivery_format)}</p>
    {link_html}{attachment_html}
    <hr/>
    <p><strong>Status:</strong> {_esc(product.status)}</p>
    <p><strong>Order ID:</strong> {_esc(product.order_id)}</p>
    <p><strong>Delivered To:</strong> {_esc(recipient)}</p>
    <p><strong>Gross Revenue:</strong> ZAR {_esc(product.gross_revenue_zar)}</p>
    <p><strong>High Value Product:</strong> {_esc(product.is_high_value)}</p>
    <h2>AI-Generated Summary</h2>
    <p>{_esc(product.product_summary_ai)}</p>
    <h2>Suggested Marketing Angle</h2>
    <p>{_esc(product.suggested_marketing_angle_ai)}</p>
    {extra_html}
  </body>
</html>"""

    return RenderedTemplate(subject=subject, text_body="\n".join(text_lines), html_body=html_body)
