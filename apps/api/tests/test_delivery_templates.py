from vauntico_api.services.catalog import DownloadFile, ProductRecord
from vauntico_api.services.fulfillment import render_delivery_email


def test_render_delivery_email_includes_product_details(product):
    template = render_delivery_email(product, "buyer@example.com", extra_data="Thanks for your order")

    assert template.subject == "Your Creator Playbook is ready!"
    assert "Download your product: https://cdn.example.com/playbook.pdf" in template.text_body
    assert '<a href="https://cdn.example.com/playbook.pdf">Download your product</a>' in template.html_body
    assert "<strong>Tags:</strong> guide, creator" in template.html_body
    assert "<p>Thanks for your order</p>" in template.html_body
    assert "ORD-9001" in template.text_body


def test_render_delivery_email_escapes_interpolated_values():
    product = ProductRecord(
        record_id="rec-x",
        product_name="<script>alert(1)</script>",
        download_file=DownloadFile(url="https://cdn.example.com/a.zip", filename="a&b.zip"),
    )

    template = render_delivery_email(product, "buyer@example.com")

    assert "<script>" not in template.html_body
    assert "&lt;script&gt;" in template.html_body
    assert "a&amp;b.zip" in template.html_body


def test_render_delivery_email_is_deterministic(product):
    first = render_delivery_email(product, "buyer@example.com")
    second = render_delivery_email(product, "buyer@example.com")

    assert first == second
