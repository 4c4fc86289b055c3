import base64

import httpx
import pytest

from prostore.services import spec_sheet


class FakeHTML:
    rendered = []

    def __init__(self, string):
        self.string = string

    def write_pdf(self):
        FakeHTML.rendered.append(self.string)
        return b"%PDF-1.7 fake"


@pytest.fixture
def fake_weasyprint(monkeypatch):
    FakeHTML.rendered = []
    monkeypatch.setattr(spec_sheet, "_get_weasyprint", lambda: FakeHTML)
    return FakeHTML


def _respond_with(monkeypatch, handler):
    def fake_get(url, timeout, follow_redirects):
        assert timeout == spec_sheet.IMAGE_FETCH_TIMEOUT_SECONDS
        return handler(httpx.Request("GET", url))

    monkeypatch.setattr(spec_sheet.httpx, "get", fake_get)


def test_pdf_embeds_fetched_image(client, client_headers, make_product, fake_weasyprint, monkeypatch):
    _respond_with(
        monkeypatch,
        lambda request: httpx.Response(200, content=b"img-bytes", headers={"content-type": "image/png"}, request=request),
    )
    product = make_product(name="Trail Shoe", price="49.90", image_url="https://cdn.example.org/shoe.png")

    response = client.get(f"/api/products/{product.id}/pdf", headers=client_headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert f"Spec-Trail_Shoe-{product.id}.pdf" in response.headers["content-disposition"]
    assert response.content == b"%PDF-1.7 fake"
    html = fake_weasyprint.rendered[0]
    assert "data:image/png;base64," + base64.b64encode(b"img-bytes").decode() in html
    assert "Acme" in html
    assert "$49.90" in html


def test_pdf_uses_placeholder_when_fetch_fails(client, client_headers, make_product, fake_weasyprint, monkeypatch):
    def boom(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    _respond_with(monkeypatch, boom)
    product = make_product(image_url="https://cdn.example.org/slow.png")

    response = client.get(f"/api/products/{product.id}/pdf", headers=client_headers)

    assert response.status_code == 200
    assert spec_sheet.IMAGE_ERROR_TEXT in fake_weasyprint.rendered[0]


def test_pdf_uses_placeholder_on_http_error(monkeypatch):
    _respond_with(monkeypatch, lambda request: httpx.Response(404, request=request))
    image = spec_sheet.fetch_image("https://cdn.example.org/gone.png")
    assert image.src is None
    assert image.failed


def test_pdf_without_image(client, client_headers, make_product, fake_weasyprint):
    product = make_product()
    response = client.get(f"/api/products/{product.id}/pdf", headers=client_headers)
    assert response.status_code == 200
    assert spec_sheet.NO_IMAGE_TEXT in fake_weasyprint.rendered[0]


def test_pdf_for_unknown_product_is_404(client, client_headers, fake_weasyprint):
    assert client.get("/api/products/missing/pdf", headers=client_headers).status_code == 404


def test_pdf_requires_authentication(client):
    assert client.get("/api/products/any/pdf").status_code == 401
