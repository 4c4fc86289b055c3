import io

import pytest
from openpyxl import Workbook, load_workbook

from prostore import models
from prostore.errors import ValidationError
from prostore.services.spreadsheets import XLSX_MEDIA_TYPE, import_products


def _xlsx(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def test_export_lists_filtered_products_newest_first(client, client_headers, make_product, make_reference):
    size = make_reference(models.Size, "42")
    make_product(name="Old shoe", price="10.00", size_id=size.id)
    make_product(name="New shoe", price="12.50", stock=7)
    make_product(name="Jacket")

    response = client.get("/api/products/export", params={"search": "shoe"}, headers=client_headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == XLSX_MEDIA_TYPE
    assert "attachment" in response.headers["content-disposition"]
    ws = load_workbook(io.BytesIO(response.content)).active
    assert ws.title == "Products"
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0] == ("ID", "Name", "Brand", "Model", "Color", "Size", "Price", "Stock")
    assert [row[1] for row in rows[1:]] == ["New shoe", "Old shoe"]
    assert rows[1][2:] == ("Acme", "N/A", "N/A", "N/A", 12.5, 7)
    assert rows[2][5] == "42"


def test_export_requires_authentication(client):
    assert client.get("/api/products/export").status_code == 401


def test_upload_inserts_valid_rows_and_reports_the_rest(client, db, admin_headers, brand):
    content = _xlsx(
        [
            ["Product Name", "Sale Price", "Stock", "Brand ID", "Color ID"],
            ["Runner", 59.9, 4, brand.id, None],
            ["Walker", "n/a", "x", brand.id, None],
            ["No brand", 10, 1, None, None],
            ["Ghost color", 10, 1, brand.id, "missing-color"],
            ["Negative", -5, 1, brand.id, None],
        ]
    )

    response = client.post(
        "/api/products/upload",
        files={"excel_file": ("products.xlsx", content, XLSX_MEDIA_TYPE)},
        headers=admin_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["processed"] == 4
    assert body["inserted"] == 2
    assert body["skipped_rows"] == [4]
    assert sorted(error["row"] for error in body["errors"]) == [5, 6]
    assert body["message"] == "Bulk upload finished. 2 of 4 processed products created."

    db.expire_all()
    stored = {p.name: p for p in db.query(models.Product).all()}
    assert set(stored) == {"Runner", "Walker"}
    # células não numéricas viram 0
    assert stored["Walker"].price == 0
    assert stored["Walker"].stock == 0


def test_upload_reports_out_of_range_rows_and_keeps_going(db, brand):
    content = _xlsx(
        [
            ["Name", "Price", "Stock", "Brand ID"],
            ["Huge stock", 10, "99999999999999999999", brand.id],
            ["Exponent stock", 10, "1e2000000", brand.id],
            ["Huge price", "1e12", 1, brand.id],
            ["Cap", 5, 2, brand.id],
        ]
    )

    report = import_products(db, content)

    assert report.processed == 4
    assert report.inserted == 1
    assert [(error["row"], error["message"]) for error in report.errors] == [
        (2, "Stock is out of range"),
        (3, "Stock is out of range"),
        (4, "Price is out of range"),
    ]
    assert [p.name for p in db.query(models.Product).all()] == ["Cap"]


def test_upload_accepts_plain_headers(db, brand):
    report = import_products(db, _xlsx([["Name", "Price", "Stock", "Brand ID"], ["Cap", 5, 2, brand.id]]))
    assert report.inserted == 1


def test_upload_with_only_headers_is_400(db):
    with pytest.raises(ValidationError):
        import_products(db, _xlsx([["Name", "Price", "Stock", "Brand ID"]]))


def test_upload_without_valid_rows_is_400(client, admin_headers):
    content = _xlsx([["Name", "Price", "Stock", "Brand ID"], ["Cap", 5, 2, None]])
    response = client.post(
        "/api/products/upload",
        files={"excel_file": ("products.xlsx", content, XLSX_MEDIA_TYPE)},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_upload_rejects_other_file_types(client, admin_headers):
    response = client.post(
        "/api/products/upload",
        files={"excel_file": ("products.csv", b"Name,Price\nCap,5\n", "text/csv")},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Only .xlsx files are allowed"


def test_upload_names_legacy_xls_as_unsupported(client, admin_headers):
    response = client.post(
        "/api/products/upload",
        files={"excel_file": ("products.xls", b"\xd0\xcf\x11\xe0", "application/vnd.ms-excel")},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == ".xls is not supported; save the sheet as .xlsx"


def test_upload_rejects_corrupt_workbook(client, admin_headers):
    response = client.post(
        "/api/products/upload",
        files={"excel_file": ("products.xlsx", b"not a zip", XLSX_MEDIA_TYPE)},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid Excel file"


def test_upload_requires_admin(client, client_headers):
    content = _xlsx([["Name"], ["Cap"]])
    response = client.post(
        "/api/products/upload",
        files={"excel_file": ("products.xlsx", content, XLSX_MEDIA_TYPE)},
        headers=client_headers,
    )
    assert response.status_code == 403
