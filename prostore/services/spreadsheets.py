"""
Exportação e carga massiva de produtos em planilhas Excel (.xlsx).

A carga lê a primeira aba, mapeia cabeçalhos conhecidos para campos do
produto e grava cada linha válida de forma independente. Linhas que falham
são reportadas; nada é refeito automaticamente.
"""
from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.orm import Session

from prostore.errors import CatalogError, ValidationError
from prostore.resources import SortKey
from prostore.services.product_query import build_filter
from prostore.services.products import REFERENCE_FIELDS, ensure_valid_numbers, product_store

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_FILENAME = "products_report.xlsx"

EXPORT_COLUMNS = (
    ("ID", 38),
    ("Name", 40),
    ("Brand", 20),
    ("Model", 20),
    ("Color", 20),
    ("Size", 12),
    ("Price", 15),
    ("Stock", 10),
)
PRICE_FORMAT = '"$"#,##0.00'
HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF4F46E5")
HEADER_FONT = Font(bold=True, color="FFFFFFFF")

HEADER_ALIASES = {
    "product name": "name",
    "name": "name",
    "sale price": "price",
    "price": "price",
    "stock": "stock",
    "brand id": "brand_id",
    "model id": "model_id",
    "color id": "color_id",
    "size id": "size_id",
}
NUMERIC_FIELDS = ("price", "stock")


@dataclass
class ImportReport:
    processed: int = 0
    inserted: int = 0
    skipped_rows: list[int] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Bulk upload finished. {self.inserted} of {self.processed} processed products created."

    def as_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "inserted": self.inserted,
            "processed": self.processed,
            "skipped_rows": self.skipped_rows,
            "errors": self.errors,
        }


def _ref_name(ref) -> str:
    return ref.name if ref is not None else "N/A"


def export_products(db: Session, search: str | None = None, brand_id: str | None = None) -> bytes:
    products = product_store(db).find(
        build_filter(search=search, brand_id=brand_id),
        sort=(SortKey("created_at", descending=True),),
    )

    wb = Workbook()
    ws = wb.active
    ws.title = "Products"
    ws.append([title for title, _width in EXPORT_COLUMNS])
    for cell in ws[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")
    for index, (_title, width) in enumerate(EXPORT_COLUMNS, start=1):
        ws.column_dimensions[ws.cell(row=1, column=index).column_letter].width = width

    for product in products:
        ws.append(
            [
                product.id,
                product.name,
                _ref_name(product.brand),
                _ref_name(product.model),
                _ref_name(product.color),
                _ref_name(product.size),
                float(product.price),
                product.stock,
            ]
        )
        ws.cell(row=ws.max_row, column=7).number_format = PRICE_FORMAT

    output = io.BytesIO()
    wb.save(output)
    logger.info("Exported products count=%s", len(products))
    return output.getvalue()


def _coerce_number(value: Any) -> Decimal:
    # células não numéricas viram 0; stock só vira int depois da checagem de faixa
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal(0)
    return number if number.is_finite() else Decimal(0)


def _map_row(headers: list[str | None], row: tuple) -> dict[str, Any]:
    doc: dict[str, Any] = {}
    for header, value in zip(headers, row):
        if header is None or value is None:
            continue
        if field_name := HEADER_ALIASES.get(header):
            if field_name in NUMERIC_FIELDS:
                doc[field_name] = _coerce_number(value)
            else:
                text = str(value).strip()
                if text:
                    doc[field_name] = text
    return doc


def _read_rows(contents: bytes) -> list[tuple[int, tuple]]:
    try:
        wb = load_workbook(io.BytesIO(contents), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise ValidationError("Invalid Excel file") from exc
    try:
        ws = wb.worksheets[0]
        return [
            (number, row)
            for number, row in enumerate(ws.iter_rows(values_only=True), start=1)
            if any(cell is not None for cell in row)
        ]
    finally:
        wb.close()


def _missing_reference(db: Session, doc: dict[str, Any]) -> str | None:
    for field_name, (model, label) in REFERENCE_FIELDS.items():
        ref_id = doc.get(field_name)
        if ref_id and db.get(model, ref_id) is None:
            return f"{label} not found"
    return None


def import_products(db: Session, contents: bytes) -> ImportReport:
    rows = _read_rows(contents)
    if len(rows) <= 1:
        raise ValidationError("The Excel file is empty or only contains headers")

    _header_number, header_row = rows[0]
    headers = [str(h).strip().lower() if h is not None else None for h in header_row]
    report = ImportReport()
    candidates: list[tuple[int, dict[str, Any]]] = []
    for row_number, row in rows[1:]:
        doc = _map_row(headers, row)
        if not doc.get("name") or "price" not in doc or "stock" not in doc or not doc.get("brand_id"):
            logger.warning("Skipping row %s: missing required fields", row_number)
            report.skipped_rows.append(row_number)
            continue
        candidates.append((row_number, doc))

    if not candidates:
        raise ValidationError("No valid products found in the file")

    store = product_store(db)
    report.processed = len(candidates)
    for row_number, doc in candidates:
        reason = _missing_reference(db, doc)
        if reason:
            report.errors.append({"row": row_number, "message": reason, "data": _jsonable(doc)})
            continue
        try:
            ensure_valid_numbers(doc["price"], doc["stock"])
            store.insert({**doc, "stock": int(doc["stock"])})
        except CatalogError as exc:
            report.errors.append({"row": row_number, "message": exc.public_message, "data": _jsonable(doc)})
            continue
        report.inserted += 1

    if report.errors:
        logger.warning("Bulk upload finished with %s errors", len(report.errors))
    logger.info("Bulk upload inserted=%s processed=%s", report.inserted, report.processed)
    return report


def _jsonable(doc: dict[str, Any]) -> dict[str, Any]:
    return {key: str(value) if isinstance(value, Decimal) else value for key, value in doc.items()}


def is_xlsx_upload(filename: str | None, content_type: str | None) -> bool:
    return (filename or "").lower().endswith(".xlsx") or content_type == XLSX_MEDIA_TYPE

