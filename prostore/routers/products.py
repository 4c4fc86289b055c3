from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile as StarletteUploadFile

from prostore import schemas
from prostore.auth.dependencies import get_current_identity, require_admin
from prostore.db import get_db
from prostore.errors import CatalogError, error_response
from prostore.services import spreadsheets
from prostore.services.product_query import ProductListParams
from prostore.services.products import (
    ImageUpload,
    create_product,
    delete_product,
    get_product,
    list_products,
    update_product,
)
from prostore.services.spec_sheet import build_spec_sheet, spec_sheet_filename

router = APIRouter(prefix="/products", tags=["products"])

PRODUCT_FORM_FIELDS = ("name", "price", "stock", "brand_id", "model_id", "color_id", "size_id")


async def _read_image(upload) -> ImageUpload | None:
    if not isinstance(upload, StarletteUploadFile) or not upload.filename:
        return None
    contents = await upload.read()
    return ImageUpload(contents=contents, content_type=upload.content_type, filename=upload.filename)


@router.get("", response_model=schemas.ProductPageOut)
def list_products_endpoint(
    search: Optional[str] = None,
    brand_id: Optional[str] = None,
    color_id: Optional[str] = None,
    min_price: Optional[str] = None,
    max_price: Optional[str] = None,
    sort: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Session = Depends(get_db),
):
    # parâmetros chegam como texto; valores inválidos caem no padrão
    params = ProductListParams(
        search=search,
        brand_id=brand_id,
        color_id=color_id,
        min_price=min_price,
        max_price=max_price,
        sort=sort,
        page=page,
        limit=limit,
    )
    return list_products(db, params)


@router.get("/export")
def export_products_endpoint(
    search: Optional[str] = None,
    brand_id: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(get_current_identity),
):
    content = spreadsheets.export_products(db, search=search, brand_id=brand_id)
    return Response(
        content=content,
        media_type=spreadsheets.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{spreadsheets.EXPORT_FILENAME}"'},
    )


@router.post("/upload", response_model=schemas.ImportReportOut, status_code=status.HTTP_201_CREATED)
def upload_products_endpoint(
    excel_file: UploadFile = File(...),
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    if not spreadsheets.is_xlsx_upload(excel_file.filename, excel_file.content_type):
        if (excel_file.filename or "").lower().endswith(".xls"):
            raise HTTPException(status_code=400, detail=".xls is not supported; save the sheet as .xlsx")
        raise HTTPException(status_code=400, detail="Only .xlsx files are allowed")
    contents = excel_file.file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="No Excel file uploaded")
    report = spreadsheets.import_products(db, contents)
    return report.as_dict()


@router.post("", response_model=schemas.ProductOut, status_code=status.HTTP_201_CREATED)
async def create_product_endpoint(
    background: BackgroundTasks,
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    brand_id: Optional[str] = Form(None),
    model_id: Optional[str] = Form(None),
    color_id: Optional[str] = Form(None),
    size_id: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    fields = {
        "name": name,
        "price": price,
        "stock": stock,
        "brand_id": brand_id,
        "model_id": model_id,
        "color_id": color_id,
        "size_id": size_id,
    }
    upload = await _read_image(image)
    try:
        product = await run_in_threadpool(create_product, db, fields, background.add_task, upload)
    except CatalogError as exc:
        # mantém a limpeza da imagem agendada mesmo na resposta de erro
        return error_response(exc, background=background)
    return product


@router.put("/{product_id}", response_model=schemas.ProductOut)
async def update_product_endpoint(
    product_id: str,
    request: Request,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    # Form(None) não distingue campo ausente de campo vazio; vazio limpa a associação
    form = await request.form()
    fields = {key: form[key] for key in PRODUCT_FORM_FIELDS if key in form and isinstance(form[key], str)}
    upload = await _read_image(form.get("image"))
    try:
        product = await run_in_threadpool(update_product, db, product_id, fields, background.add_task, upload)
    except CatalogError as exc:
        return error_response(exc, background=background)
    return product


@router.delete("/{product_id}", response_model=schemas.DeletedOut)
def delete_product_endpoint(
    product_id: str,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    deleted_id = delete_product(db, product_id, background.add_task)
    return schemas.DeletedOut(message="Product deleted", id=deleted_id)


@router.get("/{product_id}/pdf")
def product_pdf_endpoint(
    product_id: str,
    db: Session = Depends(get_db),
    _=Depends(get_current_identity),
):
    product = get_product(db, product_id)
    pdf = build_spec_sheet(product)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{spec_sheet_filename(product)}"'},
    )
