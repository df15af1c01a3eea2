# backend/routes/stock.py
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.stock_item import StockItem
from services.photos import PhotoStore, UploadedImage
from services.stock_items import StockItemRepository
from utils.audit import write_log
from utils.errors import ValidationError, request_errors_to_dict
from utils.storage import LocalStorage, get_storage
import schemas.stock_item as stock_schemas

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Stock"])


# ---- DEPENDENCIES ----
def get_photo_store(db: Session = Depends(get_db), storage: LocalStorage = Depends(get_storage)) -> PhotoStore:
    return PhotoStore(db, storage)


def get_repository(db: Session = Depends(get_db), photos: PhotoStore = Depends(get_photo_store)) -> StockItemRepository:
    return StockItemRepository(db, photos)


# ---- HELPERS ----
def _epoch_ms(value: Optional[datetime]) -> int:
    if value is None:
        return 0
    # SQLite hands timestamps back without tzinfo; they are stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def _serialize(item: StockItem, photos: PhotoStore) -> stock_schemas.StockItemOut:
    return stock_schemas.StockItemOut(
        id=item.id,
        name=item.name,
        category=item.category or "",
        qty=item.qty,
        min_qty=item.min_qty,
        location=item.location or "",
        notes=item.notes or "",
        low_stock=item.low_stock,
        photos=[photos.url(p) for p in item.photos],
        photo_ids=[p.id for p in item.photos],
        created_at=_epoch_ms(item.created_at),
        updated_at=_epoch_ms(item.updated_at),
    )


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _validate_form(raw: Dict[str, Optional[str]], errors: Dict[str, List[str]]) -> Optional[dict]:
    try:
        return stock_schemas.StockItemForm.model_validate(raw).model_dump()
    except PydanticValidationError as e:
        for field, messages in request_errors_to_dict(e.errors()).items():
            errors.setdefault(field, []).extend(messages)
        return None


def _read_uploads(files: List[UploadFile], errors: Dict[str, List[str]]) -> List[UploadedImage]:
    """Check count, content type and size of every upload, collecting all problems."""
    # Browsers submit an empty part when no file was picked
    files = [f for f in files if f is not None and f.filename]

    if len(files) > settings.MAX_PHOTOS:
        errors.setdefault("photos", []).append(
            f"The photos field must not have more than {settings.MAX_PHOTOS} items."
        )
        # The request is rejected anyway, so none of the bodies are read
        return []

    images = []
    for i, f in enumerate(files):
        field = f"photos.{i}"
        try:
            data = f.file.read(settings.MAX_UPLOAD_BYTES + 1)
        finally:
            f.file.close()

        if not (f.content_type or "").lower().startswith("image/"):
            errors.setdefault(field, []).append(f"The {field} field must be an image.")
        if len(data) > settings.MAX_UPLOAD_BYTES:
            errors.setdefault(field, []).append(
                f"The {field} field must not be greater than {settings.MAX_UPLOAD_BYTES // 1024} kilobytes."
            )
        images.append(UploadedImage(data=data, content_type=f.content_type, filename=f.filename))
    return images


async def read_quantity(request: Request) -> stock_schemas.QuantityUpdate:
    """Quantity body sent either as JSON or as a form field."""
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith("application/json"):
        try:
            raw = await request.json()
        except ValueError:
            raise ValidationError({"qty": ["The request body must be valid JSON."]})
    else:
        raw = dict(await request.form())

    if not isinstance(raw, dict):
        raw = {}
    try:
        return stock_schemas.QuantityUpdate.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(request_errors_to_dict(e.errors()))


def _parse_kept_ids(raw: List[str], allowed: List[int], errors: Dict[str, List[str]]) -> List[int]:
    kept = []
    for i, value in enumerate(raw):
        field = f"kept_photo_ids.{i}"
        try:
            photo_id = int(str(value).strip())
        except ValueError:
            errors.setdefault(field, []).append(f"The {field} field must be an integer.")
            continue
        if photo_id not in allowed:
            errors.setdefault(field, []).append(f"The selected {field} is invalid.")
            continue
        kept.append(photo_id)
    return kept


# ==========================================
#  LISTA
# ==========================================
@router.get("", response_model=stock_schemas.StockItemList)
def list_items(repo: StockItemRepository = Depends(get_repository)):
    """All stock items sorted by name, each with its ordered photos."""
    items = repo.list_items()
    return {"items": [_serialize(item, repo.photos) for item in items]}


@router.get("/categories", response_model=List[str])
def list_categories(repo: StockItemRepository = Depends(get_repository)):
    return repo.categories()


@router.get("/{item_id}", response_model=stock_schemas.StockItemOut)
def get_item(item_id: int, repo: StockItemRepository = Depends(get_repository)):
    return _serialize(repo.get(item_id), repo.photos)


# ==========================================
#  DODAWANIE
# ==========================================
@router.post("", status_code=201, response_model=stock_schemas.ActionResult)
def create_item(
    request: Request,
    name: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    qty: Optional[str] = Form(None),
    min_qty: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    photos: Optional[List[UploadFile]] = File(None),
    photos_list: Optional[List[UploadFile]] = File(None, alias="photos[]"),
    db: Session = Depends(get_db),
    repo: StockItemRepository = Depends(get_repository),
):
    errors: Dict[str, List[str]] = {}
    fields = _validate_form(
        {"name": name, "category": category, "qty": qty, "min_qty": min_qty,
         "location": location, "notes": notes},
        errors,
    )
    images = _read_uploads((photos or []) + (photos_list or []), errors)
    if errors:
        raise ValidationError(errors)

    item = repo.create(fields, images)

    write_log(
        db, action="STOCK_CREATE", resource="stock", status="SUCCESS", ip=_client_ip(request),
        meta={"id": item.id, "name": item.name, "photos": len(item.photos)},
    )
    return {"type": "success", "message": "Item added to stock."}


# ==========================================
#  EDYCJA (multipart, dlatego POST)
# ==========================================
@router.post("/{item_id}", response_model=stock_schemas.ActionResult)
def update_item(
    item_id: int,
    request: Request,
    name: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    qty: Optional[str] = Form(None),
    min_qty: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    kept_photo_ids: Optional[List[str]] = Form(None),
    kept_photo_ids_list: Optional[List[str]] = Form(None, alias="kept_photo_ids[]"),
    photos: Optional[List[UploadFile]] = File(None),
    photos_list: Optional[List[UploadFile]] = File(None, alias="photos[]"),
    db: Session = Depends(get_db),
    repo: StockItemRepository = Depends(get_repository),
):
    item = repo.get(item_id)

    errors: Dict[str, List[str]] = {}
    fields = _validate_form(
        {"name": name, "category": category, "qty": qty, "min_qty": min_qty,
         "location": location, "notes": notes},
        errors,
    )
    kept = _parse_kept_ids(
        (kept_photo_ids or []) + (kept_photo_ids_list or []), [p.id for p in item.photos], errors
    )
    images = _read_uploads((photos or []) + (photos_list or []), errors)
    if errors:
        raise ValidationError(errors)

    updated = repo.update_with_photos(item_id, fields, kept, images)

    write_log(
        db, action="STOCK_UPDATE", resource="stock", status="SUCCESS", ip=_client_ip(request),
        meta={"id": updated.id, "kept": kept, "added": len(images), "photos": len(updated.photos)},
    )
    return {"type": "success", "message": "Item updated."}


# ==========================================
#  SZYBKA ZMIANA ILOŚCI
# ==========================================
@router.patch("/{item_id}/qty", response_model=stock_schemas.ActionResult)
def update_quantity(
    item_id: int,
    request: Request,
    payload: stock_schemas.QuantityUpdate = Depends(read_quantity),
    db: Session = Depends(get_db),
    repo: StockItemRepository = Depends(get_repository),
):
    repo.update_quantity(item_id, payload.qty)

    write_log(
        db, action="STOCK_QTY_UPDATE", resource="stock", status="SUCCESS", ip=_client_ip(request),
        meta={"id": item_id, "qty": payload.qty},
    )
    return {"type": "success", "message": "Quantity updated."}


# ==========================================
#  USUWANIE
# ==========================================
@router.delete("/{item_id}", response_model=stock_schemas.ActionResult)
def delete_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    repo: StockItemRepository = Depends(get_repository),
):
    repo.delete(item_id)

    write_log(
        db, action="STOCK_DELETE", resource="stock", status="SUCCESS", ip=_client_ip(request),
        meta={"id": item_id},
    )
    return {"type": "success", "message": "Item deleted from stock."}
