# backend/services/stock_items.py
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session, selectinload

from models.stock_item import StockItem
from services.photos import PhotoStore, UploadedImage
from utils.errors import StockItemNotFound, ValidationError

logger = logging.getLogger(__name__)

# Mutable scalar columns; photos are managed through PhotoStore
SCALAR_FIELDS = ("name", "category", "qty", "min_qty", "location", "notes")


def _check_quantities(fields: dict) -> None:
    errors = {}
    for key in ("qty", "min_qty"):
        if key in fields and fields[key] is not None and fields[key] < 0:
            errors[key] = [f"The {key} field must be at least 0."]
    if errors:
        raise ValidationError(errors)


class StockItemRepository:
    def __init__(self, db: Session, photos: PhotoStore):
        self.db = db
        self.photos = photos

    def list_items(self) -> List[StockItem]:
        return (
            self.db.query(StockItem)
            .options(selectinload(StockItem.photos))
            .order_by(StockItem.name.asc(), StockItem.id.asc())
            .all()
        )

    def get(self, item_id: int) -> StockItem:
        item = (
            self.db.query(StockItem)
            .options(selectinload(StockItem.photos))
            .filter(StockItem.id == item_id)
            .first()
        )
        if item is None:
            raise StockItemNotFound(item_id)
        return item

    def categories(self) -> List[str]:
        values = (
            self.db.query(StockItem.category)
            .distinct()
            .filter(StockItem.category != None, StockItem.category != "")  # noqa: E711
            .order_by(StockItem.category.asc())
            .all()
        )
        return [v[0] for v in values]

    def create(self, fields: dict, images: Sequence[UploadedImage] = ()) -> StockItem:
        _check_quantities(fields)
        item = StockItem(**{k: fields[k] for k in SCALAR_FIELDS if k in fields})
        self.db.add(item)
        try:
            self.db.flush()
            if images:
                self.photos.add_photos(item.id, images)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.photos.discard_pending_blobs()
            raise
        self.photos.mark_committed()
        logger.info("Created stock item %s (%s) with %s photo(s)", item.id, item.name, len(images))
        return self.get(item.id)

    def update(self, item_id: int, fields: dict) -> StockItem:
        _check_quantities(fields)
        item = self.get(item_id)
        self._assign(item, fields)
        self.db.commit()
        return self.get(item_id)

    def update_with_photos(self, item_id: int, fields: dict, kept_photo_ids: Optional[Iterable[int]],
                           new_images: Sequence[UploadedImage] = ()) -> StockItem:
        """Full edit: scalar fields plus the photo set.

        Images are decoded and written before any photo is removed, and the
        scalar fields land in the final commit together with the new photo
        records, so a failure part way leaves the fields as they were.
        """
        _check_quantities(fields)
        item = self.get(item_id)
        replacement = self.photos.prepare_replacement(item.id, kept_photo_ids or [], new_images)

        try:
            self.photos.apply_replacement(replacement)
            self._assign(item, fields)
            self.db.flush()
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.photos.discard_pending_blobs()
            raise
        self.photos.mark_committed()
        self.db.expire_all()
        return self.get(item_id)

    def update_quantity(self, item_id: int, qty: int) -> None:
        _check_quantities({"qty": qty})
        # Single-row UPDATE, concurrent writers resolve as last-writer-wins
        updated = (
            self.db.query(StockItem)
            .filter(StockItem.id == item_id)
            .update(
                {StockItem.qty: qty, StockItem.updated_at: datetime.now(timezone.utc)},
                synchronize_session=False,
            )
        )
        if not updated:
            self.db.rollback()
            raise StockItemNotFound(item_id)
        self.db.commit()

    def delete(self, item_id: int) -> None:
        """Remove every photo (file first), then the item row.

        A failing photo removal propagates and leaves the item with its
        remaining photos untouched.
        """
        item = self.get(item_id)
        for photo in self.photos.list_photos(item.id):
            self.photos.remove_photo(photo.id)

        self.db.delete(item)
        self.db.commit()
        logger.info("Deleted stock item %s", item_id)

    def _assign(self, item: StockItem, fields: dict) -> None:
        for key in SCALAR_FIELDS:
            if key in fields:
                setattr(item, key, fields[key])
        # Touch even when nothing changed so the edit shows up as "recent"
        item.updated_at = datetime.now(timezone.utc)
