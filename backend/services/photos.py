# backend/services/photos.py
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from config import settings
from models.stock_item import StockItemPhoto
from utils.errors import StorageError, TooManyPhotos
from utils.images import NormalizedImage, normalize_image
from utils.storage import LocalStorage, new_photo_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedImage:
    data: bytes
    content_type: Optional[str] = None
    filename: Optional[str] = None


@dataclass
class PhotoReplacement:
    """A photo-set change that has been checked and normalized but not applied yet."""
    item_id: int
    doomed_ids: List[int]
    images: List[NormalizedImage]
    dropped: int = 0


class PhotoStore:
    """Ordered photos of stock items together with the files behind them.

    Blobs written since the last commit are remembered so a caller that rolls
    back the session can also drop the files with ``discard_pending_blobs``.
    """

    def __init__(self, db: Session, storage: LocalStorage, max_photos: Optional[int] = None,
                 reject_overflow: Optional[bool] = None):
        self.db = db
        self.storage = storage
        self.max_photos = settings.MAX_PHOTOS if max_photos is None else max_photos
        self.reject_overflow = settings.REJECT_PHOTO_OVERFLOW if reject_overflow is None else reject_overflow
        self._pending_keys: List[str] = []

    # ---- queries ----
    def list_photos(self, item_id: int) -> List[StockItemPhoto]:
        return (
            self.db.query(StockItemPhoto)
            .filter(StockItemPhoto.stock_item_id == item_id)
            .order_by(StockItemPhoto.sort_order.asc(), StockItemPhoto.id.asc())
            .all()
        )

    def count(self, item_id: int) -> int:
        return self.db.query(StockItemPhoto).filter(StockItemPhoto.stock_item_id == item_id).count()

    def url(self, photo: StockItemPhoto) -> str:
        return self.storage.url(photo.path)

    # ---- mutations ----
    def add_photo(self, item_id: int, image: UploadedImage) -> StockItemPhoto:
        position = self.count(item_id)
        if position >= self.max_photos:
            raise TooManyPhotos(f"An item can hold at most {self.max_photos} photos")
        normalized = normalize_image(image.data, image.content_type)
        return self._append(item_id, normalized, position)

    def add_photos(self, item_id: int, images: Sequence[UploadedImage]) -> List[StockItemPhoto]:
        """Append several uploads, decoding all of them before anything is written."""
        position = self.count(item_id)
        if position + len(images) > self.max_photos:
            raise TooManyPhotos(f"An item can hold at most {self.max_photos} photos")
        normalized = [normalize_image(i.data, i.content_type) for i in images]
        return self._append_all(item_id, normalized, position)

    def remove_photo(self, photo_id: int) -> None:
        """Delete the file, then the record. A storage failure leaves both in place."""
        photo = self.db.query(StockItemPhoto).filter(StockItemPhoto.id == photo_id).first()
        if photo is None:
            return
        item_id = photo.stock_item_id

        # StorageError propagates before the record is touched
        self.storage.delete(photo.path)

        self.db.delete(photo)
        self.db.flush()
        self._compact(item_id)
        # Blobs staged for a later record stay pending; this commit does not cover them
        self.db.commit()
        logger.info("Removed photo %s of stock item %s", photo_id, item_id)

    def prepare_replacement(self, item_id: int, kept_photo_ids: Iterable[int],
                            new_images: Sequence[UploadedImage]) -> PhotoReplacement:
        kept = set(kept_photo_ids or [])
        existing = self.list_photos(item_id)
        doomed = [p.id for p in existing if p.id not in kept]

        room = max(self.max_photos - (len(existing) - len(doomed)), 0)
        dropped = max(len(new_images) - room, 0)
        if dropped and self.reject_overflow:
            raise TooManyPhotos(f"An item can hold at most {self.max_photos} photos")

        normalized = [normalize_image(i.data, i.content_type) for i in new_images[:room]]
        return PhotoReplacement(item_id=item_id, doomed_ids=doomed, images=normalized, dropped=dropped)

    def apply_replacement(self, replacement: PhotoReplacement) -> List[StockItemPhoto]:
        """Write the new blobs, remove the doomed photos, then record the new ones.

        A failed write aborts before any photo is removed. Each removal is
        committed on its own; the new records are only flushed.
        """
        keys = [self._put(image) for image in replacement.images]

        for photo_id in replacement.doomed_ids:
            self.remove_photo(photo_id)

        if replacement.dropped:
            logger.warning(
                "Dropped %s photo(s) over the %s-photo cap for stock item %s",
                replacement.dropped, self.max_photos, replacement.item_id,
            )

        position = self.count(replacement.item_id)
        for offset, key in enumerate(keys):
            self._record(replacement.item_id, key, position + offset)
        return self.list_photos(replacement.item_id)

    def replace_photo_set(self, item_id: int, kept_photo_ids: Iterable[int],
                          new_images: Sequence[UploadedImage]) -> List[StockItemPhoto]:
        """Keep only ``kept_photo_ids`` and append ``new_images`` up to the cap.

        Added records are flushed, not committed.
        """
        return self.apply_replacement(self.prepare_replacement(item_id, kept_photo_ids, new_images))

    # ---- unit-of-work helpers ----
    def mark_committed(self) -> None:
        self._pending_keys.clear()

    def discard_pending_blobs(self) -> None:
        """Delete files written since the last commit; call after a rollback."""
        keys, self._pending_keys = self._pending_keys, []
        for key in keys:
            try:
                self.storage.delete(key)
            except StorageError:
                logger.exception("Could not remove orphaned blob %s", key)

    # ---- internals ----
    def _put(self, image: NormalizedImage) -> str:
        key = new_photo_key(image.extension)
        self.storage.put(key, image.data)
        self._pending_keys.append(key)
        return key

    def _append(self, item_id: int, image: NormalizedImage, position: int) -> StockItemPhoto:
        return self._record(item_id, self._put(image), position)

    def _record(self, item_id: int, key: str, position: int) -> StockItemPhoto:
        photo = StockItemPhoto(stock_item_id=item_id, path=key, sort_order=position)
        self.db.add(photo)
        self.db.flush()
        return photo

    def _append_all(self, item_id: int, images: Sequence[NormalizedImage], position: int) -> List[StockItemPhoto]:
        return [self._append(item_id, image, position + offset) for offset, image in enumerate(images)]

    def _compact(self, item_id: int) -> None:
        # Keep positions dense so the next append (position = count) stays unique
        for position, photo in enumerate(self.list_photos(item_id)):
            if photo.sort_order != position:
                photo.sort_order = position
        self.db.flush()
