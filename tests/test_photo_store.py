import pytest

from conftest import FailingDeleteStorage, FailingPutStorage, make_upload
from models.stock_item import StockItem, StockItemPhoto
from services.photos import PhotoStore, UploadedImage
from utils.errors import StorageError, TooManyPhotos, UnsupportedImage


@pytest.fixture
def item(db):
    item = StockItem(name='Correia A-42', category='Correias', qty=12, min_qty=5, location='Gaveta B3', notes='')
    db.add(item)
    db.commit()
    return item


def _add(photo_store, db, item_id, count):
    photos = [photo_store.add_photo(item_id, make_upload()) for _ in range(count)]
    db.commit()
    photo_store.mark_committed()
    return photos


def test_add_photo_assigns_positions_and_writes_webp(photo_store, storage, db, item):
    first, second = _add(photo_store, db, item.id, 2)

    assert [first.sort_order, second.sort_order] == [0, 1]
    for photo in (first, second):
        assert photo.path.startswith('stock-photos/')
        assert photo.path.endswith('.webp')
        assert storage.exists(photo.path)
    assert first.path != second.path
    assert photo_store.url(first) == f'/storage/{first.path}'


def test_add_photo_refuses_sixth_photo(photo_store, db, item):
    _add(photo_store, db, item.id, 5)

    with pytest.raises(TooManyPhotos):
        photo_store.add_photo(item.id, make_upload())
    assert photo_store.count(item.id) == 5


def test_list_photos_is_ordered_by_position(photo_store, db, item):
    photos = _add(photo_store, db, item.id, 3)
    # Scramble insertion order in the table
    photos[0].sort_order, photos[2].sort_order = 2, 0
    db.commit()

    listed = photo_store.list_photos(item.id)

    assert [p.sort_order for p in listed] == [0, 1, 2]
    assert listed[0].id == photos[2].id


def test_remove_photo_deletes_file_then_record(photo_store, storage, db, item):
    photos = _add(photo_store, db, item.id, 3)
    doomed_id, doomed_path = photos[0].id, photos[0].path

    photo_store.remove_photo(doomed_id)

    assert not storage.exists(doomed_path)
    assert db.query(StockItemPhoto).filter(StockItemPhoto.id == doomed_id).first() is None
    # Remaining photos keep their order with dense positions
    remaining = photo_store.list_photos(item.id)
    assert [p.id for p in remaining] == [photos[1].id, photos[2].id]
    assert [p.sort_order for p in remaining] == [0, 1]


def test_remove_photo_keeps_record_when_storage_fails(db, storage, item):
    store = PhotoStore(db, storage, max_photos=5)
    photo = store.add_photo(item.id, make_upload())
    db.commit()

    failing = PhotoStore(db, FailingDeleteStorage(storage.root, '/storage'), max_photos=5)
    with pytest.raises(StorageError):
        failing.remove_photo(photo.id)

    assert storage.exists(photo.path)
    assert failing.count(item.id) == 1


def test_remove_photo_tolerates_missing_file(photo_store, storage, db, item):
    photo = _add(photo_store, db, item.id, 1)[0]
    storage.path(photo.path).unlink()

    photo_store.remove_photo(photo.id)

    assert photo_store.count(item.id) == 0


def test_replace_with_no_kept_photos_starts_over(photo_store, storage, db, item):
    old_paths = [p.path for p in _add(photo_store, db, item.id, 3)]

    result = photo_store.replace_photo_set(item.id, [], [make_upload(), make_upload('JPEG', 'image/jpeg')])
    db.commit()

    assert len(result) == 2
    assert [p.sort_order for p in result] == [0, 1]
    assert not any(storage.exists(path) for path in old_paths)


def test_replace_keeps_selected_photos_and_appends(photo_store, db, item):
    old = _add(photo_store, db, item.id, 3)

    result = photo_store.replace_photo_set(item.id, [old[0].id, old[2].id], [make_upload()])
    db.commit()

    assert [p.id for p in result[:2]] == [old[0].id, old[2].id]
    assert [p.sort_order for p in result] == [0, 1, 2]


def test_replace_silently_drops_images_over_cap(photo_store, db, item):
    old = _add(photo_store, db, item.id, 3)

    result = photo_store.replace_photo_set(item.id, [p.id for p in old], [make_upload() for _ in range(4)])
    db.commit()

    assert len(result) == 5
    assert [p.sort_order for p in result] == [0, 1, 2, 3, 4]


def test_replace_rejects_overflow_when_configured(db, storage, item):
    store = PhotoStore(db, storage, max_photos=5, reject_overflow=True)
    old = [store.add_photo(item.id, make_upload()) for _ in range(4)]
    db.commit()

    with pytest.raises(TooManyPhotos):
        store.replace_photo_set(item.id, [p.id for p in old], [make_upload(), make_upload()])

    assert store.count(item.id) == 4


def test_replace_with_corrupt_upload_changes_nothing(photo_store, storage, db, item):
    old = _add(photo_store, db, item.id, 2)
    corrupt = UploadedImage(data=b'not an image', content_type='image/png')

    with pytest.raises(UnsupportedImage):
        photo_store.replace_photo_set(item.id, [], [make_upload(), corrupt])

    assert [p.id for p in photo_store.list_photos(item.id)] == [p.id for p in old]
    assert all(storage.exists(p.path) for p in old)


def test_discard_pending_blobs_removes_uncommitted_files(photo_store, storage, db, item):
    photo = photo_store.add_photo(item.id, make_upload())
    path = photo.path
    db.rollback()

    photo_store.discard_pending_blobs()

    assert not storage.exists(path)
    assert photo_store.count(item.id) == 0


def test_replace_with_failing_write_keeps_existing_photos(db, storage, item):
    store = PhotoStore(db, storage, max_photos=5)
    old = [store.add_photo(item.id, make_upload()) for _ in range(2)]
    db.commit()
    store.mark_committed()
    old_ids, old_paths = [p.id for p in old], [p.path for p in old]

    failing = PhotoStore(db, FailingPutStorage(storage.root, '/storage'), max_photos=5)
    with pytest.raises(StorageError):
        failing.replace_photo_set(item.id, [], [make_upload()])
    db.rollback()

    assert [p.id for p in failing.list_photos(item.id)] == old_ids
    assert all(storage.exists(path) for path in old_paths)
