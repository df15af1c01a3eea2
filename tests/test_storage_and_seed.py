import pytest

from models.stock_item import StockItem
from populate_db import DEMO_ITEMS, seed_stock_items
from utils.errors import StorageError
from utils.storage import LocalStorage, new_photo_key


def test_put_url_and_delete(tmp_path):
    storage = LocalStorage(tmp_path, '/storage/')
    key = new_photo_key('webp')

    storage.put(key, b'abc')

    assert key.startswith('stock-photos/') and key.endswith('.webp')
    assert storage.path(key).read_bytes() == b'abc'
    assert storage.url(key) == f'/storage/{key}'
    # No temp files left next to the blob
    assert [p.name for p in storage.path(key).parent.iterdir()] == [storage.path(key).name]

    storage.delete(key)
    assert not storage.exists(key)
    # Deleting again is a no-op
    storage.delete(key)


def test_put_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / 'not-a-dir'
    blocker.write_bytes(b'')
    storage = LocalStorage(blocker, '/storage')

    with pytest.raises(StorageError):
        storage.put('stock-photos/x.webp', b'abc')


def test_new_photo_keys_are_unique():
    assert len({new_photo_key('webp') for _ in range(50)}) == 50


def test_seed_inserts_demo_items_once(db):
    assert seed_stock_items(db) == len(DEMO_ITEMS)
    assert seed_stock_items(db) == 0

    belt = db.query(StockItem).filter(StockItem.name == 'Correia A-42').one()
    assert (belt.qty, belt.min_qty, belt.low_stock) == (12, 5, False)
    assert db.query(StockItem).count() == len(DEMO_ITEMS)
