import io
import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'backend')))

# Settings are read at import time, so the environment has to be ready first
os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('STORAGE_DIR', tempfile.mkdtemp(prefix='stock-storage-'))
os.environ.setdefault('LOG_LEVEL', 'WARNING')

from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, enable_sqlite_foreign_keys, get_db
import models.stock_item  # noqa: F401
import models.log  # noqa: F401
from services.photos import PhotoStore, UploadedImage
from services.stock_items import StockItemRepository
from utils.errors import StorageError
from utils.storage import LocalStorage, get_storage


class FailingDeleteStorage(LocalStorage):
    """Storage whose deletes fail, as if the disk went away.

    With ``fail_on`` only that call (1-based) fails and the others go through.
    """

    def __init__(self, root, url_prefix='/storage', fail_on=None):
        super().__init__(root, url_prefix)
        self.fail_on = fail_on
        self.delete_calls = 0

    def delete(self, key):
        self.delete_calls += 1
        if self.fail_on is None or self.delete_calls == self.fail_on:
            raise StorageError(f"File delete error: storage unreachable ({key})")
        super().delete(key)


class FailingPutStorage(LocalStorage):
    """Storage that refuses every write."""

    def put(self, key, data):
        raise StorageError(f"File save error: disk full ({key})")


def stored_files(storage):
    photo_dir = storage.root / 'stock-photos'
    return sorted(p.name for p in photo_dir.iterdir()) if photo_dir.exists() else []


def make_image_bytes(fmt='PNG', size=(8, 6), mode='RGB', color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_upload(fmt='PNG', content_type='image/png', **kwargs):
    return UploadedImage(data=make_image_bytes(fmt, **kwargs), content_type=content_type, filename=f'photo.{fmt.lower()}')


@pytest.fixture(scope='function')
def engine():
    eng = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(eng)
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture(scope='function')
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope='function')
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope='function')
def storage(tmp_path):
    return LocalStorage(tmp_path / 'storage', '/storage')


@pytest.fixture(scope='function')
def photo_store(db, storage):
    return PhotoStore(db, storage, max_photos=5, reject_overflow=False)


@pytest.fixture(scope='function')
def repo(db, photo_store):
    return StockItemRepository(db, photo_store)


@pytest.fixture(scope='function')
def client(session_factory, storage):
    from fastapi.testclient import TestClient
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
