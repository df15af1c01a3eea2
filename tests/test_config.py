from config import Settings


def test_defaults(monkeypatch):
    for key in ('MAX_PHOTOS', 'MAX_UPLOAD_BYTES', 'IMAGE_QUALITY', 'REJECT_PHOTO_OVERFLOW', 'PHOTO_PREFIX'):
        monkeypatch.delenv(key, raising=False)

    s = Settings(_env_file=None)

    assert s.MAX_PHOTOS == 5
    assert s.MAX_UPLOAD_BYTES == 20 * 1024 * 1024
    assert s.IMAGE_QUALITY == 80
    assert s.REJECT_PHOTO_OVERFLOW is False
    assert s.PHOTO_PREFIX == 'stock-photos'


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('REJECT_PHOTO_OVERFLOW', 'true')
    monkeypatch.setenv('MAX_UPLOAD_BYTES', '1024')

    s = Settings(_env_file=None)

    assert s.REJECT_PHOTO_OVERFLOW is True
    assert s.MAX_UPLOAD_BYTES == 1024
