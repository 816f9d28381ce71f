import pytest
from PySide6.QtGui import QColor, QImage

from markertiles.models.image_store import ImageStore
from markertiles.utils.settings import Settings


def make_tile(color: str, width: int = 4, height: int = 4) -> QImage:
    qimage = QImage(width, height, QImage.Format.Format_ARGB32)
    qimage.fill(QColor(color))
    return qimage


def same_pixels(first: QImage, second: QImage) -> bool:
    fmt = QImage.Format.Format_ARGB32
    return first.convertToFormat(fmt) == second.convertToFormat(fmt)


@pytest.fixture
def tile_settings(tmp_path):
    return Settings(tmp_path / 'markertiles.ini')


@pytest.fixture
def storage_root(tmp_path):
    return tmp_path / 'storage'


@pytest.fixture
def make_store(storage_root, tile_settings):
    stores = []

    def _make(**kwargs):
        kwargs.setdefault('storage_root', storage_root)
        kwargs.setdefault('settings_', tile_settings)
        store = ImageStore(**kwargs)
        stores.append(store)
        return store

    yield _make
    for store in stores:
        store.shutdown()
