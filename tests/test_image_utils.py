import pytest
from PIL import Image as pilimage
from PySide6.QtGui import QImage

from conftest import make_tile, same_pixels
from markertiles.utils.image import (ASSETS_DIR, TileDecodeError, find_bundled_tile,
                                     load_bundled_tile, pil_to_qimage, read_image_file,
                                     save_png, to_qimage)


def test_bundled_default_tiles_decode():
    for name in ('tile1', 'tile2'):
        assert find_bundled_tile(name) is not None
        qimage = load_bundled_tile(name)
        assert qimage is not None
        assert (qimage.width(), qimage.height()) == (16, 16)
    assert not same_pixels(load_bundled_tile('tile1'), load_bundled_tile('tile2'))


def test_unknown_bundled_tile_is_none(tmp_path):
    assert find_bundled_tile('tile9') is None
    (tmp_path / 'notes.txt').write_text('tile')
    assert load_bundled_tile('notes', tmp_path) is None
    assert ASSETS_DIR.is_dir()


def test_save_and_read_png(tmp_path):
    path = tmp_path / 'tile.png'
    assert save_png(make_tile('#336699'), path)
    assert path.read_bytes()[:8] == b'\x89PNG\r\n\x1a\n'
    assert same_pixels(read_image_file(path), make_tile('#336699'))


def test_read_image_file_falls_back_to_pillow(tmp_path):
    # Qt has no PCX reader; Pillow does.
    path = tmp_path / 'tile.pcx'
    pilimage.new('RGB', (2, 2), (0, 0, 255)).save(path)

    qimage = read_image_file(path)

    assert qimage is not None
    assert qimage.pixelColor(1, 1).name() == '#0000ff'


def test_pil_to_qimage_keeps_alpha():
    qimage = pil_to_qimage(pilimage.new('RGBA', (2, 1), (10, 20, 30, 40)))
    color = qimage.pixelColor(0, 0)
    assert (color.red(), color.green(), color.blue(), color.alpha()) == (10, 20, 30, 40)


def test_to_qimage_rejects_unsupported_sources(tmp_path):
    qimage = make_tile('#ffffff')
    assert to_qimage(qimage) is qimage
    with pytest.raises(TileDecodeError):
        to_qimage(QImage())
    with pytest.raises(TileDecodeError):
        to_qimage(tmp_path / 'missing.png')
    with pytest.raises(TileDecodeError):
        to_qimage(b'bytes')
