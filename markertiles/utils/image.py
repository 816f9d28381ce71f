from enum import Enum
from pathlib import Path

from PIL import Image as pilimage  # Import Pillow's Image class
from PySide6.QtGui import QImage, QImageReader

ASSETS_DIR = Path(__file__).resolve().parent.parent / 'assets'


class TileDecodeError(ValueError):
    """Raised when an image source cannot be decoded into a tile."""


class TileList(str, Enum):
    """The two tile lists; the value doubles as the stored filename prefix."""
    PRIMARY = 'image'
    PAGINATION = 'pagination'

    def file_name(self, index: int) -> str:
        return f'{self.value}{index}.png'

    @classmethod
    def for_file_name(cls, file_name: str) -> 'TileList':
        if cls.PAGINATION.value in file_name:
            return cls.PAGINATION
        return cls.PRIMARY


def pil_to_qimage(pil_image):
    """Convert PIL image to QImage properly"""
    pil_image = pil_image.convert("RGBA")
    data = pil_image.tobytes("raw", "RGBA")
    qimage = QImage(data, pil_image.width, pil_image.height, QImage.Format_RGBA8888)
    # Detach from the Python buffer, which is released after this call.
    return qimage.copy()


def read_image_file(path: Path) -> QImage | None:
    """
    Decode an image file, trying Qt first and Pillow second.

    Returns:
        The decoded QImage, or None if neither reader understands the file.
    """
    image_reader = QImageReader(str(path))
    # Rotate the image based on the orientation tag.
    image_reader.setAutoTransform(True)
    qimage = image_reader.read()
    if not qimage.isNull():
        return qimage
    try:
        with pilimage.open(path) as pil_image:
            return pil_to_qimage(pil_image)
    except (OSError, ValueError):
        return None


def to_qimage(source) -> QImage:
    """Accept a QImage, a Pillow image or a file path and return a QImage."""
    if isinstance(source, QImage):
        if source.isNull():
            raise TileDecodeError('Cannot store a null image')
        return source
    if isinstance(source, pilimage.Image):
        return pil_to_qimage(source)
    if isinstance(source, (str, Path)):
        qimage = read_image_file(Path(source))
        if qimage is None:
            raise TileDecodeError(f'Could not decode image file {source}')
        return qimage
    raise TileDecodeError(f'Unsupported image source: {type(source).__name__}')


def save_png(qimage: QImage, path: Path) -> bool:
    """Write the image as PNG. Returns False if Qt could not write it."""
    return qimage.save(str(path), 'PNG')


def find_bundled_tile(name: str, assets_dir: Path = ASSETS_DIR) -> Path | None:
    """Locate a bundled asset by name, whatever its extension."""
    supported = {fmt.data().decode().lower()
                 for fmt in QImageReader.supportedImageFormats()}
    for candidate in sorted(assets_dir.glob(f'{name}.*')):
        if candidate.suffix.lstrip('.').lower() in supported:
            return candidate
    return None


def load_bundled_tile(name: str, assets_dir: Path = ASSETS_DIR) -> QImage | None:
    path = find_bundled_tile(name, assets_dir)
    if path is None:
        return None
    return read_image_file(path)
