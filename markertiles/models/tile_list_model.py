from PySide6.QtCore import QAbstractListModel, QModelIndex, QSize, Qt

from markertiles.models.image_store import ImageStore
from markertiles.utils.image import TileList
from markertiles.utils.settings import DEFAULT_SETTINGS, Settings, settings


class TileListModel(QAbstractListModel):
    """Exposes one tile list of an ImageStore to Qt item views."""

    def __init__(self, image_store: ImageStore,
                 tile_list: TileList = TileList.PRIMARY,
                 settings_: Settings | None = None):
        super().__init__()
        self.image_store = image_store
        self.tile_list = tile_list
        self._settings = settings_ if settings_ is not None else settings
        self.image_list_image_width = self._settings.value(
            'tile_list_image_width',
            defaultValue=DEFAULT_SETTINGS['tile_list_image_width'], type=int)

        if tile_list == TileList.PAGINATION:
            image_store.pagination_changed.connect(self._on_tiles_changed)
        else:
            image_store.primary_changed.connect(self._on_tiles_changed)
        self._settings.change.connect(self._on_setting_changed)

    def rowCount(self, parent=QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return self.image_store.count(self.tile_list)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        if not index.isValid():
            return None
        images = self.image_store.images(self.tile_list)
        row = index.row()
        if row < 0 or row >= len(images):
            return None

        qimage = images[row]
        if role == Qt.ItemDataRole.DisplayRole:
            return f'Tile {row + 1}'
        elif role == Qt.ItemDataRole.DecorationRole:
            return qimage
        elif role == Qt.ItemDataRole.SizeHintRole:
            width, height = qimage.width(), qimage.height()
            if width > 0 and height > 0:
                scaled_height = int(self.image_list_image_width * height / width)
                return QSize(self.image_list_image_width, scaled_height)
            return QSize(self.image_list_image_width, self.image_list_image_width)
        return None

    def _on_tiles_changed(self):
        self.beginResetModel()
        self.endResetModel()

    def _on_setting_changed(self, key: str, value):
        if key != 'tile_list_image_width':
            return
        self.image_list_image_width = int(value)
        self.layoutChanged.emit()
