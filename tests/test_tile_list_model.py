from PySide6.QtCore import QModelIndex, QSize, Qt

from conftest import make_tile, same_pixels
from markertiles.models.tile_list_model import TileListModel
from markertiles.utils.image import TileList


def test_model_rows_follow_store(make_store, tile_settings):
    store = make_store(default_tiles=[])
    model = TileListModel(store, settings_=tile_settings)
    resets = []
    model.modelReset.connect(lambda: resets.append(True))
    assert model.rowCount() == 0

    store.insert_primary(make_tile('#ff0000'))
    store.insert_primary(make_tile('#00ff00'))

    assert model.rowCount() == 2
    assert resets == [True, True]
    assert model.rowCount(model.index(0, 0)) == 0


def test_model_data_roles(make_store, tile_settings):
    store = make_store(default_tiles=[])
    store.insert_primary(make_tile('#ff0000', width=8, height=4))
    model = TileListModel(store, settings_=tile_settings)
    index = model.index(0, 0)

    assert model.data(index, Qt.ItemDataRole.DisplayRole) == 'Tile 1'
    assert same_pixels(model.data(index, Qt.ItemDataRole.DecorationRole),
                       make_tile('#ff0000', width=8, height=4))
    assert model.data(index, Qt.ItemDataRole.SizeHintRole) == QSize(120, 60)
    assert model.data(QModelIndex()) is None
    assert model.data(index, Qt.ItemDataRole.ToolTipRole) is None


def test_pagination_model_ignores_primary_changes(make_store, tile_settings):
    store = make_store()
    model = TileListModel(store, TileList.PAGINATION, settings_=tile_settings)
    assert model.rowCount() == 1

    store.insert_primary(make_tile('#ff0000'))
    assert model.rowCount() == 1

    store.insert_pagination(make_tile('#00ff00'))
    assert model.rowCount() == 2
    assert same_pixels(model.data(model.index(0, 0), Qt.ItemDataRole.DecorationRole),
                       make_tile('#00ff00'))


def test_model_tracks_width_setting(make_store, tile_settings):
    store = make_store(default_tiles=[])
    store.insert_primary(make_tile('#ff0000'))
    model = TileListModel(store, settings_=tile_settings)

    tile_settings.setValue('tile_list_image_width', 64)

    assert model.data(model.index(0, 0), Qt.ItemDataRole.SizeHintRole) == QSize(64, 64)
