from pathlib import Path

from PySide6.QtCore import QSettings, Signal

# Defaults for settings that are accessed from multiple places.
DEFAULT_SETTINGS = {
    'storage_location': '',  # Empty = default (~/.markertiles)
    # Bundled asset names loaded on first run, in list order.
    'default_tiles': ['tile1', 'tile2'],
    'tile_list_image_width': 120,
}

# Preferred marker size keys, read by the AR session.
IMAGE_WIDTH_KEY = 'imageWidth'
IMAGE_HEIGHT_KEY = 'imageHeight'


class Settings(QSettings):
    # Signal that shows that the setting with the given string was changes
    change = Signal(str, object, name='settingsChanged')

    def __init__(self, file_path: Path | str | None = None):
        if file_path is None:
            super().__init__('markertiles', 'markertiles')
        else:
            # Explicit INI file, used for isolated sessions and tests.
            super().__init__(str(file_path), QSettings.Format.IniFormat)

    def setValue(self, key, value):
        super().setValue(key, value)
        self.change.emit(key, value)

# Common shared instance to ensure the Signal is also shared
settings = Settings()


def get_storage_root(settings_: Settings | None = None) -> Path:
    """Directory holding the durable tile files for this user."""
    settings_ = settings_ if settings_ is not None else settings
    location = settings_.value(
        'storage_location',
        defaultValue=DEFAULT_SETTINGS['storage_location'], type=str)
    if location:
        return Path(location)
    return Path.home() / '.markertiles'


def get_default_tile_names(settings_: Settings | None = None) -> list[str]:
    settings_ = settings_ if settings_ is not None else settings
    names = settings_.value(
        'default_tiles', defaultValue=DEFAULT_SETTINGS['default_tiles'],
        type=list)
    # A single stored entry comes back from INI files as a plain string.
    if isinstance(names, str):
        names = [names]
    return [str(name) for name in names if name]
