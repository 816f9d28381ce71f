"""
Persistent store for the AR marker tiles.

The store keeps two ordered lists of QImages (the marker tiles and the tiles
used by the paging indicator), mirrors them to `<storage root>/Images` after
every mutation and reloads them on startup, falling back to the bundled
default tiles on first run.

All mutations must happen on the thread that owns the store. Only the file
writing runs in the background, on a single worker so that the last persist
always wins.
"""

import json
import shutil
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QImage

from markertiles.utils.image import (ASSETS_DIR, TileList, load_bundled_tile,
                                     read_image_file, save_png, to_qimage)
from markertiles.utils.settings import (IMAGE_HEIGHT_KEY, IMAGE_WIDTH_KEY,
                                        Settings, get_default_tile_names,
                                        get_storage_root, settings)

IMAGES_DIRECTORY_NAME = 'Images'
MANIFEST_NAME = 'manifest.json'
MANIFEST_VERSION = 1  # Increment when the manifest layout changes


@dataclass
class PersistReport:
    """Outcome of one full resync of the tile directory."""
    written: list[str] = field(default_factory=list)
    removed: int = 0
    failures: list[str] = field(default_factory=list)
    directory_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.directory_error is None and not self.failures


def write_tiles(images_directory: Path, primary: list[QImage],
                pagination: list[QImage]) -> PersistReport:
    """
    Replace the contents of the tile directory with the given lists.

    Runs on the persist worker. Every failure is printed and recorded in the
    report; none of them stops the remaining files from being written.

    Args:
        images_directory: Existing directory to resync
        primary: Snapshot of the primary tiles, written as image{N}.png
        pagination: Snapshot of the pagination tiles, written as pagination{N}.png

    Returns:
        PersistReport describing what happened
    """
    report = PersistReport()

    # Clear existing files in the images directory
    try:
        existing_paths = sorted(images_directory.iterdir())
    except OSError as e:
        print(f'[TILES] Error clearing existing files: {e}')
        report.failures.append(f'{images_directory}: {e}')
        existing_paths = []
    for path in existing_paths:
        try:
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()
            report.removed += 1
        except OSError as e:
            print(f'[TILES] Error deleting {path.name}: {e}')
            report.failures.append(f'{path.name}: {e}')

    layout: dict[str, list[str]] = {
        TileList.PRIMARY.name.lower(): [],
        TileList.PAGINATION.name.lower(): [],
    }
    for tile_list, images in ((TileList.PRIMARY, primary),
                              (TileList.PAGINATION, pagination)):
        for index, qimage in enumerate(images):
            file_name = tile_list.file_name(index)
            if not save_png(qimage, images_directory / file_name):
                print(f'[TILES] Error writing image to file: {file_name}')
                report.failures.append(f'{file_name}: write failed')
                continue
            layout[tile_list.name.lower()].append(file_name)
            report.written.append(file_name)

    # Manifest goes last so an interrupted resync falls back to the file scan.
    manifest = {'version': MANIFEST_VERSION, **layout}
    try:
        (images_directory / MANIFEST_NAME).write_text(
            json.dumps(manifest, indent=2), encoding='utf-8')
    except OSError as e:
        print(f'[TILES] Error writing manifest: {e}')
        report.failures.append(f'{MANIFEST_NAME}: {e}')

    return report


class ImageStore(QObject):
    """Owns the primary and pagination tile lists and their durable copy."""

    primary_changed = Signal()
    pagination_changed = Signal()
    preferred_size_changed = Signal(float, float)

    def __init__(self, storage_root: Path | str | None = None,
                 settings_: Settings | None = None,
                 assets_dir: Path = ASSETS_DIR,
                 default_tiles: list[str] | None = None,
                 parent: QObject | None = None):
        super().__init__(parent)
        self._settings = settings_ if settings_ is not None else settings
        if storage_root is None:
            storage_root = get_storage_root(self._settings)
        # Resolved once; the store never follows later setting changes.
        self.storage_root = Path(storage_root)
        self.images_directory = self.storage_root / IMAGES_DIRECTORY_NAME
        self._assets_dir = assets_dir
        self._default_tiles = default_tiles

        self._primary: list[QImage] = []
        self._pagination: list[QImage] = []

        self._persist_executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="tile_persist")
        self._pending_writes: list[Future] = []

        self._load_images()

    # ========== Read access ==========

    @property
    def primary_images(self) -> list[QImage]:
        return list(self._primary)

    @property
    def pagination_images(self) -> list[QImage]:
        return list(self._pagination)

    def images(self, tile_list: TileList) -> list[QImage]:
        return list(self._list_for(tile_list))

    def count(self, tile_list: TileList) -> int:
        return len(self._list_for(tile_list))

    # ========== Mutations ==========

    def insert_primary(self, image) -> Future:
        """Insert a tile at the front of the primary list and persist."""
        return self._insert(TileList.PRIMARY, image)

    def insert_pagination(self, image) -> Future:
        """Insert a tile at the front of the pagination list and persist."""
        return self._insert(TileList.PAGINATION, image)

    def delete_primary(self, index: int) -> Future | None:
        """Remove the primary tile at `index`. Out-of-range indices are ignored."""
        return self._delete(TileList.PRIMARY, index)

    def delete_pagination(self, index: int) -> Future | None:
        """Remove the pagination tile at `index`. Out-of-range indices are ignored."""
        return self._delete(TileList.PAGINATION, index)

    def _insert(self, tile_list: TileList, image) -> Future:
        # Decode before touching any state so a bad source changes nothing.
        qimage = to_qimage(image)
        self._list_for(tile_list).insert(0, qimage)
        future = self.persist()
        self._emit_changed(tile_list)
        return future

    def _delete(self, tile_list: TileList, index: int) -> Future | None:
        images = self._list_for(tile_list)
        if not 0 <= index < len(images):
            return None
        del images[index]
        # The resync removes the stale file along with all the others.
        future = self.persist()
        self._emit_changed(tile_list)
        return future

    # ========== Preferred marker size ==========

    def persist_preferred_size(self, width: float, height: float):
        self._settings.setValue(IMAGE_WIDTH_KEY, float(width))
        self._settings.setValue(IMAGE_HEIGHT_KEY, float(height))
        self.preferred_size_changed.emit(float(width), float(height))

    def preferred_size(self) -> tuple[float, float] | None:
        if not (self._settings.contains(IMAGE_WIDTH_KEY)
                or self._settings.contains(IMAGE_HEIGHT_KEY)):
            return None
        width = self._settings.value(IMAGE_WIDTH_KEY, defaultValue=0.0,
                                     type=float)
        height = self._settings.value(IMAGE_HEIGHT_KEY, defaultValue=0.0,
                                      type=float)
        return width, height

    # ========== Persistence ==========

    def persist(self) -> Future:
        """
        Resync the tile directory with the in-memory lists.

        The directory is created on the calling thread; clearing and writing
        happen on the persist worker from a snapshot of both lists.

        Returns:
            Future resolving to a PersistReport
        """
        try:
            self.images_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f'[TILES] Error creating directory: {e}')
            future: Future = Future()
            future.set_result(PersistReport(directory_error=str(e)))
            return future

        # QImage copies are implicitly shared, so this snapshot is cheap and
        # later edits by callers detach instead of racing the writer.
        primary = [QImage(qimage) for qimage in self._primary]
        pagination = [QImage(qimage) for qimage in self._pagination]
        future = self._persist_executor.submit(
            write_tiles, self.images_directory, primary, pagination)
        self._pending_writes = [f for f in self._pending_writes if not f.done()]
        self._pending_writes.append(future)
        return future

    def wait_for_pending_writes(self, timeout: float | None = None) -> bool:
        """Block until every submitted persist finished. Returns False on timeout."""
        _, not_done = wait(self._pending_writes, timeout=timeout)
        self._pending_writes = list(not_done)
        return not not_done

    def shutdown(self, wait_for_writes: bool = True):
        self._persist_executor.shutdown(wait=wait_for_writes)

    # ========== Loading ==========

    def _load_images(self):
        if not self._load_from_storage():
            self._load_default_images()
        self.primary_changed.emit()
        self.pagination_changed.emit()

    def _load_from_storage(self) -> bool:
        """Load both lists from the tile directory. False means no durable state."""
        if not self.images_directory.exists():
            return False

        try:
            paths = list(self.images_directory.iterdir())
        except OSError as e:
            print(f'[TILES] Error loading images from storage: {e}')
            return False

        layout = self._read_manifest()
        if layout is None:
            layout = {TileList.PRIMARY: [], TileList.PAGINATION: []}
            for file_name in sorted(path.name for path in paths if path.is_file()):
                if file_name == MANIFEST_NAME:
                    continue
                layout[TileList.for_file_name(file_name)].append(file_name)

        loaded: dict[TileList, list[QImage]] = {}
        for tile_list, names in layout.items():
            loaded[tile_list] = []
            for file_name in names:
                path = self.images_directory / file_name
                qimage = read_image_file(path) if path.is_file() else None
                if qimage is None:
                    print(f'[TILES] Skipping unreadable tile file: {file_name}')
                    continue
                loaded[tile_list].append(qimage)

        self._primary = loaded[TileList.PRIMARY]
        self._pagination = loaded[TileList.PAGINATION]
        self._seed_pagination()
        return True

    def _read_manifest(self) -> dict[TileList, list[str]] | None:
        """Return the list layout recorded by the last persist, if usable."""
        manifest_path = self.images_directory / MANIFEST_NAME
        if not manifest_path.is_file():
            return None
        try:
            manifest = json.loads(manifest_path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            print(f'[TILES] Ignoring unreadable manifest: {e}')
            return None
        if not isinstance(manifest, dict) or manifest.get('version') != MANIFEST_VERSION:
            print('[TILES] Ignoring manifest with unknown version')
            return None

        layout = {}
        for tile_list in TileList:
            names = manifest.get(tile_list.name.lower(), [])
            if not isinstance(names, list):
                print(f'[TILES] Ignoring malformed manifest entry: {tile_list.name.lower()}')
                return None
            # Only bare file names inside the tile directory are accepted.
            layout[tile_list] = [name for name in names
                                 if isinstance(name, str) and name
                                 and Path(name).name == name]
        return layout

    def _load_default_images(self):
        tile_names = self._default_tiles
        if tile_names is None:
            tile_names = get_default_tile_names(self._settings)
        for tile_name in tile_names:
            qimage = load_bundled_tile(tile_name, self._assets_dir)
            if qimage is None:
                print(f'[TILES] Default tile not found: {tile_name}')
                continue
            self._primary.append(qimage)
        self._seed_pagination()
        self.persist()

    def _seed_pagination(self):
        if not self._pagination and self._primary:
            self._pagination.append(self._primary[0])

    # ========== Helpers ==========

    def _list_for(self, tile_list: TileList) -> list[QImage]:
        if tile_list == TileList.PAGINATION:
            return self._pagination
        return self._primary

    def _emit_changed(self, tile_list: TileList):
        if tile_list == TileList.PAGINATION:
            self.pagination_changed.emit()
        else:
            self.primary_changed.emit()
