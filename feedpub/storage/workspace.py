import logging
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Generator


logger = logging.getLogger("storage")


class LocalWorkspace:
    """Per-item working directories on the local filesystem.

    Downloaded media and intermediate encodes of one item live in
    `<root>/<item_id>/`. The directory is removed when the item's cycle ends,
    whether it succeeded or not.
    """

    def __init__(self, root: str | Path = "data/work"):
        self.root = Path(root)

    def item_path(self, item_id: str) -> Path:
        """Return the working directory path of item_id (not created).

        Raises:
            ValueError: If item_id could escape the workspace root.
        """
        if not item_id or "/" in item_id or "\\" in item_id or item_id in (".", ".."):
            raise ValueError(f"Unsafe item id for a workspace: {item_id!r}")
        return self.root / item_id

    def create_item_workspace(self, item_id: str) -> Path:
        """Creates a fresh, empty working directory for item_id.

        Leftovers of an earlier interrupted run are discarded first.

        Raises:
            RuntimeError: If the directory cannot be created.
        """
        path = self.item_path(item_id)
        try:
            if path.exists():
                shutil.rmtree(path)
            path.mkdir(parents=True)
        except OSError as e:
            raise RuntimeError(f"Error creating workspace directory {path}: {e}")
        return path

    def remove_item_workspace(self, item_id: str) -> None:
        path = self.item_path(item_id)
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to clean up workspace {path}: {e}")

    @contextmanager
    def item_workspace(self, item_id: str) -> Generator[Path, None, None]:
        """Context manager yielding a fresh working directory, always removed on exit."""
        path = self.create_item_workspace(item_id)
        try:
            yield path
        finally:
            self.remove_item_workspace(item_id)
