# src/replica_top/core/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for locating files that ship with the replica_top package.
    """

    @staticmethod
    def get_package_root() -> Path:
        """Returns the directory of the installed `replica_top` package."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_package_root() / "settings.json"

    @staticmethod
    def resolve_output_path(path: str) -> Path:
        """
        Expands `~` and makes relative paths absolute against the working
        directory. Nothing is created on disk.
        """
        output = Path(path).expanduser()
        if not output.is_absolute():
            output = Path.cwd() / output
        logger.debug("Resolved output path: %s", output)
        return output

    @staticmethod
    def ensure_parent_dir(path: Path) -> Path:
        """Creates the parent folder of `path` if it does not exist yet."""
        path.parent.mkdir(parents=True, exist_ok=True)
        return path
