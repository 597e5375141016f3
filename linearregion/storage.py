import os
import re
import json
import logging
import tempfile

from .constants import (
    CONFIG_ENV, CONFIG_FILE_NAME, DEFAULT_COMPRESSION_LEVEL, LINEAR_VERSION,
    REGION_SUFFIX, WIP_SUFFIX,
)

logger = logging.getLogger("LinearRegion.storage")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_REGION_NAME = re.compile(r"^r\.(-?\d+)\.(-?\d+)\.linear$")

DEFAULT_CONFIG = {
    "compression_level": DEFAULT_COMPRESSION_LEVEL,
    "format_version": LINEAR_VERSION,
    "lenient": False,
    "fsync": True,
    "log_file": None,
    "log_level": "INFO",
}


def region_file_name(region_x, region_z):
    return f"r.{region_x}.{region_z}{REGION_SUFFIX}"


def parse_region_name(path):
    """Extracts (x, z) from a r.<x>.<z>.linear file name"""
    name = os.path.basename(os.fspath(path))
    m = _REGION_NAME.match(name)
    if not m:
        raise ValueError(f"Not a region file name: {name}")
    return int(m.group(1)), int(m.group(2))


def config_path():
    return os.environ.get(CONFIG_ENV) or os.path.join(os.getcwd(), CONFIG_FILE_NAME)


def load_config(path=None):
    config = dict(DEFAULT_CONFIG)
    path = path or config_path()
    if os.path.exists(path):
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid config file {path}: expected a JSON object")
        config.update(data)
    return config


def configure_logging(log_file=None, level="INFO"):
    """Attach a handler to the LinearRegion logger (the library itself adds none)."""
    root = logging.getLogger("LinearRegion")
    if log_file:
        handler = logging.FileHandler(log_file, mode='a')
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    return handler


def _fsync_dir(directory):
    # Not every platform can open a directory (Windows)
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def _target_mode(path):
    try:
        return os.stat(path).st_mode & 0o7777
    except FileNotFoundError:
        # New file: what open() would have given it
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def atomic_write(path, data, fsync=True):
    """Write data to path through a temp file in the same directory and a rename.

    Either the whole new content ends up at path or path is left as it was.
    The permissions of an existing file are kept.
    """
    path = os.fspath(path)
    mode = _target_mode(path)
    directory = os.path.dirname(os.path.abspath(path))
    fd, wip_path = tempfile.mkstemp(
        dir=directory, prefix=os.path.basename(path) + ".", suffix=WIP_SUFFIX
    )
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
            f.flush()
            if fsync:
                os.fsync(f.fileno())
        os.chmod(wip_path, mode)
        os.replace(wip_path, path)
    except BaseException:
        try:
            os.remove(wip_path)
        except OSError:
            pass
        raise
    if fsync:
        _fsync_dir(directory)
    logger.debug(f"Wrote {len(data)} bytes to {path}")
    return len(data)


class RegionStorage:
    """A directory of r.<x>.<z>.linear files."""

    def __init__(self, directory, config=None):
        self.directory = os.fspath(directory)
        self.config = config if config is not None else load_config()
        self.ensure_directory()

    def ensure_directory(self):
        if not os.path.exists(self.directory):
            os.makedirs(self.directory)

    def region_path(self, region_x, region_z):
        return os.path.join(self.directory, region_file_name(region_x, region_z))

    def list_regions(self):
        found = []
        for f in os.listdir(self.directory):
            try:
                found.append(parse_region_name(f))
            except ValueError:
                continue
        return sorted(found)

    def exists(self, region_x, region_z):
        return os.path.exists(self.region_path(region_x, region_z))

    def load(self, region_x, region_z, lenient=None):
        from .reader import open_region
        if lenient is None:
            lenient = self.config.get("lenient", False)
        return open_region(self.region_path(region_x, region_z), lenient=lenient)

    def save(self, region, level=None, version=None):
        from .writer import save_region
        return save_region(
            region,
            self.region_path(region.region_x, region.region_z),
            level=level,
            version=version,
            config=self.config,
        )

    def delete(self, region_x, region_z):
        path = self.region_path(region_x, region_z)
        if not os.path.exists(path):
            return False
        os.remove(path)
        return True
