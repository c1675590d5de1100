"""
Filesystem helpers for generated projects
"""

import logging
from pathlib import Path
from typing import Iterable, List, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def ensure_directory(directory: PathLike) -> Path:
    """Create a directory (and parents) if it does not exist"""
    directory = Path(directory)
    if not directory.exists():
        logger.debug(f"📁 Creating directory: {directory}")
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def write_file(file_path: PathLike, content: str) -> Path:
    """Write text content, creating parent directories implicitly"""
    file_path = Path(file_path)
    ensure_directory(file_path.parent)
    with open(file_path, 'w', encoding='utf-8') as f:
        f.write(content)
    logger.debug(f"💾 File written: {file_path}")
    return file_path


def read_file(file_path: PathLike) -> str:
    with open(file_path, 'r', encoding='utf-8') as f:
        return f.read()


def file_exists(file_path: PathLike) -> bool:
    return Path(file_path).is_file()


def is_ignored(relative: Path, ignored_dirs: Iterable[str]) -> bool:
    """Whether any component of a relative path is hidden or explicitly ignored"""
    ignored = set(ignored_dirs)
    return any(part.startswith('.') or part in ignored for part in relative.parts)


def list_files(directory: PathLike, recursive: bool = True, ignored_dirs: Iterable[str] = ()) -> List[Path]:
    """List files below ``directory`` in sorted order, skipping ignored and hidden paths"""
    directory = Path(directory)
    pattern = '**/*' if recursive else '*'
    ignored_dirs = list(ignored_dirs)
    files = []
    for path in sorted(directory.glob(pattern)):
        if not path.is_file():
            continue
        if is_ignored(path.relative_to(directory), ignored_dirs):
            continue
        files.append(path)
    return files


def list_directories(directory: PathLike, ignored_dirs: Iterable[str] = ()) -> List[Path]:
    directory = Path(directory)
    ignored_dirs = list(ignored_dirs)
    return [
        path for path in sorted(directory.glob('**/*'))
        if path.is_dir() and not is_ignored(path.relative_to(directory), ignored_dirs)
    ]


def has_content_changed(file_path: PathLike, new_content: str) -> bool:
    """True when the file is missing, unreadable, or differs from ``new_content``"""
    file_path = Path(file_path)
    if not file_path.is_file():
        return True
    try:
        return read_file(file_path) != new_content
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"⚠️ Could not compare {file_path}: {e}")
        return True
