import logging
import os
import shutil
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from errors import NotFoundError, StorageError, ValidationError
from site_parser import is_safe_name

logger = logging.getLogger('project-store')


def _check_name(name: str) -> None:
    if not is_safe_name(name):
        raise ValidationError(f'Invalid filename: {name!r}')


class ProjectStore:
    """The single on-disk (or in-memory) snapshot of the generated website.

    Exactly one snapshot exists at a time. ``materialize`` replaces it
    wholesale; ``write`` mutates one member in place. Nothing here is
    locked: overlapping callers race and the last writer wins.
    """

    def materialize(self, files: Mapping[str, str]) -> List[str]:
        raise NotImplementedError

    def read(self, name: str) -> str:
        return self.read_bytes(name).decode('utf-8')

    def read_bytes(self, name: str) -> bytes:
        raise NotImplementedError

    def write(self, name: str, content: str) -> None:
        raise NotImplementedError

    def list(self) -> List[str]:
        raise NotImplementedError


class DirectoryProjectStore(ProjectStore):
    """Snapshot kept as plain files under ``root``.

    Replacement is not transactional: the old directory is removed before
    the new files are written, so a failure mid-way leaves a partial
    snapshot behind.
    """

    def __init__(self, root):
        self.root = Path(root)

    def _path(self, name: str) -> Path:
        _check_name(name)
        return self.root / name

    def materialize(self, files: Mapping[str, str]) -> List[str]:
        for name in files:
            _check_name(name)
        try:
            # tolerate absence; anything else is fatal for this generation
            if self.root.exists():
                shutil.rmtree(self.root)
            self.root.mkdir(parents=True)
        except OSError as e:
            logger.exception('Failed to reset project directory %s', self.root)
            raise StorageError(f'Could not reset project directory: {e}') from e

        for name, content in files.items():
            path = self.root / name
            try:
                with open(path, 'w', encoding='utf-8', newline='') as f:
                    f.write(content)
            except OSError as e:
                logger.exception('Failed writing %s', path)
                raise StorageError(f'Could not write {name}: {e}') from e
            logger.info('Wrote %s (%d chars)', path, len(content))
        return sorted(files)

    def read_bytes(self, name: str) -> bytes:
        path = self._path(name)
        try:
            with open(path, 'rb') as f:
                return f.read()
        except FileNotFoundError as e:
            raise NotFoundError(f'{name} not found') from e
        except OSError as e:
            logger.exception('Failed reading %s', path)
            raise StorageError(f'Could not read {name}: {e}') from e

    def write(self, name: str, content: str) -> None:
        path = self._path(name)
        try:
            with open(path, 'w', encoding='utf-8', newline='') as f:
                f.write(content)
        except OSError as e:
            logger.exception('Failed writing %s', path)
            raise StorageError(f'Could not write {name}: {e}') from e
        logger.info('Saved edits to %s', path)

    def list(self) -> List[str]:
        # flat, like materialize: nested entries are never snapshot members
        if not self.root.is_dir():
            return []
        names = []
        try:
            with os.scandir(self.root) as entries:
                for entry in entries:
                    if not entry.is_file():
                        continue
                    if not is_safe_name(entry.name):
                        logger.warning('Skipping unexpected file in project directory: %s', entry.name)
                        continue
                    names.append(entry.name)
        except OSError as e:
            raise StorageError(f'Could not list project directory: {e}') from e
        return sorted(names)


class MemoryProjectStore(ProjectStore):
    """Dict-backed snapshot with the same replacement semantics."""

    def __init__(self, files: Optional[Mapping[str, str]] = None):
        self._files: Dict[str, bytes] = {}
        if files:
            self.materialize(files)

    def materialize(self, files: Mapping[str, str]) -> List[str]:
        for name in files:
            _check_name(name)
        self._files = {name: content.encode('utf-8') for name, content in files.items()}
        return sorted(self._files)

    def read_bytes(self, name: str) -> bytes:
        _check_name(name)
        try:
            return self._files[name]
        except KeyError:
            raise NotFoundError(f'{name} not found') from None

    def write(self, name: str, content: str) -> None:
        _check_name(name)
        self._files[name] = content.encode('utf-8')

    def list(self) -> List[str]:
        return sorted(self._files)
