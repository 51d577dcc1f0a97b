import io
import logging
import zipfile
from typing import Iterator

from errors import StorageError
from project_store import ProjectStore

logger = logging.getLogger('archiver')

ARCHIVE_NAME = 'generated-site.zip'
CHUNK_SIZE = 64 * 1024


def build_archive(store: ProjectStore) -> io.BytesIO:
    """Zip every snapshot member at the archive root, maximum compression."""
    buf = io.BytesIO()
    try:
        with zipfile.ZipFile(buf, 'w', zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
            for name in store.list():
                zf.writestr(name, store.read_bytes(name))
    except StorageError:
        raise
    except (OSError, zipfile.BadZipFile, ValueError) as e:
        logger.exception('Archive error')
        raise StorageError(f'Could not create archive: {e}') from e
    buf.seek(0)
    return buf


def iter_archive(buf: io.BytesIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    while True:
        chunk = buf.read(chunk_size)
        if not chunk:
            break
        yield chunk
