import hashlib
import logging
import mimetypes
from collections import namedtuple
from typing import Dict, Optional

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import BlobServiceClient, ContentSettings

from errors import DeploymentError
from project_store import ProjectStore

logger = logging.getLogger('site-deploy')

ENTRY_POINT = 'index.html'
NO_CACHE = 'no-cache'
LONG_CACHE = 'public, max-age=3600'
DEFAULT_CONTENT_TYPE = 'application/octet-stream'

STRATEGIES = ('wipe', 'diff')

# md5 is None when the store has no hash for the blob
RemoteBlob = namedtuple('RemoteBlob', ['md5', 'content_type', 'cache_control'])


def content_type_for(name: str) -> str:
    ctype, _ = mimetypes.guess_type(name)
    return ctype or DEFAULT_CONTENT_TYPE


def cache_control_for(name: str) -> str:
    return NO_CACHE if name == ENTRY_POINT else LONG_CACHE


class BlobStore:
    """Remote object container keyed by blob name."""

    def ensure_container(self) -> None:
        raise NotImplementedError

    def list_blobs(self) -> Dict[str, RemoteBlob]:
        """Map every blob name to its stored MD5 and HTTP headers."""
        raise NotImplementedError

    def delete(self, name: str) -> None:
        raise NotImplementedError

    def upload(self, name: str, data: bytes, content_type: str, cache_control: str) -> None:
        raise NotImplementedError


class AzureBlobStore(BlobStore):
    """Azure Storage static website container (``$web`` by default).

    The SDK client is built on first use so a missing or malformed
    connection string surfaces as a DeploymentError during a deploy,
    not at startup. Every SDK failure is wrapped the same way.
    """

    def __init__(self, connection_string: Optional[str], container_name: str = '$web'):
        self.connection_string = connection_string
        self.container_name = container_name
        self._service = None
        self._container = None

    def _container_client(self):
        if self._container is None:
            if not self.connection_string:
                raise DeploymentError('AZURE_STORAGE_CONNECTION_STRING is not set')
            try:
                self._service = BlobServiceClient.from_connection_string(self.connection_string)
            except ValueError as e:
                raise DeploymentError(f'Invalid storage connection string: {e}') from e
            self._container = self._service.get_container_client(self.container_name)
        return self._container

    def ensure_container(self) -> None:
        container = self._container_client()
        try:
            if not container.exists():
                logger.info('Creating container %s with public access', self.container_name)
                self._service.create_container(self.container_name, public_access='container')
        except ResourceExistsError:
            logger.info('Container %s already exists', self.container_name)
        except AzureError as e:
            raise DeploymentError(str(e)) from e

    def list_blobs(self) -> Dict[str, RemoteBlob]:
        container = self._container_client()
        try:
            index = {}
            for blob in container.list_blobs():
                settings = blob.content_settings
                if settings is None:
                    index[blob.name] = RemoteBlob(None, None, None)
                    continue
                md5 = settings.content_md5
                index[blob.name] = RemoteBlob(bytes(md5) if md5 else None, settings.content_type, settings.cache_control)
            return index
        except AzureError as e:
            raise DeploymentError(str(e)) from e

    def delete(self, name: str) -> None:
        container = self._container_client()
        try:
            container.delete_blob(name)
        except AzureError as e:
            raise DeploymentError(str(e)) from e

    def upload(self, name: str, data: bytes, content_type: str, cache_control: str) -> None:
        container = self._container_client()
        settings = ContentSettings(content_type=content_type, cache_control=cache_control)
        try:
            container.upload_blob(name, data, overwrite=True, content_settings=settings)
        except AzureError as e:
            raise DeploymentError(str(e)) from e


class SiteDeployer:
    """Mirror the current project snapshot into a BlobStore.

    ``wipe`` deletes every remote blob and then uploads every local file.
    ``diff`` uploads only new or changed files and then deletes remote-only
    keys. Either way the remote key set equals the local file set after a
    successful sync. Nothing is retried or rolled back: a failure part-way
    leaves the remote container inconsistent.
    """

    def __init__(self, blob_store: BlobStore, live_url: Optional[str] = None, strategy: str = 'wipe'):
        if strategy not in STRATEGIES:
            raise ValueError(f'Unknown deploy strategy {strategy!r}; expected one of {STRATEGIES}')
        self.blob_store = blob_store
        self.live_url = live_url or ''
        self.strategy = strategy

    def sync(self, store: ProjectStore) -> str:
        self.blob_store.ensure_container()
        if self.strategy == 'diff':
            self._sync_diff(store)
        else:
            self._sync_wipe(store)
        if not self.live_url:
            logger.warning('STATIC_SITE_URL not set; returning empty live URL')
        return self.live_url

    def _upload(self, store: ProjectStore, name: str, data: Optional[bytes] = None) -> None:
        if data is None:
            data = store.read_bytes(name)
        ctype = content_type_for(name)
        cache = cache_control_for(name)
        self.blob_store.upload(name, data, ctype, cache)
        logger.info('Uploaded %s (%d bytes, %s, %s)', name, len(data), ctype, cache)

    def _sync_wipe(self, store: ProjectStore) -> None:
        removed = 0
        for name in self.blob_store.list_blobs():
            self.blob_store.delete(name)
            removed += 1
        logger.info('Cleared %d remote blobs', removed)
        for name in store.list():
            self._upload(store, name)

    def _sync_diff(self, store: ProjectStore) -> None:
        # a blob is unchanged only when bytes and both headers already match
        local = store.list()
        remote = self.blob_store.list_blobs()
        skipped = 0
        for name in local:
            data = store.read_bytes(name)
            wanted = RemoteBlob(hashlib.md5(data).digest(), content_type_for(name), cache_control_for(name))
            if remote.get(name) == wanted:
                skipped += 1
                continue
            self._upload(store, name, data)
        stale = sorted(set(remote) - set(local))
        for name in stale:
            self.blob_store.delete(name)
        logger.info('Diff sync: %d unchanged, %d removed', skipped, len(stale))
