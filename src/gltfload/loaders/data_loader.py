"""
Data Loaders

Byte sources the importer reads the primary document and its sibling
resources (buffers, images) from. Two variants exist: local files and
remote HTTP(S) fetches.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import httpx

from ..config.settings import HTTP_TIMEOUT
from ..exceptions import ResourceError, TransientFetchError
from .uri_helper import combine, get_directory_name, get_file_from_uri, is_remote

logger = logging.getLogger(__name__)

# Characters stripped from the front of a URI before it is joined to the asset root
_SEPARATORS = os.sep + (os.altsep or "")


class SourceKind(Enum):
    """Where the document bytes come from."""
    LOCAL_FILE = "local_file"
    REMOTE = "remote"


@dataclass(frozen=True)
class SourceLocation:
    """Resolved location of a document."""

    kind: SourceKind
    full_path: str
    directory: str
    filename: str


def resolve_source(uri: str, use_local_file: bool, append_base_asset_path: bool,
                   asset_root: Union[str, Path]) -> SourceLocation:
    """
    Resolve a document URI into a base directory and a file name.

    Args:
        uri: Document path (local) or URL (remote)
        use_local_file: Read from the local file system instead of the network
        append_base_asset_path: Prefix local paths with ``asset_root``
        asset_root: Platform asset directory

    Returns:
        SourceLocation describing the variant and its paths
    """
    if not uri:
        raise ValueError("A document URI is required")

    if use_local_file:
        if append_base_asset_path:
            # os.path.join drops everything before an absolute component, so a
            # leading separator on the URI would discard the asset root.
            full_path = os.path.join(str(asset_root), uri.lstrip(_SEPARATORS))
        else:
            full_path = uri
        return SourceLocation(
            kind=SourceKind.LOCAL_FILE,
            full_path=full_path,
            directory=get_directory_name(full_path),
            filename=os.path.basename(uri),
        )

    if not is_remote(uri):
        raise ValueError(f"Remote loading requires an absolute http(s) URL, got: {uri}")
    return SourceLocation(
        kind=SourceKind.REMOTE,
        full_path=uri,
        directory=get_directory_name(uri),
        filename=get_file_from_uri(uri),
    )


class DataLoader(ABC):
    """
    Base class for byte sources.

    Subclasses implement :meth:`load_stream` and optionally :meth:`_close`.
    :meth:`dispose` is idempotent.
    """

    def __init__(self, root: str):
        self.root = root
        self.disposed = False

    @abstractmethod
    async def load_stream(self, relative_path: str) -> bytes:
        """
        Read a resource located relative to :attr:`root`.

        Args:
            relative_path: Resource path as written in the document

        Returns:
            Resource bytes
        """

    async def dispose(self):
        """Release any resources held by the loader."""
        if self.disposed:
            return
        self.disposed = True
        await self._close()

    async def _close(self):
        pass

    def _check_open(self):
        if self.disposed:
            raise RuntimeError(f"{type(self).__name__} used after dispose()")


class FileLoader(DataLoader):
    """Reads resources from a local directory on a worker thread."""

    async def load_stream(self, relative_path: str) -> bytes:
        self._check_open()
        path = Path(self.root) / relative_path if self.root else Path(relative_path)
        logger.debug("Reading %s", path)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise ResourceError(f"Failed to read {path}: {e}") from e


class WebRequestLoader(DataLoader):
    """
    Fetches resources over HTTP(S) with an ``httpx.AsyncClient``.

    A client created by the loader is closed on dispose; an injected
    client belongs to the caller and is left open.
    """

    def __init__(self, root: str, client: Optional[httpx.AsyncClient] = None,
                 timeout: float = HTTP_TIMEOUT):
        super().__init__(root)
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(
            timeout=timeout, follow_redirects=True
        )

    async def load_stream(self, relative_path: str) -> bytes:
        self._check_open()
        url = combine(self.root, relative_path)
        logger.debug("Fetching %s", url)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransientFetchError(
                f"HTTP {e.response.status_code} fetching {url}",
                uri=url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise TransientFetchError(f"Request for {url} failed: {e}", uri=url) from e
        return response.content

    async def _close(self):
        if self._owns_client:
            await self._client.aclose()


def create_data_loader(location: SourceLocation) -> DataLoader:
    """Build the loader variant matching ``location.kind``."""
    if location.kind is SourceKind.LOCAL_FILE:
        return FileLoader(location.directory)
    return WebRequestLoader(location.directory)
