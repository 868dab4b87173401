"""
Importer factories.

The load component builds one importer per attempt through a factory so
that hosts can substitute their own importer type.
"""

from abc import ABC, abstractmethod

from .async_helper import AsyncCoroutineHelper
from .data_loader import DataLoader
from .gltf_importer import GltfSceneImporter


class ImporterFactory(ABC):
    """Creates scene importers."""

    @abstractmethod
    def create_scene_importer(self, filename: str, loader: DataLoader,
                              coroutine_helper: AsyncCoroutineHelper) -> GltfSceneImporter:
        """
        Build an importer for one document.

        Args:
            filename: Primary document name relative to the loader root
            loader: Byte source for the document and its resources
            coroutine_helper: Scheduling helper shared with the caller

        Returns:
            Unconfigured importer
        """


class DefaultImporterFactory(ImporterFactory):
    """Builds :class:`GltfSceneImporter` instances."""

    def create_scene_importer(self, filename: str, loader: DataLoader,
                              coroutine_helper: AsyncCoroutineHelper) -> GltfSceneImporter:
        return GltfSceneImporter(filename, loader, coroutine_helper)
