"""Loaders for glTF documents and their byte sources."""

from .material import Material, Shader, Texture
from .async_helper import AsyncCoroutineHelper
from .data_loader import (
    DataLoader,
    FileLoader,
    SourceKind,
    SourceLocation,
    WebRequestLoader,
    create_data_loader,
    resolve_source,
)
from .gltf_importer import GltfSceneImporter
from .importer_factory import DefaultImporterFactory, ImporterFactory

__all__ = [
    'Material',
    'Shader',
    'Texture',
    'AsyncCoroutineHelper',
    'DataLoader',
    'FileLoader',
    'WebRequestLoader',
    'SourceKind',
    'SourceLocation',
    'create_data_loader',
    'resolve_source',
    'GltfSceneImporter',
    'ImporterFactory',
    'DefaultImporterFactory',
]
