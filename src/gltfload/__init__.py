"""
gltfload - glTF scene load component

Loads glTF 2.0 scenes from local files or HTTP(S) endpoints into a
scene graph, with post-load shader overrides, animation autoplay,
bounded retries and deterministic cleanup.
"""

# Configuration
from .config.settings import *

# Errors
from .exceptions import (
    GltfLoadError,
    ImportTimeoutError,
    LoadInProgressError,
    ResourceError,
    StructuralError,
    TransientFetchError,
)

# Scene graph
from .core import (
    Collider,
    ColliderType,
    Component,
    LodGroup,
    MeshData,
    MeshFilter,
    PrimitiveType,
    Renderer,
    SceneNode,
    create_primitive,
)

# Animation
from .animation import Animation, AnimationPlayer

# Loaders
from .loaders import (
    AsyncCoroutineHelper,
    DataLoader,
    DefaultImporterFactory,
    FileLoader,
    GltfSceneImporter,
    ImporterFactory,
    Material,
    Shader,
    SourceKind,
    SourceLocation,
    Texture,
    WebRequestLoader,
    create_data_loader,
    resolve_source,
)

# Components
from .components import GltfComponent, LoadConfiguration, LoadResult, LoadState, RetryPolicy

__version__ = "0.1.0"
__all__ = [
    # Config (exported via *)
    # Errors
    "GltfLoadError",
    "ImportTimeoutError",
    "LoadInProgressError",
    "ResourceError",
    "StructuralError",
    "TransientFetchError",
    # Scene graph
    "Collider",
    "ColliderType",
    "Component",
    "LodGroup",
    "MeshData",
    "MeshFilter",
    "PrimitiveType",
    "Renderer",
    "SceneNode",
    "create_primitive",
    # Animation
    "Animation",
    "AnimationPlayer",
    # Loaders
    "AsyncCoroutineHelper",
    "DataLoader",
    "DefaultImporterFactory",
    "FileLoader",
    "GltfSceneImporter",
    "ImporterFactory",
    "Material",
    "Shader",
    "SourceKind",
    "SourceLocation",
    "Texture",
    "WebRequestLoader",
    "create_data_loader",
    "resolve_source",
    # Components
    "GltfComponent",
    "LoadConfiguration",
    "LoadResult",
    "LoadState",
    "RetryPolicy",
]
