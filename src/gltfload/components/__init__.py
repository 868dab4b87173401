"""Host components that drive scene loading."""

from .load_config import LoadConfiguration, RetryPolicy
from .gltf_component import GltfComponent, LoadResult, LoadState

__all__ = [
    "GltfComponent",
    "LoadConfiguration",
    "LoadResult",
    "LoadState",
    "RetryPolicy",
]
