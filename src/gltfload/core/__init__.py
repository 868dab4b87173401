"""Core scene graph"""
from .scene import Component, SceneNode
from .components import (
    Collider,
    ColliderType,
    LodGroup,
    MeshData,
    MeshFilter,
    PrimitiveType,
    Renderer,
    create_primitive,
)

__all__ = [
    "Component",
    "SceneNode",
    "Collider",
    "ColliderType",
    "LodGroup",
    "MeshData",
    "MeshFilter",
    "PrimitiveType",
    "Renderer",
    "create_primitive",
]
