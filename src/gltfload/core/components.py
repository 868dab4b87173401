"""
Scene Components

Renderable, physics and level-of-detail components attached to scene nodes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np

from .scene import Component, SceneNode


class ColliderType(Enum):
    """Physics-collider generation policy for imported meshes."""
    NONE = "none"
    BOX = "box"
    MESH = "mesh"
    MESH_CONVEX = "mesh_convex"

    @classmethod
    def from_name(cls, name) -> "ColliderType":
        """Parse a collider type from its value or member name (case-insensitive)."""
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Unknown collider type: {name}")


class PrimitiveType(Enum):
    """Built-in primitive shapes."""
    CUBE = "cube"
    SPHERE = "sphere"
    PLANE = "plane"


@dataclass
class MeshData:
    """CPU-side description of an imported mesh primitive."""

    name: str
    vertex_count: int = 0
    index_count: int = 0
    bounds_min: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype='f4'))
    bounds_max: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype='f4'))
    mesh_index: Optional[int] = None

    @property
    def center(self) -> np.ndarray:
        return (np.asarray(self.bounds_min) + np.asarray(self.bounds_max)) * 0.5

    @property
    def size(self) -> np.ndarray:
        return np.asarray(self.bounds_max) - np.asarray(self.bounds_min)

    @property
    def bounding_radius(self) -> float:
        return float(np.linalg.norm(self.size) * 0.5)


class MeshFilter(Component):
    """Holds the mesh a node renders."""

    def __init__(self, mesh: MeshData):
        super().__init__()
        self.mesh = mesh


class Renderer(Component):
    """Draws the node's mesh with a (possibly shared) material."""

    def __init__(self, shared_material=None):
        super().__init__()
        self.shared_material = shared_material
        self.enabled = True


class Collider(Component):
    """
    Physics collision shape.

    Box colliders carry ``center``/``size``; mesh colliders reference
    the mesh and are optionally convex.
    """

    def __init__(self, collider_type: ColliderType, mesh: Optional[MeshData] = None):
        super().__init__()
        if collider_type is ColliderType.NONE:
            raise ValueError("ColliderType.NONE does not produce a collider")
        self.collider_type = collider_type
        self.mesh = mesh
        self.convex = collider_type is ColliderType.MESH_CONVEX
        self.center = mesh.center if mesh is not None else np.zeros(3, dtype='f4')
        self.size = mesh.size if mesh is not None else np.ones(3, dtype='f4')


class LodGroup(Component):
    """Ordered level-of-detail alternatives; level 0 is the owning node."""

    def __init__(self, levels: List[SceneNode]):
        super().__init__()
        self.levels = list(levels)
        self.active_level = 0

    def set_level(self, level: int):
        """Activate a single level and deactivate the others."""
        if not 0 <= level < len(self.levels):
            raise IndexError(f"LOD level {level} out of range (0..{len(self.levels) - 1})")
        self.active_level = level
        # Level 0 is the owner, which also parents the other levels
        for renderer in self.levels[0].get_components(Renderer):
            renderer.enabled = level == 0
        for index, node in enumerate(self.levels[1:], start=1):
            node.active = index == level


def create_primitive(primitive_type: PrimitiveType, name: str = None, size: float = 1.0) -> SceneNode:
    """
    Create a node carrying a built-in primitive mesh, a renderer and a collider.

    Args:
        primitive_type: Shape to create
        name: Node name (defaults to the shape name)
        size: Edge length (cube/plane) or diameter (sphere)

    Returns:
        New, unparented SceneNode
    """
    from ..loaders.material import Material

    half = size * 0.5
    if primitive_type is PrimitiveType.CUBE:
        vertex_count = 24
        bounds = (-half, -half, -half), (half, half, half)
        collider_type = ColliderType.BOX
    elif primitive_type is PrimitiveType.SPHERE:
        # UV sphere, 24 segments x 16 rings
        vertex_count = 25 * 17
        bounds = (-half, -half, -half), (half, half, half)
        collider_type = ColliderType.MESH_CONVEX
    elif primitive_type is PrimitiveType.PLANE:
        vertex_count = 4
        bounds = (-half, 0.0, -half), (half, 0.0, half)
        collider_type = ColliderType.MESH
    else:
        raise ValueError(f"Unsupported primitive type: {primitive_type}")

    mesh = MeshData(
        name=primitive_type.value.capitalize(),
        vertex_count=vertex_count,
        bounds_min=np.array(bounds[0], dtype='f4'),
        bounds_max=np.array(bounds[1], dtype='f4'),
    )

    node = SceneNode(name or primitive_type.value.capitalize())
    node.add_component(MeshFilter(mesh))
    node.add_component(Renderer(Material("Default-Material")))
    node.add_component(Collider(collider_type, mesh))
    return node
