"""
Scene Graph

Hierarchy of nodes that host loaded geometry, materials and animations.
"""

from typing import Iterator, List, Optional, Type, TypeVar

from pyrr import Matrix44

C = TypeVar("C", bound="Component")


class Component:
    """
    Behaviour or data attached to a single :class:`SceneNode`.

    Components are owned by exactly one node; the node sets
    ``self.node`` when the component is attached.
    """

    def __init__(self):
        self.node: Optional["SceneNode"] = None


class SceneNode:
    """
    Represents a transform in the scene hierarchy.

    Each node has:
    - Local transform (relative to parent)
    - Ordered children
    - Ordered components (renderers, colliders, animations, ...)
    """

    def __init__(self, name: str = "Node", local_transform: Matrix44 = None,
                 parent: "SceneNode" = None):
        """
        Initialize scene node.

        Args:
            name: Debug name for this node
            local_transform: Local transformation matrix (relative to parent)
            parent: Optional parent to attach to immediately
        """
        self.name = name
        self.local_transform = Matrix44(local_transform) if local_transform is not None else Matrix44.identity()
        self.parent: Optional[SceneNode] = None
        self.children: List[SceneNode] = []
        self.components: List[Component] = []
        self.active = True

        if parent is not None:
            self.set_parent(parent)

    def set_parent(self, parent: Optional["SceneNode"]):
        """
        Move this node under a new parent (or detach it when ``parent`` is None).

        Args:
            parent: New parent node
        """
        if parent is self:
            raise ValueError("A node cannot be its own parent")
        ancestor = parent
        while ancestor is not None:
            if ancestor is self:
                raise ValueError(f"Cannot parent '{self.name}' under its own descendant")
            ancestor = ancestor.parent

        if self.parent is not None:
            self.parent.children.remove(self)
        self.parent = parent
        if parent is not None:
            parent.children.append(self)

    def detach(self):
        """Remove this node from its parent."""
        self.set_parent(None)

    def add_component(self, component: C) -> C:
        """Attach a component and return it."""
        if component.node is not None and component.node is not self:
            raise ValueError("Component is already attached to another node")
        component.node = self
        self.components.append(component)
        return component

    def get_component(self, component_type: Type[C]) -> Optional[C]:
        """Return the first attached component of the given type."""
        for component in self.components:
            if isinstance(component, component_type):
                return component
        return None

    def get_components(self, component_type: Type[C]) -> List[C]:
        """Return all components of the given type attached to this node, in attach order."""
        return [c for c in self.components if isinstance(c, component_type)]

    def get_components_in_children(self, component_type: Type[C],
                                   include_inactive: bool = False) -> List[C]:
        """
        Collect components from this node and all of its descendants.

        Traversal is depth-first, parents before children, children in order.

        Args:
            component_type: Component class to match
            include_inactive: Also visit inactive subtrees

        Returns:
            Matching components
        """
        found: List[C] = []
        for node in self.iter_descendants(include_inactive=include_inactive):
            found.extend(node.get_components(component_type))
        return found

    def iter_descendants(self, include_inactive: bool = True) -> Iterator["SceneNode"]:
        """Yield this node and every descendant, depth-first."""
        stack = [self]
        while stack:
            node = stack.pop()
            if not node.active and not include_inactive:
                continue
            yield node
            stack.extend(reversed(node.children))

    def find(self, name: str) -> Optional["SceneNode"]:
        """Find the first node named ``name`` in this subtree."""
        for node in self.iter_descendants():
            if node.name == name:
                return node
        return None

    def get_world_transform(self) -> Matrix44:
        """
        Get the accumulated transform of this node.

        Returns:
            4x4 transformation matrix (row-major, local applied first)
        """
        matrix = Matrix44(self.local_transform)
        parent = self.parent
        while parent is not None:
            matrix = matrix @ parent.local_transform
            parent = parent.parent
        return Matrix44(matrix)

    def get_object_count(self) -> int:
        """Number of nodes in this subtree, including this one."""
        return sum(1 for _ in self.iter_descendants())

    def __repr__(self):
        return f"SceneNode(name='{self.name}', children={len(self.children)}, components={len(self.components)})"
