"""
Material

Handles PBR material properties, textures and shader assignment.
"""

from typing import Dict, Optional, Tuple

from ..config.settings import DEFAULT_SHADER_NAME


class Shader:
    """
    Named shader reference.

    Shaders are resolved by the host renderer; the loader only tracks
    which shader each material should be drawn with.
    """

    def __init__(self, name: str):
        if not name:
            raise ValueError("Shader name must not be empty")
        self.name = name

    def __eq__(self, other):
        return isinstance(other, Shader) and other.name == self.name

    def __hash__(self):
        return hash(("Shader", self.name))

    def __repr__(self):
        return f"Shader('{self.name}')"


class Texture:
    """Decoded image referenced by a material slot."""

    def __init__(self, name: str, size: Tuple[int, int], mode: str, data: bytes = b""):
        """
        Initialize texture.

        Args:
            name: Texture name (image name or uri)
            size: Width, height in pixels
            mode: Pillow image mode after decoding (e.g. "RGBA")
            data: Raw pixel bytes
        """
        self.name = name
        self.size = size
        self.mode = mode
        self.data = data

    def __repr__(self):
        return f"Texture(name='{self.name}', size={self.size}, mode={self.mode})"


class Material:
    """
    Represents a PBR material with textures.

    Supports the standard PBR workflow:
    - Base Color (albedo)
    - Metallic/Roughness (packed in single texture)
    - Normal Map
    - Emissive
    - Occlusion
    """

    TEXTURE_SLOTS = ("base_color", "metallic_roughness", "normal", "occlusion", "emissive")

    def __init__(self, name: str = "Material", shader: Optional[Shader] = None):
        """
        Initialize material.

        Args:
            name: Material name for debugging
            shader: Shader to draw with (defaults to the glTF PBR shader)
        """
        self.name = name
        self.shader = shader if shader is not None else Shader(DEFAULT_SHADER_NAME)

        # Texture slot name -> Texture
        self.textures: Dict[str, Texture] = {}

        # Base color factor (used if no texture)
        self.base_color_factor = (1.0, 1.0, 1.0, 1.0)

        # PBR factors
        self.metallic_factor = 1.0
        self.roughness_factor = 1.0
        self.occlusion_strength = 1.0
        self.normal_scale = 1.0
        self.emissive_factor = (0.0, 0.0, 0.0)
        self.emissive_strength = 1.0  # KHR_materials_emissive_strength

        # Alpha mode ("OPAQUE", "MASK", "BLEND")
        self.alpha_mode = "OPAQUE"
        self.alpha_cutoff = 0.5

        self.double_sided = False
        self.unlit = False  # KHR_materials_unlit

    def set_texture(self, slot: str, texture: Optional[Texture]):
        """Assign a texture to one of :attr:`TEXTURE_SLOTS` (None clears it)."""
        if slot not in self.TEXTURE_SLOTS:
            raise KeyError(f"Unknown texture slot: {slot}")
        if texture is None:
            self.textures.pop(slot, None)
        else:
            self.textures[slot] = texture

    def get_texture(self, slot: str) -> Optional[Texture]:
        return self.textures.get(slot)

    def has_base_color(self) -> bool:
        """Check if material has base color texture"""
        return "base_color" in self.textures

    def has_normal_map(self) -> bool:
        """Check if material has normal map"""
        return "normal" in self.textures

    def __repr__(self):
        return f"Material(name='{self.name}', shader={self.shader.name}, textures={sorted(self.textures)})"
