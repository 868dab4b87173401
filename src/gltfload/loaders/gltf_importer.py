"""
GLTF/GLB Scene Importer

Builds scene-graph nodes, materials and animation clips from glTF 2.0
documents read through a DataLoader.
"""

import asyncio
import base64
import binascii
import logging
import struct
from io import BytesIO
from typing import Dict, List, Optional
from urllib.parse import unquote

import numpy as np
import pygltflib
from PIL import Image
from pyrr import Matrix44, Quaternion, Vector3

from ..animation import Animation, AnimationChannel, AnimationPlayer, AnimationTarget, InterpolationType
from ..config.settings import (
    DEFAULT_SHADER_NAME,
    IMPORT_TIMEOUT,
    MAXIMUM_LOD,
    MULTITHREADED,
    UNLIT_SHADER_NAME,
)
from ..core.components import Collider, ColliderType, LodGroup, MeshData, MeshFilter, Renderer
from ..core.scene import SceneNode
from ..exceptions import ImportTimeoutError, StructuralError
from .async_helper import AsyncCoroutineHelper
from .data_loader import DataLoader
from .material import Material, Shader, Texture

logger = logging.getLogger(__name__)

GLB_MAGIC = b"glTF"

COMPONENT_DTYPES = {
    5120: np.int8,     # BYTE
    5121: np.uint8,    # UNSIGNED_BYTE
    5122: np.int16,    # SHORT
    5123: np.uint16,   # UNSIGNED_SHORT
    5125: np.uint32,   # UNSIGNED_INT
    5126: np.float32,  # FLOAT
}

COMPONENT_COUNTS = {
    'SCALAR': 1,
    'VEC2': 2,
    'VEC3': 3,
    'VEC4': 4,
    'MAT2': 4,
    'MAT3': 9,
    'MAT4': 16,
}

_PARSE_ERRORS = (ValueError, KeyError, TypeError, AttributeError, IndexError, struct.error)


class GltfSceneImporter:
    """
    Imports one glTF document.

    Configure the public fields, then await :meth:`load_scene` or
    :meth:`load_material`. The document is fetched and parsed once and
    shared between calls until :meth:`dispose`.
    """

    def __init__(self, filename: str, loader: DataLoader,
                 coroutine_helper: Optional[AsyncCoroutineHelper] = None):
        """
        Initialize importer.

        Args:
            filename: Primary document name, relative to the loader root
            loader: Source of the document and its sibling resources
            coroutine_helper: Scheduling helper used to yield during long imports
        """
        self.filename = filename
        self.loader = loader
        self.coroutine_helper = coroutine_helper if coroutine_helper is not None else AsyncCoroutineHelper()

        self.scene_parent: Optional[SceneNode] = None
        self.collider = ColliderType.NONE
        self.maximum_lod = MAXIMUM_LOD
        self.timeout = IMPORT_TIMEOUT
        self.is_multithreaded = MULTITHREADED
        self.custom_shader_name: Optional[str] = None

        self.last_loaded_scene: Optional[SceneNode] = None

        self._gltf: Optional[pygltflib.GLTF2] = None
        self._buffers: Dict[int, bytes] = {}
        self._materials: Dict[int, Material] = {}
        self._textures: Dict[int, Optional[Texture]] = {}
        self._default_material: Optional[Material] = None
        self._disposed = False

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def load_material(self, index: int) -> Material:
        """
        Load a single material (and its textures) without building the scene.

        Args:
            index: Material index in the document

        Returns:
            Material object
        """
        self._check_open()
        return await self._run_with_timeout(self._load_material(index), f"material {index}")

    async def load_scene(self, scene_index: Optional[int] = None):
        """
        Load a scene and parent its root under :attr:`scene_parent`.

        Args:
            scene_index: Scene to load (defaults to the document's default scene)
        """
        self._check_open()
        await self._run_with_timeout(self._load_scene(scene_index), "scene")

    def dispose(self):
        """Drop the parsed document and cached buffers."""
        if self._disposed:
            return
        self._disposed = True
        self._gltf = None
        self._buffers.clear()
        self._textures.clear()

    @property
    def disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------
    # Document and buffers
    # ------------------------------------------------------------------

    def _check_open(self):
        if self._disposed:
            raise RuntimeError("GltfSceneImporter used after dispose()")

    async def _run_with_timeout(self, operation, what: str):
        if not self.timeout or self.timeout <= 0:
            return await operation
        try:
            return await asyncio.wait_for(operation, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ImportTimeoutError(
                f"Loading {what} of '{self.filename}' exceeded {self.timeout}s"
            ) from e

    async def _ensure_document(self) -> pygltflib.GLTF2:
        if self._gltf is None:
            logger.info("Loading glTF document: %s", self.filename)
            data = await self.loader.load_stream(self.filename)
            self._gltf = await self.coroutine_helper.run_blocking(
                _parse_document, data, self.filename, threaded=self.is_multithreaded
            )
        return self._gltf

    async def _get_buffer_data(self, gltf: pygltflib.GLTF2, buffer_index: int) -> bytes:
        if buffer_index in self._buffers:
            return self._buffers[buffer_index]
        if not 0 <= buffer_index < len(gltf.buffers):
            raise StructuralError(f"Buffer {buffer_index} does not exist")

        buffer = gltf.buffers[buffer_index]
        if buffer.uri is None:
            # Embedded buffer (GLB)
            data = gltf.binary_blob()
            if data is None:
                raise StructuralError(f"Buffer {buffer_index} has no uri and the document has no binary chunk")
        elif buffer.uri.startswith("data:"):
            data = _decode_data_uri(buffer.uri)
        else:
            # External buffer file, resolved next to the document
            data = await self.loader.load_stream(unquote(buffer.uri))

        if buffer.byteLength is not None and len(data) < buffer.byteLength:
            raise StructuralError(
                f"Buffer {buffer_index} is {len(data)} bytes, expected {buffer.byteLength}"
            )
        self._buffers[buffer_index] = data
        return data

    async def _get_accessor_data(self, gltf: pygltflib.GLTF2, accessor_index: int) -> np.ndarray:
        """
        Get data from an accessor.

        Args:
            gltf: GLTF data
            accessor_index: Accessor index

        Returns:
            float32 array shaped (count, components)
        """
        if not 0 <= accessor_index < len(gltf.accessors):
            raise StructuralError(f"Accessor {accessor_index} does not exist")
        accessor = gltf.accessors[accessor_index]

        try:
            dtype = np.dtype(COMPONENT_DTYPES[accessor.componentType])
            component_count = COMPONENT_COUNTS[accessor.type]
        except KeyError as e:
            raise StructuralError(f"Accessor {accessor_index} has unsupported layout: {e}") from e

        if accessor.bufferView is None:
            # No buffer view means all zeros (sparse-only accessors)
            return np.zeros((accessor.count, component_count), dtype='f4')

        if not 0 <= accessor.bufferView < len(gltf.bufferViews):
            raise StructuralError(f"Accessor {accessor_index} references a missing buffer view")
        buffer_view = gltf.bufferViews[accessor.bufferView]
        buffer_data = await self._get_buffer_data(gltf, buffer_view.buffer)

        offset = (buffer_view.byteOffset or 0) + (accessor.byteOffset or 0)
        element_size = dtype.itemsize * component_count
        stride = buffer_view.byteStride or element_size
        end = offset + stride * (accessor.count - 1) + element_size if accessor.count else offset
        if end > len(buffer_data):
            raise StructuralError(f"Accessor {accessor_index} reads past the end of its buffer")

        if stride == element_size:
            # Tightly packed
            array = np.frombuffer(buffer_data, dtype=dtype, count=accessor.count * component_count, offset=offset)
        else:
            # Strided data
            data = bytearray()
            for i in range(accessor.count):
                element_offset = offset + i * stride
                data.extend(buffer_data[element_offset:element_offset + element_size])
            array = np.frombuffer(bytes(data), dtype=dtype)

        array = array.reshape(-1, component_count).astype('f4')
        if accessor.normalized and dtype.kind in "iu":
            array = np.maximum(array / np.iinfo(dtype).max, -1.0)
        return array

    # ------------------------------------------------------------------
    # Materials
    # ------------------------------------------------------------------

    async def _load_material(self, index: int) -> Material:
        gltf = await self._ensure_document()
        return await self._create_material(gltf, index)

    def _shader_for(self, unlit: bool) -> Shader:
        if self.custom_shader_name:
            return Shader(self.custom_shader_name)
        return Shader(UNLIT_SHADER_NAME if unlit else DEFAULT_SHADER_NAME)

    def _get_default_material(self) -> Material:
        if self._default_material is None:
            self._default_material = Material("Default", shader=self._shader_for(False))
        return self._default_material

    async def _create_material(self, gltf: pygltflib.GLTF2, index: int) -> Material:
        if index in self._materials:
            return self._materials[index]
        if not 0 <= index < len(gltf.materials):
            raise StructuralError(f"'{self.filename}' has no material {index}")

        gltf_mat = gltf.materials[index]
        extensions = gltf_mat.extensions or {}
        unlit = 'KHR_materials_unlit' in extensions

        material = Material(gltf_mat.name or f"Material_{index}", shader=self._shader_for(unlit))
        material.unlit = unlit

        pbr = gltf_mat.pbrMetallicRoughness
        if pbr:
            if pbr.baseColorFactor:
                material.base_color_factor = tuple(pbr.baseColorFactor)
            if pbr.metallicFactor is not None:
                material.metallic_factor = pbr.metallicFactor
            if pbr.roughnessFactor is not None:
                material.roughness_factor = pbr.roughnessFactor
            if pbr.baseColorTexture:
                material.set_texture("base_color", await self._load_texture(gltf, pbr.baseColorTexture.index))
            if pbr.metallicRoughnessTexture:
                material.set_texture(
                    "metallic_roughness", await self._load_texture(gltf, pbr.metallicRoughnessTexture.index)
                )

        if gltf_mat.normalTexture:
            material.set_texture("normal", await self._load_texture(gltf, gltf_mat.normalTexture.index))
            if gltf_mat.normalTexture.scale is not None:
                material.normal_scale = gltf_mat.normalTexture.scale

        if gltf_mat.occlusionTexture:
            material.set_texture("occlusion", await self._load_texture(gltf, gltf_mat.occlusionTexture.index))
            if gltf_mat.occlusionTexture.strength is not None:
                material.occlusion_strength = gltf_mat.occlusionTexture.strength

        if gltf_mat.emissiveTexture:
            material.set_texture("emissive", await self._load_texture(gltf, gltf_mat.emissiveTexture.index))
        if gltf_mat.emissiveFactor is not None:
            material.emissive_factor = tuple(gltf_mat.emissiveFactor)

        emissive_ext = extensions.get('KHR_materials_emissive_strength')
        if isinstance(emissive_ext, dict) and 'emissiveStrength' in emissive_ext:
            material.emissive_strength = emissive_ext['emissiveStrength']

        if gltf_mat.alphaMode:
            material.alpha_mode = gltf_mat.alphaMode
        if gltf_mat.alphaCutoff is not None:
            material.alpha_cutoff = gltf_mat.alphaCutoff
        material.double_sided = bool(gltf_mat.doubleSided)

        logger.debug("  Material: %s (shader %s)", material.name, material.shader.name)
        self._materials[index] = material
        await self.coroutine_helper.yield_if_needed()
        return material

    async def _load_texture(self, gltf: pygltflib.GLTF2, texture_index: int) -> Optional[Texture]:
        if texture_index in self._textures:
            return self._textures[texture_index]
        if not 0 <= texture_index < len(gltf.textures):
            raise StructuralError(f"Texture {texture_index} does not exist")

        texture = gltf.textures[texture_index]
        if texture.source is None:
            self._textures[texture_index] = None
            return None
        if not 0 <= texture.source < len(gltf.images):
            raise StructuralError(f"Texture {texture_index} references missing image {texture.source}")

        image = gltf.images[texture.source]
        name = image.name or image.uri or f"Image_{texture.source}"
        if image.uri:
            if image.uri.startswith("data:"):
                data = _decode_data_uri(image.uri)
            else:
                data = await self.loader.load_stream(unquote(image.uri))
        elif image.bufferView is not None:
            if not 0 <= image.bufferView < len(gltf.bufferViews):
                raise StructuralError(f"Image '{name}' references a missing buffer view")
            buffer_view = gltf.bufferViews[image.bufferView]
            buffer_data = await self._get_buffer_data(gltf, buffer_view.buffer)
            offset = buffer_view.byteOffset or 0
            data = buffer_data[offset:offset + buffer_view.byteLength]
        else:
            raise StructuralError(f"Image '{name}' has neither uri nor bufferView")

        result = await self.coroutine_helper.run_blocking(
            _decode_image, data, name, threaded=self.is_multithreaded
        )
        self._textures[texture_index] = result
        return result

    # ------------------------------------------------------------------
    # Scene hierarchy
    # ------------------------------------------------------------------

    async def _load_scene(self, scene_index: Optional[int]):
        gltf = await self._ensure_document()
        if not gltf.scenes:
            raise StructuralError(f"'{self.filename}' contains no scenes")

        if scene_index is None:
            scene_index = gltf.scene if gltf.scene is not None else 0
        if not 0 <= scene_index < len(gltf.scenes):
            raise StructuralError(f"'{self.filename}' has no scene {scene_index}")

        gltf_scene = gltf.scenes[scene_index]
        root = SceneNode(gltf_scene.name or "GLTFScene")
        for node_index in gltf_scene.nodes or []:
            await self._create_node(gltf, node_index, root, frozenset())

        await self._attach_animations(gltf, root)

        # Attach only once the whole scene is built
        if self.scene_parent is not None:
            root.set_parent(self.scene_parent)
        self.last_loaded_scene = root
        logger.info("Loaded scene '%s' (%d nodes)", root.name, root.get_object_count())

    async def _create_node(self, gltf: pygltflib.GLTF2, node_index: int,
                           parent: SceneNode, ancestors: frozenset) -> SceneNode:
        """
        Recursively create a node, its mesh components, LOD levels and children.

        Args:
            gltf: GLTF data
            node_index: Index of current node
            parent: Node to attach the new node under
            ancestors: Indices on the path from the scene root (cycle check)

        Returns:
            The created node
        """
        if not 0 <= node_index < len(gltf.nodes):
            raise StructuralError(f"Node {node_index} does not exist")
        if node_index in ancestors:
            raise StructuralError(f"Node {node_index} is its own ancestor")

        gltf_node = gltf.nodes[node_index]
        node = SceneNode(
            _node_name(gltf_node, node_index),
            local_transform=_get_node_transform(gltf_node),
            parent=parent,
        )
        path = ancestors | {node_index}

        if gltf_node.mesh is not None:
            await self._attach_mesh(gltf, gltf_node.mesh, node)

        lod_ids = self._lod_ids(gltf_node)
        if lod_ids:
            levels = [node]
            for lod_index in lod_ids:
                level = await self._create_node(gltf, lod_index, node, path)
                level.active = False
                levels.append(level)
            node.add_component(LodGroup(levels))

        for child_index in gltf_node.children or []:
            await self._create_node(gltf, child_index, node, path)

        await self.coroutine_helper.yield_if_needed()
        return node

    def _lod_ids(self, gltf_node) -> List[int]:
        lod_ext = (gltf_node.extensions or {}).get("MSFT_lod")
        if not isinstance(lod_ext, dict):
            return []
        ids = lod_ext.get("ids") or []
        return list(ids)[:max(self.maximum_lod, 0)]

    async def _attach_mesh(self, gltf: pygltflib.GLTF2, mesh_index: int, node: SceneNode):
        if not 0 <= mesh_index < len(gltf.meshes):
            raise StructuralError(f"Mesh {mesh_index} does not exist")

        gltf_mesh = gltf.meshes[mesh_index]
        primitives = gltf_mesh.primitives or []
        for prim_idx, primitive in enumerate(primitives):
            # Single-primitive meshes live on the node itself
            target = node if len(primitives) == 1 else SceneNode(f"Primitive_{prim_idx}", parent=node)
            mesh = await self._create_mesh_data(gltf, gltf_mesh, mesh_index, primitive, prim_idx)

            if primitive.material is not None:
                material = await self._create_material(gltf, primitive.material)
            else:
                material = self._get_default_material()

            target.add_component(MeshFilter(mesh))
            target.add_component(Renderer(material))
            if self.collider is not ColliderType.NONE:
                target.add_component(Collider(self.collider, mesh))

            logger.debug("  Mesh: %s, vertices: %d", mesh.name, mesh.vertex_count)

    async def _create_mesh_data(self, gltf: pygltflib.GLTF2, gltf_mesh, mesh_index: int,
                                primitive, prim_idx: int) -> MeshData:
        position_index = getattr(primitive.attributes, "POSITION", None)
        if position_index is None:
            raise StructuralError(f"Mesh {mesh_index} primitive {prim_idx} has no POSITION attribute")
        if not 0 <= position_index < len(gltf.accessors):
            raise StructuralError(f"Accessor {position_index} does not exist")

        accessor = gltf.accessors[position_index]
        if accessor.min and accessor.max:
            bounds_min = np.array(accessor.min[:3], dtype='f4')
            bounds_max = np.array(accessor.max[:3], dtype='f4')
        else:
            positions = await self._get_accessor_data(gltf, position_index)
            bounds_min = positions.min(axis=0) if len(positions) else np.zeros(3, dtype='f4')
            bounds_max = positions.max(axis=0) if len(positions) else np.zeros(3, dtype='f4')

        index_count = 0
        if primitive.indices is not None:
            if not 0 <= primitive.indices < len(gltf.accessors):
                raise StructuralError(f"Accessor {primitive.indices} does not exist")
            index_count = gltf.accessors[primitive.indices].count

        return MeshData(
            name=f"{gltf_mesh.name or 'Mesh'}_{prim_idx}",
            vertex_count=accessor.count,
            index_count=index_count,
            bounds_min=bounds_min,
            bounds_max=bounds_max,
            mesh_index=mesh_index,
        )

    # ------------------------------------------------------------------
    # Animations
    # ------------------------------------------------------------------

    async def _attach_animations(self, gltf: pygltflib.GLTF2, root: SceneNode):
        """Attach one AnimationPlayer per document animation to ``root``, in document order."""
        for anim_idx, gltf_anim in enumerate(gltf.animations or []):
            clip = Animation(gltf_anim.name or f"Animation_{anim_idx}")

            for channel in gltf_anim.channels or []:
                target_node_idx = channel.target.node
                if target_node_idx is None:
                    continue
                if not 0 <= target_node_idx < len(gltf.nodes):
                    raise StructuralError(f"Animation '{clip.name}' targets missing node {target_node_idx}")

                try:
                    target_property = AnimationTarget(channel.target.path)
                except ValueError:
                    logger.warning("Unknown animation target path: %s", channel.target.path)
                    continue

                if not 0 <= channel.sampler < len(gltf_anim.samplers):
                    raise StructuralError(f"Animation '{clip.name}' references missing sampler {channel.sampler}")
                sampler = gltf_anim.samplers[channel.sampler]
                interpolation = InterpolationType.parse(sampler.interpolation)

                times = (await self._get_accessor_data(gltf, sampler.input))[:, 0]
                values = await self._get_accessor_data(gltf, sampler.output)
                if len(times) == 0:
                    continue

                try:
                    if interpolation == InterpolationType.CUBICSPLINE:
                        # (in-tangent, value, out-tangent) per keyframe; keep the value
                        values = values.reshape(len(times), 3, -1)[:, 1]
                    else:
                        values = values.reshape(len(times), -1)
                except ValueError as e:
                    raise StructuralError(
                        f"Animation '{clip.name}' has mismatched sampler input/output counts"
                    ) from e

                anim_channel = AnimationChannel(
                    target_node_name=_node_name(gltf.nodes[target_node_idx], target_node_idx),
                    target_property=target_property,
                    interpolation=interpolation,
                )
                try:
                    for time, value in zip(times, values):
                        if target_property == AnimationTarget.ROTATION:
                            # glTF and pyrr both store quaternions as (x, y, z, w)
                            value = Quaternion(value)
                        elif target_property in (AnimationTarget.TRANSLATION, AnimationTarget.SCALE):
                            value = Vector3(value)
                        anim_channel.add_keyframe(float(time), value)
                except ValueError as e:
                    raise StructuralError(f"Animation '{clip.name}': {e}") from e

                clip.add_channel(anim_channel)

            root.add_component(AnimationPlayer(clip))
            logger.debug("  Animation: %s (%.2fs)", clip.name, clip.duration)
            await self.coroutine_helper.yield_if_needed()


def _parse_document(data: bytes, filename: str) -> pygltflib.GLTF2:
    try:
        if data[:4] == GLB_MAGIC:
            gltf = pygltflib.GLTF2.load_from_bytes(data)
        else:
            gltf = pygltflib.GLTF2.from_json(data.decode("utf-8-sig"))
    except _PARSE_ERRORS as e:
        raise StructuralError(f"Failed to parse '{filename}': {e}") from e

    if gltf is None or not isinstance(gltf, pygltflib.GLTF2):
        raise StructuralError(f"Failed to parse '{filename}'")

    version = (gltf.asset.version if gltf.asset else None) or ""
    if not str(version).startswith("2"):
        raise StructuralError(f"Unsupported glTF version '{version}' in '{filename}'")
    return gltf


def _decode_data_uri(uri: str) -> bytes:
    header, separator, payload = uri.partition(",")
    if not separator or not header.endswith(";base64"):
        raise StructuralError(f"Unsupported data URI: {header[:64]}")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise StructuralError(f"Invalid base64 data URI: {e}") from e


def _decode_image(data: bytes, name: str) -> Texture:
    try:
        with Image.open(BytesIO(data)) as img:
            rgba = img.convert('RGBA')
    except (OSError, ValueError) as e:
        raise StructuralError(f"Failed to decode image '{name}': {e}") from e
    return Texture(name, rgba.size, rgba.mode, rgba.tobytes())


def _node_name(gltf_node, node_index: int) -> str:
    return gltf_node.name if gltf_node.name else f"Node_{node_index}"


def _get_node_transform(gltf_node) -> Matrix44:
    """
    Extract transformation matrix from a GLTF node.

    Args:
        gltf_node: GLTF node

    Returns:
        4x4 transformation matrix (row-major)
    """
    if gltf_node.matrix is not None and len(gltf_node.matrix) == 16:
        # glTF stores column-major; reshaping row-wise yields pyrr's row-major layout
        return Matrix44(np.array(gltf_node.matrix, dtype='f4').reshape(4, 4))

    # Otherwise, compose from TRS (Translation, Rotation, Scale)
    matrix = Matrix44.identity()
    if gltf_node.scale is not None:
        matrix = matrix @ Matrix44.from_scale(list(gltf_node.scale))
    if gltf_node.rotation is not None:
        matrix = matrix @ Matrix44.from_quaternion(Quaternion(list(gltf_node.rotation)))
    if gltf_node.translation is not None:
        matrix = matrix @ Matrix44.from_translation(list(gltf_node.translation))
    return Matrix44(matrix)
