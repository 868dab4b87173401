"""Recording test doubles for the load component."""

from src.gltfload.animation import AnimationPlayer
from src.gltfload.animation.animation import Animation
from src.gltfload.core.components import MeshData, MeshFilter, Renderer
from src.gltfload.core.scene import SceneNode
from src.gltfload.loaders.data_loader import DataLoader
from src.gltfload.loaders.importer_factory import ImporterFactory
from src.gltfload.loaders.material import Material


class RecordingLoader(DataLoader):
    """Loader that serves nothing and counts dispose calls."""

    def __init__(self, root, location=None):
        super().__init__(root)
        self.location = location
        self.dispose_count = 0

    async def load_stream(self, relative_path):
        raise AssertionError("The fake importer never reads from the loader")

    async def dispose(self):
        self.dispose_count += 1
        await super().dispose()


class FakeImporter:
    """Importer double that records configuration and calls."""

    def __init__(self, filename, loader, helper, error=None, animations=(), block=None,
                 attach_before_error=False):
        self.filename = filename
        self.loader = loader
        self.coroutine_helper = helper
        self.scene_parent = None
        self.collider = None
        self.maximum_lod = None
        self.timeout = None
        self.is_multithreaded = None
        self.custom_shader_name = None
        self.last_loaded_scene = None

        self.error = error
        self.animation_names = animations
        self.block = block
        self.attach_before_error = attach_before_error
        self.material = Material("FakeMaterial")
        self.load_scene_calls = 0
        self.load_material_calls = []
        self.config_at_load = None
        self.dispose_count = 0

    def _snapshot(self):
        self.config_at_load = {
            "scene_parent": self.scene_parent,
            "collider": self.collider,
            "maximum_lod": self.maximum_lod,
            "timeout": self.timeout,
            "is_multithreaded": self.is_multithreaded,
            "custom_shader_name": self.custom_shader_name,
        }

    async def load_material(self, index):
        self._snapshot()
        self.load_material_calls.append(index)
        if self.block is not None:
            await self.block.wait()
        if self.error is not None:
            raise self.error
        return self.material

    async def load_scene(self):
        self._snapshot()
        self.load_scene_calls += 1
        if self.block is not None:
            await self.block.wait()

        root = SceneNode("FakeScene")
        child = SceneNode("Body", parent=root)
        child.add_component(MeshFilter(MeshData("Body_0", vertex_count=3)))
        child.add_component(Renderer(Material("BodyMaterial")))
        grandchild = SceneNode("Hat", parent=child)
        grandchild.add_component(Renderer(Material("HatMaterial")))
        for name in self.animation_names:
            clip = Animation(name)
            root.add_component(AnimationPlayer(clip))

        if self.error is not None:
            if self.attach_before_error:
                root.set_parent(self.scene_parent)
            raise self.error

        root.set_parent(self.scene_parent)
        self.last_loaded_scene = root

    def dispose(self):
        self.dispose_count += 1


class FakeFactory(ImporterFactory):
    """
    Hands out FakeImporters.

    ``errors`` lists the error (or None for success) of successive
    attempts; attempts past the end of the list succeed.
    """

    def __init__(self, errors=(), animations=("Walk", "Run"), create_error=None, block=None,
                 attach_before_error=False):
        self.errors = list(errors)
        self.animations = animations
        self.create_error = create_error
        self.block = block
        self.attach_before_error = attach_before_error
        self.importers = []

    def create_scene_importer(self, filename, loader, coroutine_helper):
        if self.create_error is not None:
            raise self.create_error
        error = self.errors.pop(0) if self.errors else None
        importer = FakeImporter(
            filename, loader, coroutine_helper,
            error=error,
            animations=self.animations,
            block=self.block,
            attach_before_error=self.attach_before_error,
        )
        self.importers.append(importer)
        return importer


class LoaderRecorder:
    """loader_factory that remembers every loader it built."""

    def __init__(self):
        self.loaders = []

    def __call__(self, location):
        loader = RecordingLoader(location.directory, location)
        self.loaders.append(loader)
        return loader


class SleepRecorder:
    """Retry-delay double that records requested delays without waiting."""

    def __init__(self, block=None):
        self.delays = []
        self.block = block

    async def __call__(self, seconds):
        self.delays.append(seconds)
        if self.block is not None:
            await self.block.wait()
