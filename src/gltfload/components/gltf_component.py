"""
glTF Load Component

Loads a glTF scene under a host node, with source selection, post-load
processing, bounded retries and per-attempt resource cleanup.
"""

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from ..animation import AnimationPlayer
from ..config.settings import PLACEHOLDER_NAME, STREAMING_ASSETS_DIR
from ..core.components import PrimitiveType, Renderer, create_primitive
from ..core.scene import SceneNode
from ..exceptions import LoadInProgressError
from ..loaders.async_helper import AsyncCoroutineHelper
from ..loaders.data_loader import DataLoader, SourceLocation, create_data_loader, resolve_source
from ..loaders.importer_factory import DefaultImporterFactory, ImporterFactory
from ..loaders.material import Shader
from .load_config import LoadConfiguration

logger = logging.getLogger(__name__)

LoaderFactory = Callable[[SourceLocation], DataLoader]
Sleep = Callable[[float], Awaitable[None]]


class LoadState(Enum):
    """Lifecycle of the component's current (or last) load."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED_RETRYABLE = "failed_retryable"
    FAILED_FATAL = "failed_fatal"


@dataclass(frozen=True)
class LoadResult:
    """Outcome of a successful load."""

    root: Optional[SceneNode]
    animations: Tuple[AnimationPlayer, ...]
    materials_only: bool
    placeholder: Optional[SceneNode] = None
    attempts: int = 1


class GltfComponent:
    """
    Loads a glTF document under :attr:`node`.

    Only one load runs at a time: calling :meth:`load`, :meth:`load_with_retries`
    or :meth:`start` while a load is in flight (retry delays included) raises
    :class:`LoadInProgressError`.
    """

    def __init__(self, config: LoadConfiguration, node: Optional[SceneNode] = None,
                 factory: Optional[ImporterFactory] = None,
                 loader_factory: LoaderFactory = create_data_loader,
                 coroutine_helper: Optional[AsyncCoroutineHelper] = None,
                 asset_root: Union[str, Path] = STREAMING_ASSETS_DIR,
                 sleep: Sleep = asyncio.sleep):
        """
        Initialize component.

        Args:
            config: Load options
            node: Host node the scene is parented under (a new node if omitted)
            factory: Importer factory (DefaultImporterFactory if omitted)
            loader_factory: Builds the data loader for a resolved source
            coroutine_helper: Scheduling helper handed to importers
            asset_root: Directory local URIs are resolved against
            sleep: Awaitable used for retry delays
        """
        self.config = config
        self.node = node if node is not None else SceneNode("GLTFComponent")
        self.factory = factory if factory is not None else DefaultImporterFactory()
        self.loader_factory = loader_factory
        self.coroutine_helper = coroutine_helper if coroutine_helper is not None else AsyncCoroutineHelper()
        self.asset_root = asset_root
        self._sleep = sleep

        self.state = LoadState.IDLE
        self.attempt_index = 0
        self.result: Optional[LoadResult] = None
        self.last_loaded_scene: Optional[SceneNode] = None
        self.animations: List[AnimationPlayer] = []
        self.last_error: Optional[BaseException] = None
        self._busy = False

    @property
    def is_loading(self) -> bool:
        return self._busy

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def start(self) -> Optional[LoadResult]:
        """
        Activation entry point.

        Returns:
            The load result, or None when ``load_on_start`` is disabled
        """
        if not self.config.load_on_start:
            return None
        return await self.load_with_retries()

    async def load(self) -> LoadResult:
        """
        Run a single load attempt.

        Errors propagate unchanged; the component is left in FAILED_FATAL.

        Returns:
            LoadResult of the attempt
        """
        self._acquire()
        config = self.config
        self.attempt_index = 0
        try:
            return await self._run_attempt(config)
        except BaseException as e:
            self._fail(LoadState.FAILED_FATAL, e)
            raise
        finally:
            self._busy = False

    async def load_with_retries(self) -> LoadResult:
        """
        Load, retrying failures the configured policy classifies as retryable.

        Makes at most ``retry_limit + 1`` attempts, sleeping ``retry_delay``
        seconds before each retry. When retries are exhausted, or a failure
        is not retryable, the error of the last attempt is re-raised.

        Returns:
            LoadResult of the successful attempt
        """
        self._acquire()
        config = self.config
        self.attempt_index = 0
        try:
            while True:
                try:
                    return await self._run_attempt(config)
                except Exception as e:
                    if not config.retry_policy.is_retryable(e) or self.attempt_index >= config.retry_limit:
                        self._fail(LoadState.FAILED_FATAL, e)
                        raise
                    self._fail(LoadState.FAILED_RETRYABLE, e)

                self.attempt_index += 1
                logger.warning(
                    "Load failed, retrying in %.1fs (retry %d/%d): %s",
                    config.retry_delay, self.attempt_index, config.retry_limit, self.last_error,
                )
                await self._sleep(config.retry_delay)
        except BaseException as e:
            if self.state is not LoadState.FAILED_FATAL:
                # Cancelled mid-attempt or mid-delay
                self._fail(LoadState.FAILED_FATAL, e)
            raise
        finally:
            self._busy = False

    # ------------------------------------------------------------------
    # One attempt
    # ------------------------------------------------------------------

    def _acquire(self):
        if self._busy:
            raise LoadInProgressError(f"A load of '{self.config.uri}' is already in progress")
        self._busy = True

    def _fail(self, state: LoadState, error: BaseException):
        self.state = state
        self.last_error = error

    async def _run_attempt(self, config: LoadConfiguration) -> LoadResult:
        self.state = LoadState.LOADING
        logger.info("Loading %s (attempt %d)", config.uri, self.attempt_index + 1)

        existing_children = list(self.node.children)
        try:
            result = await self._import(config)
        except BaseException:
            # Detach whatever this attempt managed to attach
            for child in list(self.node.children):
                if child not in existing_children:
                    child.detach()
            raise

        self.result = result
        self.last_loaded_scene = result.root
        self.animations = list(result.animations)
        self.last_error = None
        self.state = LoadState.SUCCEEDED
        logger.info("Loaded %s (%d animation(s))", config.uri, len(result.animations))
        return result

    async def _import(self, config: LoadConfiguration) -> LoadResult:
        location = resolve_source(
            config.uri, config.use_local_file, config.append_base_asset_path, self.asset_root
        )

        async with AsyncExitStack() as stack:
            loader = self.loader_factory(location)
            stack.push_async_callback(loader.dispose)

            importer = self.factory.create_scene_importer(location.filename, loader, self.coroutine_helper)
            stack.callback(importer.dispose)

            importer.scene_parent = self.node
            importer.collider = config.collider
            importer.maximum_lod = config.maximum_lod
            importer.timeout = config.timeout
            importer.is_multithreaded = config.multithreaded
            importer.custom_shader_name = config.shader_override.name if config.shader_override else None

            placeholder = None
            if config.materials_only:
                material = await importer.load_material(0)
                placeholder = create_primitive(PrimitiveType.CUBE, name=PLACEHOLDER_NAME)
                placeholder.set_parent(self.node)
                placeholder.get_component(Renderer).shared_material = material
                root = None
            else:
                await importer.load_scene()
                root = importer.last_loaded_scene

            if config.shader_override is not None:
                self._apply_shader_override(config.shader_override)

            animations = tuple(root.get_components(AnimationPlayer)) if root is not None else ()
            if config.autoplay_animation and animations:
                animations[0].play()

        return LoadResult(
            root=root,
            animations=animations,
            materials_only=config.materials_only,
            placeholder=placeholder,
            attempts=self.attempt_index + 1,
        )

    def _apply_shader_override(self, shader: Shader):
        """Point every renderer under the host node at ``shader``."""
        for renderer in self.node.get_components_in_children(Renderer, include_inactive=True):
            if renderer.shared_material is not None:
                renderer.shared_material.shader = shader
