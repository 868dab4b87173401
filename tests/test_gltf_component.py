"""Tests for the GltfComponent load orchestration"""

import asyncio
import os

import pytest

from fakes import FakeFactory, LoaderRecorder, SleepRecorder
from src.gltfload.animation import AnimationPlayer
from src.gltfload.components import GltfComponent, LoadConfiguration, LoadState, RetryPolicy
from src.gltfload.core.components import ColliderType, Renderer
from src.gltfload.core.scene import SceneNode
from src.gltfload.exceptions import (
    ImportTimeoutError,
    LoadInProgressError,
    ResourceError,
    StructuralError,
    TransientFetchError,
)
from src.gltfload.loaders.data_loader import SourceKind
from src.gltfload.loaders.material import Shader

REMOTE_URI = "https://assets.example.com/models/duck.gltf"


def make_component(config, factory=None, sleep=None, asset_root="/opt/game/assets"):
    loaders = LoaderRecorder()
    component = GltfComponent(
        config,
        node=SceneNode("Host"),
        factory=factory if factory is not None else FakeFactory(),
        loader_factory=loaders,
        asset_root=asset_root,
        sleep=sleep if sleep is not None else SleepRecorder(),
    )
    return component, loaders


@pytest.mark.parametrize("retry_limit", [0, 1, 3])
def test_transient_failures_exhaust_retries(retry_limit):
    """N retries (N+1 attempts), then the final attempt's error is re-raised."""
    errors = [TransientFetchError(f"attempt {i}") for i in range(retry_limit + 1)]
    factory = FakeFactory(errors=list(errors))
    sleep = SleepRecorder()
    config = LoadConfiguration(uri=REMOTE_URI, retry_limit=retry_limit, retry_delay=0.25)
    component, loaders = make_component(config, factory, sleep)

    with pytest.raises(TransientFetchError) as excinfo:
        asyncio.run(component.load_with_retries())

    assert excinfo.value is errors[-1]
    assert len(factory.importers) == retry_limit + 1
    assert sleep.delays == [0.25] * retry_limit
    assert component.attempt_index == retry_limit
    assert component.state is LoadState.FAILED_FATAL
    assert component.result is None


def test_structural_error_is_not_retried():
    error = StructuralError("bad document")
    factory = FakeFactory(errors=[error])
    sleep = SleepRecorder()
    component, _ = make_component(LoadConfiguration(uri=REMOTE_URI, retry_limit=5), factory, sleep)

    with pytest.raises(StructuralError) as excinfo:
        asyncio.run(component.load_with_retries())

    assert excinfo.value is error
    assert len(factory.importers) == 1
    assert sleep.delays == []
    assert component.state is LoadState.FAILED_FATAL


@pytest.mark.parametrize("error", [ResourceError("disk"), ImportTimeoutError("slow")])
def test_standard_policy_treats_local_and_timeout_errors_as_fatal(error):
    factory = FakeFactory(errors=[error])
    component, _ = make_component(LoadConfiguration(uri=REMOTE_URI, retry_limit=3), factory)

    with pytest.raises(type(error)):
        asyncio.run(component.load_with_retries())

    assert len(factory.importers) == 1


def test_constrained_policy_retries_any_error():
    factory = FakeFactory(errors=[ResourceError("disk"), StructuralError("bad")])
    sleep = SleepRecorder()
    config = LoadConfiguration(uri=REMOTE_URI, retry_limit=3, retry_policy=RetryPolicy.CONSTRAINED)
    component, _ = make_component(config, factory, sleep)

    result = asyncio.run(component.load_with_retries())

    assert result.root is not None
    assert len(factory.importers) == 3
    assert len(sleep.delays) == 2
    assert result.attempts == 3


def test_local_file_scenario_succeeds_on_third_attempt():
    """Two fetch failures, success on the third attempt with two delays."""
    factory = FakeFactory(errors=[TransientFetchError("1"), TransientFetchError("2")])
    sleep = SleepRecorder()
    config = LoadConfiguration(
        uri="model.gltf",
        use_local_file=True,
        append_base_asset_path=True,
        retry_limit=2,
        retry_delay=1.5,
    )
    component, loaders = make_component(config, factory, sleep, asset_root="/opt/game/assets")

    result = asyncio.run(component.load_with_retries())

    assert component.state is LoadState.SUCCEEDED
    assert component.attempt_index == 2
    assert sleep.delays == [1.5, 1.5]
    assert result.root is not None
    assert component.result is result
    assert component.last_loaded_scene is result.root

    location = loaders.loaders[-1].location
    assert location.kind is SourceKind.LOCAL_FILE
    assert location.full_path == os.path.join("/opt/game/assets", "model.gltf")
    assert all(importer.filename == "model.gltf" for importer in factory.importers)


def test_leading_separator_does_not_discard_asset_root():
    config = LoadConfiguration(uri="/models/duck.gltf", use_local_file=True, append_base_asset_path=True)
    component, loaders = make_component(config, asset_root="/opt/game/assets")

    asyncio.run(component.load())

    location = loaders.loaders[0].location
    assert location.full_path == os.path.join("/opt/game/assets", "models/duck.gltf")
    assert location.filename == "duck.gltf"


def test_remote_source_is_selected_without_local_flag():
    component, loaders = make_component(LoadConfiguration(uri=REMOTE_URI + "?v=3"))

    asyncio.run(component.load())

    location = loaders.loaders[0].location
    assert location.kind is SourceKind.REMOTE
    assert location.directory == "https://assets.example.com/models/"
    assert location.filename == "duck.gltf"


def test_materials_only_loads_material_onto_placeholder():
    factory = FakeFactory()
    component, _ = make_component(LoadConfiguration(uri=REMOTE_URI, materials_only=True), factory)

    result = asyncio.run(component.load())

    importer = factory.importers[0]
    assert importer.load_scene_calls == 0
    assert importer.load_material_calls == [0]
    assert len(component.node.children) == 1

    placeholder = component.node.children[0]
    assert result.placeholder is placeholder
    assert placeholder.get_component(Renderer).shared_material is importer.material
    assert result.root is None
    assert result.animations == ()
    assert result.materials_only is True


def test_shader_override_applies_to_every_renderer():
    override = Shader("Custom/Toon")
    factory = FakeFactory()
    component, _ = make_component(LoadConfiguration(uri=REMOTE_URI, shader_override=override), factory)

    asyncio.run(component.load())

    renderers = component.node.get_components_in_children(Renderer)
    assert len(renderers) == 2
    assert all(renderer.shared_material.shader is override for renderer in renderers)
    assert factory.importers[0].custom_shader_name == "Custom/Toon"


def test_shader_override_applies_to_materials_only_placeholder():
    override = Shader("Custom/Preview")
    component, _ = make_component(
        LoadConfiguration(uri=REMOTE_URI, materials_only=True, shader_override=override)
    )

    result = asyncio.run(component.load())

    assert result.placeholder.get_component(Renderer).shared_material.shader is override


def test_importer_is_configured_before_loading():
    factory = FakeFactory()
    config = LoadConfiguration(
        uri=REMOTE_URI,
        collider=ColliderType.MESH_CONVEX,
        maximum_lod=2,
        timeout=30,
        multithreaded=False,
    )
    component, _ = make_component(config, factory)

    asyncio.run(component.load())

    snapshot = factory.importers[0].config_at_load
    assert snapshot["scene_parent"] is component.node
    assert snapshot["collider"] is ColliderType.MESH_CONVEX
    assert snapshot["maximum_lod"] == 2
    assert snapshot["timeout"] == 30
    assert snapshot["is_multithreaded"] is False
    assert snapshot["custom_shader_name"] is None


@pytest.mark.parametrize("errors", [[], [StructuralError("bad")]])
def test_resources_disposed_exactly_once_per_attempt(errors):
    factory = FakeFactory(errors=list(errors))
    component, loaders = make_component(LoadConfiguration(uri=REMOTE_URI, retry_limit=0), factory)

    try:
        asyncio.run(component.load_with_retries())
    except StructuralError:
        pass

    assert [loader.dispose_count for loader in loaders.loaders] == [1]
    assert [importer.dispose_count for importer in factory.importers] == [1]


def test_every_retry_disposes_its_own_resources():
    factory = FakeFactory(errors=[TransientFetchError("a"), TransientFetchError("b")])
    component, loaders = make_component(LoadConfiguration(uri=REMOTE_URI, retry_limit=2), factory)

    asyncio.run(component.load_with_retries())

    assert [loader.dispose_count for loader in loaders.loaders] == [1, 1, 1]
    assert [importer.dispose_count for importer in factory.importers] == [1, 1, 1]


def test_factory_failure_disposes_only_the_loader():
    factory = FakeFactory(create_error=StructuralError("unsupported extension"))
    component, loaders = make_component(LoadConfiguration(uri=REMOTE_URI), factory)

    with pytest.raises(StructuralError):
        asyncio.run(component.load())

    assert [loader.dispose_count for loader in loaders.loaders] == [1]
    assert factory.importers == []


def test_autoplay_starts_only_the_first_animation():
    component, _ = make_component(LoadConfiguration(uri=REMOTE_URI, autoplay_animation=True))

    result = asyncio.run(component.load())

    assert [player.name for player in result.animations] == ["Walk", "Run"]
    assert [player.is_playing for player in result.animations] == [True, False]
    assert component.animations == list(result.animations)


def test_autoplay_with_no_animations_is_a_no_op():
    component, _ = make_component(
        LoadConfiguration(uri=REMOTE_URI, autoplay_animation=True), FakeFactory(animations=())
    )

    result = asyncio.run(component.load())

    assert result.animations == ()
    assert result.root.get_components(AnimationPlayer) == []


def test_autoplay_disabled_leaves_animations_stopped():
    component, _ = make_component(LoadConfiguration(uri=REMOTE_URI, autoplay_animation=False))

    result = asyncio.run(component.load())

    assert len(result.animations) == 2
    assert not any(player.is_playing for player in result.animations)


def test_failed_attempt_detaches_partial_scene():
    factory = FakeFactory(errors=[StructuralError("late failure")], attach_before_error=True)
    component, _ = make_component(LoadConfiguration(uri=REMOTE_URI), factory)
    existing = SceneNode("Existing", parent=component.node)

    with pytest.raises(StructuralError):
        asyncio.run(component.load())

    assert component.node.children == [existing]
    assert component.result is None
    assert component.state is LoadState.FAILED_FATAL


def test_second_load_is_rejected_while_in_flight():
    async def scenario():
        block = asyncio.Event()
        factory = FakeFactory(block=block)
        component, _ = make_component(LoadConfiguration(uri=REMOTE_URI), factory)

        first = asyncio.create_task(component.load_with_retries())
        await asyncio.sleep(0)
        assert component.is_loading
        assert component.state is LoadState.LOADING

        with pytest.raises(LoadInProgressError):
            await component.load()
        with pytest.raises(LoadInProgressError):
            await component.start()

        block.set()
        result = await first
        return component, factory, result

    component, factory, result = asyncio.run(scenario())

    assert len(factory.importers) == 1
    assert component.state is LoadState.SUCCEEDED
    assert result.root is not None
    assert not component.is_loading


def test_load_is_rejected_during_retry_delay():
    async def scenario():
        release = asyncio.Event()
        sleep = SleepRecorder(block=release)
        factory = FakeFactory(errors=[TransientFetchError("down")])
        component, _ = make_component(LoadConfiguration(uri=REMOTE_URI, retry_limit=1), factory, sleep)

        task = asyncio.create_task(component.load_with_retries())
        while not sleep.delays:
            await asyncio.sleep(0)
        assert component.state is LoadState.FAILED_RETRYABLE

        with pytest.raises(LoadInProgressError):
            await component.load()

        release.set()
        await task
        return component, factory

    component, factory = asyncio.run(scenario())

    assert len(factory.importers) == 2
    assert component.state is LoadState.SUCCEEDED


def test_start_honours_load_on_start():
    factory = FakeFactory()
    component, _ = make_component(LoadConfiguration(uri=REMOTE_URI, load_on_start=False), factory)

    assert asyncio.run(component.start()) is None
    assert factory.importers == []
    assert component.state is LoadState.IDLE


def test_start_runs_retrying_load():
    factory = FakeFactory(errors=[TransientFetchError("flaky")])
    sleep = SleepRecorder()
    component, _ = make_component(LoadConfiguration(uri=REMOTE_URI, retry_limit=1), factory, sleep)

    result = asyncio.run(component.start())

    assert result.root is not None
    assert sleep.delays == [LoadConfiguration(uri=REMOTE_URI).retry_delay]


def test_single_load_does_not_retry():
    factory = FakeFactory(errors=[TransientFetchError("down")])
    sleep = SleepRecorder()
    component, _ = make_component(LoadConfiguration(uri=REMOTE_URI, retry_limit=4), factory, sleep)

    with pytest.raises(TransientFetchError):
        asyncio.run(component.load())

    assert len(factory.importers) == 1
    assert sleep.delays == []
    assert component.state is LoadState.FAILED_FATAL
