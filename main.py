#!/usr/bin/env python3
"""
glTF Load Component - Main Entry Point

Loads a glTF document from disk or over HTTP and prints the resulting
scene hierarchy.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Sequence

from src.gltfload import (
    ColliderType,
    GltfComponent,
    GltfLoadError,
    LoadConfiguration,
    MeshFilter,
    RetryPolicy,
    SceneNode,
    Shader,
)
from src.gltfload.loaders.uri_helper import is_remote

logger = logging.getLogger(__name__)


def _build_config(args: argparse.Namespace) -> LoadConfiguration:
    if args.config:
        config = LoadConfiguration.from_json(args.config)
    else:
        config = _config_from_options(args)

    if not config.use_local_file and not is_remote(config.uri):
        raise ValueError(f"'{config.uri}' is not an http(s) URL; pass --local to read a file")
    return config


def _config_from_options(args: argparse.Namespace) -> LoadConfiguration:
    options = {
        "uri": args.uri,
        "use_local_file": args.local,
        "append_base_asset_path": not args.no_asset_root,
        "multithreaded": not args.single_thread,
        "materials_only": args.materials_only,
        "autoplay_animation": not args.no_autoplay,
        "collider": ColliderType.from_name(args.collider),
        "retry_policy": RetryPolicy(args.retry_policy),
        "shader_override": Shader(args.shader) if args.shader else None,
    }
    if args.retries is not None:
        options["retry_limit"] = args.retries
    if args.retry_delay is not None:
        options["retry_delay"] = args.retry_delay
    if args.timeout is not None:
        options["timeout"] = args.timeout
    if args.max_lod is not None:
        options["maximum_lod"] = args.max_lod
    return LoadConfiguration(**options)


def _print_tree(node: SceneNode, depth: int = 0):
    details = []
    mesh_filter = node.get_component(MeshFilter)
    if mesh_filter is not None:
        details.append(f"{mesh_filter.mesh.vertex_count} verts")
    details.extend(type(c).__name__ for c in node.components if not isinstance(c, MeshFilter))
    suffix = f"  [{', '.join(details)}]" if details else ""
    print(f"{'  ' * depth}{node.name}{suffix}")
    for child in node.children:
        _print_tree(child, depth + 1)


def cli(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Load a glTF document and print its scene hierarchy.",
    )
    parser.add_argument("uri", nargs="?", help="Document URL, or path when --local is given.")
    parser.add_argument("--config", help="JSON load configuration (overrides all other options).")
    parser.add_argument("--local", action="store_true", help="Read from the local file system.")
    parser.add_argument(
        "--no-asset-root",
        action="store_true",
        help="Use local paths as given instead of resolving them under the streaming assets directory.",
    )
    parser.add_argument("--single-thread", action="store_true", help="Parse on the event loop thread.")
    parser.add_argument("--materials-only", action="store_true", help="Load material 0 onto a preview cube.")
    parser.add_argument("--no-autoplay", action="store_true", help="Do not start the first animation.")
    parser.add_argument(
        "--collider",
        default="none",
        choices=[c.value for c in ColliderType],
        help="Collider generated for imported meshes.",
    )
    parser.add_argument("--shader", help="Shader name forced onto every loaded material.")
    parser.add_argument("--retries", type=int, help="Retries after a failed attempt.")
    parser.add_argument("--retry-delay", type=float, help="Seconds between attempts.")
    parser.add_argument(
        "--retry-policy",
        default=RetryPolicy.STANDARD.value,
        choices=[p.value for p in RetryPolicy],
        help="Which failures are retried.",
    )
    parser.add_argument("--timeout", type=int, help="Importer time budget in seconds (0 disables).")
    parser.add_argument("--max-lod", type=int, help="Maximum MSFT_lod levels per node.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    if not args.uri and not args.config:
        parser.error("a uri or --config is required")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = _build_config(args)
    except (ValueError, OSError) as exc:
        parser.error(str(exc))

    component = GltfComponent(config, node=SceneNode("Scene"))
    try:
        result = asyncio.run(component.load_with_retries())
    except GltfLoadError as exc:
        logger.error("Load failed after %d attempt(s): %s", component.attempt_index + 1, exc)
        return 1

    _print_tree(component.node)
    if result.animations:
        names = ", ".join(player.name for player in result.animations)
        print(f"Animations: {names}")
        playing = [player.name for player in result.animations if player.is_playing]
        if playing:
            print(f"Playing: {playing[0]}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """CLI-compatible entry point."""

    return cli(argv)


if __name__ == "__main__":
    raise SystemExit(cli())
