"""
Load configuration for :class:`~gltfload.components.gltf_component.GltfComponent`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import settings
from ..core.components import ColliderType
from ..exceptions import TransientFetchError
from ..loaders.material import Shader


class RetryPolicy(Enum):
    """
    Which load failures are retried.

    STANDARD retries only network fetch failures. CONSTRAINED retries any
    error, for runtimes whose networking stack does not surface typed
    fetch errors.
    """
    STANDARD = "standard"
    CONSTRAINED = "constrained"

    def is_retryable(self, error: BaseException) -> bool:
        if self is RetryPolicy.CONSTRAINED:
            return isinstance(error, Exception)
        return isinstance(error, TransientFetchError)


# JSON keys accepted in addition to the field names
_ALIASES = {
    "gltfUri": "uri",
    "useStream": "use_local_file",
    "useLocalFile": "use_local_file",
    "appendStreamingAssets": "append_base_asset_path",
    "appendBaseAssetPath": "append_base_asset_path",
    "materialsOnly": "materials_only",
    "playAnimationOnLoad": "autoplay_animation",
    "autoplayAnimation": "autoplay_animation",
    "retryCount": "retry_limit",
    "retryLimit": "retry_limit",
    "retryTimeout": "retry_delay",
    "retryDelay": "retry_delay",
    "maximumLod": "maximum_lod",
    "shaderOverride": "shader_override",
    "retryPolicy": "retry_policy",
    "loadOnStart": "load_on_start",
}


@dataclass(frozen=True)
class LoadConfiguration:
    """Options for loading one glTF document."""

    uri: str
    use_local_file: bool = settings.USE_LOCAL_FILE
    append_base_asset_path: bool = settings.APPEND_BASE_ASSET_PATH
    multithreaded: bool = settings.MULTITHREADED
    materials_only: bool = settings.MATERIALS_ONLY
    autoplay_animation: bool = settings.AUTOPLAY_ANIMATION
    retry_limit: int = settings.RETRY_LIMIT
    retry_delay: float = settings.RETRY_DELAY
    maximum_lod: int = settings.MAXIMUM_LOD
    timeout: int = settings.IMPORT_TIMEOUT
    collider: ColliderType = ColliderType.from_name(settings.COLLIDER)
    shader_override: Optional[Shader] = None
    retry_policy: RetryPolicy = RetryPolicy(settings.DEFAULT_RETRY_POLICY)
    load_on_start: bool = settings.LOAD_ON_START

    def __post_init__(self):
        if not self.uri:
            raise ValueError("uri must not be empty")
        if self.retry_limit < 0:
            raise ValueError(f"retry_limit must be >= 0, got {self.retry_limit}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {self.retry_delay}")
        if self.timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {self.timeout}")
        if self.maximum_lod < 0:
            raise ValueError(f"maximum_lod must be >= 0, got {self.maximum_lod}")

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "LoadConfiguration":
        """
        Build a configuration from JSON-shaped data.

        Keys may be field names or their camelCase aliases. ``collider`` and
        ``retry_policy`` are given by name, ``shader_override`` by shader name.
        """
        if not isinstance(payload, dict):
            raise ValueError("Load configuration must be an object")

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in payload.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown load option: {key}")
            values[name] = value

        if "collider" in values:
            values["collider"] = ColliderType.from_name(values["collider"])
        if "retry_policy" in values:
            values["retry_policy"] = RetryPolicy(str(values["retry_policy"]).lower())
        if values.get("shader_override") is not None:
            values["shader_override"] = Shader(str(values["shader_override"]))
        if "uri" not in values:
            raise ValueError("Load configuration is missing 'uri'")

        return cls(**values)

    @classmethod
    def from_json(cls, path: Path | str) -> "LoadConfiguration":
        """Load a configuration from a JSON file."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Load configuration not found: {config_path}")
        with config_path.open("r", encoding="utf-8") as handle:
            return cls.from_dict(json.load(handle))
