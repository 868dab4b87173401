"""
Loader Configuration Settings

All configuration constants for the glTF load component.
Modify these values to change loader behavior.
"""

from pathlib import Path

# ============================================================================
# Project Paths
# ============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
ASSETS_DIR = PROJECT_ROOT / "assets"

# Platform asset root prepended to local URIs when append_base_asset_path is set
STREAMING_ASSETS_DIR = ASSETS_DIR / "streaming"

# ============================================================================
# Load Defaults
# ============================================================================

LOAD_ON_START = True
USE_LOCAL_FILE = False
APPEND_BASE_ASSET_PATH = True
MULTITHREADED = True
MATERIALS_ONLY = False
AUTOPLAY_ANIMATION = True

MAXIMUM_LOD = 300       # Upper bound on MSFT_lod levels instantiated per node
IMPORT_TIMEOUT = 8      # Seconds per importer operation (0 disables the bound)
COLLIDER = "none"       # Options: "none", "box", "mesh", "mesh_convex"

# ============================================================================
# Retry Settings
# ============================================================================

RETRY_LIMIT = 10        # Retries after the first attempt
RETRY_DELAY = 2.0       # Seconds between attempts

# Which failures are retried:
#   "standard":    only network fetch failures
#   "constrained": any failure (runtimes where fetch errors are not typed)
DEFAULT_RETRY_POLICY = "standard"

# ============================================================================
# Importer Settings
# ============================================================================

HTTP_TIMEOUT = 30.0               # Seconds for a single remote request
IMPORT_YIELD_BUDGET = 1.0 / 60.0  # Max seconds of import work between yields
DEFAULT_SHADER_NAME = "GLTF/PbrMetallicRoughness"
UNLIT_SHADER_NAME = "GLTF/Unlit"
PLACEHOLDER_NAME = "MaterialPreview"
