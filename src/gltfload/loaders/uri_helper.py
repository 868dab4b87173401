"""
URI Helpers

Split document locations into a base directory and a file name.
"""

import posixpath
from urllib.parse import unquote, urlsplit


def is_remote(uri: str) -> bool:
    """True for absolute http(s) URLs."""
    parts = urlsplit(uri)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def get_directory_name(full_path: str) -> str:
    """
    Return everything up to and including the last path separator.

    Query strings and fragments are dropped first so that a ``/`` inside
    them is never mistaken for a directory boundary. Returns an empty
    string when the path has no directory component.

    Args:
        full_path: Local path or URL

    Returns:
        Directory portion of ``full_path``, keeping its trailing separator
    """
    path = full_path.split("#", 1)[0].split("?", 1)[0] if is_remote(full_path) else full_path
    cut = max(path.rfind("/"), path.rfind("\\"))
    if cut < 0:
        return ""
    return path[:cut + 1]


def get_file_from_uri(uri: str) -> str:
    """
    Return the last path segment of a URL, percent-decoded.

    Args:
        uri: Absolute URL

    Returns:
        File name of the resource the URL points at
    """
    parts = urlsplit(uri)
    if not parts.scheme:
        raise ValueError(f"Not an absolute URI: {uri}")
    name = posixpath.basename(parts.path)
    if not name:
        raise ValueError(f"URI has no file name: {uri}")
    return unquote(name)


def combine(base: str, relative: str) -> str:
    """Join a base directory (local or URL) with a relative resource path."""
    if not base or is_remote(relative):
        return relative
    if base.endswith(("/", "\\")):
        return base + relative
    return f"{base}/{relative}"
