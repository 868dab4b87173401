"""Shared fixtures."""

import json

import pytest

from documents import buffer_bytes, make_document


@pytest.fixture
def write_document(tmp_path):
    """Write a glTF document (and its external buffer) into tmp_path."""

    def _write(document=None, name="model.gltf", **kwargs):
        document = document if document is not None else make_document(**kwargs)
        (tmp_path / name).write_text(json.dumps(document), encoding="utf-8")
        if kwargs.get("external_buffer"):
            (tmp_path / "model.bin").write_bytes(buffer_bytes())
        return tmp_path / name

    return _write
