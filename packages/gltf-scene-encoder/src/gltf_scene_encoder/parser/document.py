# SPDX-License-Identifier: MIT
"""Parsed glTF document together with its resolved binary buffers."""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from urllib.parse import unquote

import pygltflib

from gltf_scene_encoder.errors import (
    AccessorRangeError,
    DocumentLoadError,
    MissingSceneError,
)

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".gltf", ".glb")


class SourceDocument:
    """Read-only view of a glTF document.

    The document owns its arrays (nodes, meshes, accessors, ...) and the raw
    buffer bytes. Everything else refers to its entities by integer index.
    """

    def __init__(self, gltf: pygltflib.GLTF2, buffers: list[bytes]):
        """Initialize the document.

        Args:
            gltf: Parsed glTF structure
            buffers: Raw bytes for each entry of ``gltf.buffers``, in order
        """
        self.gltf = gltf
        self._buffers = [bytes(b) for b in buffers]

    @classmethod
    def from_gltf(
        cls, gltf: pygltflib.GLTF2, buffers: list[bytes] | None = None
    ) -> SourceDocument:
        """Create a document from an already parsed glTF structure.

        When ``buffers`` is omitted they are resolved from the document itself
        (GLB binary chunk or embedded data URIs).
        """
        if buffers is None:
            buffers = _resolve_buffers(gltf, base_dir=None)
        return cls(gltf, buffers)

    # Entity arrays
    @property
    def nodes(self) -> list[pygltflib.Node]:
        return self.gltf.nodes or []

    @property
    def meshes(self) -> list[pygltflib.Mesh]:
        return self.gltf.meshes or []

    @property
    def materials(self) -> list[pygltflib.Material]:
        return self.gltf.materials or []

    @property
    def animations(self) -> list[pygltflib.Animation]:
        return self.gltf.animations or []

    @property
    def textures(self) -> list[pygltflib.Texture]:
        return self.gltf.textures or []

    @property
    def images(self) -> list[pygltflib.Image]:
        return self.gltf.images or []

    def node(self, index: int) -> pygltflib.Node:
        return _lookup(self.nodes, index, "node")

    def mesh(self, index: int) -> pygltflib.Mesh:
        return _lookup(self.meshes, index, "mesh")

    def material(self, index: int) -> pygltflib.Material:
        return _lookup(self.materials, index, "material")

    def texture(self, index: int) -> pygltflib.Texture:
        return _lookup(self.textures, index, "texture")

    def image(self, index: int) -> pygltflib.Image:
        return _lookup(self.images, index, "image")

    def accessor(self, index: int) -> pygltflib.Accessor:
        return _lookup(self.gltf.accessors or [], index, "accessor")

    def buffer_view(self, index: int) -> pygltflib.BufferView:
        return _lookup(self.gltf.bufferViews or [], index, "buffer view")

    def buffer(self, index: int) -> bytes:
        return _lookup(self._buffers, index, "buffer")

    def animation_sampler(
        self, animation: pygltflib.Animation, index: int
    ) -> pygltflib.AnimationSampler:
        return animation_sampler(animation, index)

    def default_scene(self) -> tuple[int, pygltflib.Scene]:
        """Get the document's default scene.

        Returns:
            Tuple of (scene index, scene)

        Raises:
            MissingSceneError: If no default scene is declared or it is invalid
        """
        scenes = self.gltf.scenes or []
        index = self.gltf.scene
        if index is None:
            raise MissingSceneError("Document does not declare a default scene")
        if not 0 <= index < len(scenes):
            raise MissingSceneError(
                f"Default scene {index} out of range ({len(scenes)} scenes)"
            )
        return index, scenes[index]


def load_document(path: str | Path) -> SourceDocument:
    """Load a .gltf or .glb file and resolve all of its buffers.

    Args:
        path: Path to the glTF file

    Returns:
        SourceDocument ready for conversion

    Raises:
        DocumentLoadError: If the file cannot be read, parsed or its buffers resolved
    """
    path = Path(path)
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise DocumentLoadError(f"Unsupported file extension: {path.suffix}")
    if not path.exists():
        raise DocumentLoadError(f"File not found: {path}")

    logger.info("Loading glTF document %s", path)
    try:
        gltf = pygltflib.GLTF2.load(str(path))
    except Exception as e:
        raise DocumentLoadError(f"Failed to parse {path}: {e}") from e
    if gltf is None:
        raise DocumentLoadError(f"Failed to parse {path}")

    buffers = _resolve_buffers(gltf, base_dir=path.parent)
    return SourceDocument(gltf, buffers)


def animation_sampler(
    animation: pygltflib.Animation, index: int | None
) -> pygltflib.AnimationSampler:
    """Look up a sampler of an animation, raising AccessorRangeError when invalid."""
    return _lookup(animation.samplers or [], index, "animation sampler")


def _lookup(items: list, index: int | None, kind: str):
    if index is None or not 0 <= index < len(items):
        raise AccessorRangeError(f"Invalid {kind} index {index} ({len(items)} available)")
    return items[index]


def _resolve_buffers(gltf: pygltflib.GLTF2, base_dir: Path | None) -> list[bytes]:
    """Resolve the raw bytes of every buffer in the document."""
    resolved = []
    for i, buffer in enumerate(gltf.buffers or []):
        uri = buffer.uri
        if not uri:
            blob = gltf.binary_blob()
            if blob is None:
                raise DocumentLoadError(f"Buffer {i} has no URI and no binary chunk")
            data = blob
        elif uri.startswith("data:"):
            data = _decode_data_uri(uri)
            if data is None:
                raise DocumentLoadError(f"Buffer {i} has a malformed data URI")
        else:
            if base_dir is None:
                raise DocumentLoadError(
                    f"Buffer {i} references external file {uri} without a base path"
                )
            buffer_path = base_dir / unquote(uri)
            try:
                data = buffer_path.read_bytes()
            except OSError as e:
                raise DocumentLoadError(f"Cannot read buffer {buffer_path}: {e}") from e

        if buffer.byteLength is not None and len(data) < buffer.byteLength:
            raise DocumentLoadError(
                f"Buffer {i} is {len(data)} bytes, expected {buffer.byteLength}"
            )
        logger.debug("Resolved buffer %d (%d bytes)", i, len(data))
        resolved.append(data)
    return resolved


def _decode_data_uri(data_uri: str) -> bytes | None:
    """Decode a data URI to binary data.

    Args:
        data_uri: Data URI string (e.g., "data:application/octet-stream;base64,...")

    Returns:
        Decoded bytes or None if decoding fails
    """
    if not data_uri.startswith("data:"):
        return None

    try:
        # Parse data URI format: data:[<mediatype>][;base64],<data>
        header, encoded_data = data_uri.split(",", 1)
    except ValueError:
        return None

    if ";base64" in header:
        try:
            return base64.b64decode(encoded_data, validate=True)
        except ValueError:
            return None
    return unquote(encoded_data).encode("utf-8")
