# SPDX-License-Identifier: MIT
"""Build merged meshes from glTF mesh primitives."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import pygltflib

from gltf_scene_encoder.config import EncoderOptions
from gltf_scene_encoder.errors import AccessorRangeError, EncoderError
from gltf_scene_encoder.parser.accessor_reader import (
    read_float_accessor,
    read_index_accessor,
)
from gltf_scene_encoder.scene.scene_file import (
    MAX_TEX_COORDS,
    Mesh,
    MeshPart,
    PrimitiveType,
    Vertex,
    VertexUsage,
)

if TYPE_CHECKING:
    from gltf_scene_encoder.parser.document import SourceDocument

logger = logging.getLogger(__name__)

POSITION_COUNT = 3
NORMAL_COUNT = 3
TANGENT_COUNT = 3
BINORMAL_COUNT = 3
DIFFUSE_COUNT = 4
TEXCOORD_COUNT = 2


def translate_primitive_type(mode: int | None) -> PrimitiveType:
    """Map a glTF primitive mode to the internal topology enumeration."""
    if mode is None:
        return PrimitiveType.TRIANGLES
    try:
        return PrimitiveType(mode)
    except ValueError:
        raise EncoderError(f"Unsupported primitive mode: {mode}") from None


def primitive_attributes(primitive: pygltflib.Primitive) -> dict[str, int]:
    """Get the attribute name -> accessor index mapping of a primitive.

    Custom attributes that pygltflib stores outside its declared fields
    (BINORMAL, TEXCOORD_2, ...) are included.
    """
    attributes = primitive.attributes
    if attributes is None:
        return {}
    items = attributes.items() if isinstance(attributes, dict) else vars(attributes).items()
    return {
        name: index
        for name, index in items
        if isinstance(index, int) and not isinstance(index, bool) and index >= 0
    }


class MeshBuilder:
    """Converts glTF meshes into merged meshes, one per source mesh."""

    def __init__(self, document: SourceDocument, options: EncoderOptions | None = None):
        """Initialize the builder.

        Args:
            document: Source document owning the meshes and buffers
            options: Conversion options
        """
        self.document = document
        self.options = options or EncoderOptions()
        self._meshes: dict[int, Mesh] = {}
        self._emitted_primitives: dict[int, list[int]] = {}

    @property
    def meshes(self) -> dict[int, Mesh]:
        """Built meshes keyed by source mesh index, in build order."""
        return self._meshes

    def emitted_primitives(self, mesh_index: int) -> list[int]:
        """Source primitive indices that produced a mesh part, in part order."""
        return self._emitted_primitives.get(mesh_index, [])

    def get_or_create_mesh(self, mesh_index: int, mesh_id: str | None = None) -> Mesh:
        """Get the mesh built for a source mesh, building it on first use.

        Args:
            mesh_index: Index of the mesh in the source document
            mesh_id: Id to use; defaults to the mesh name or Mesh_<index>

        Returns:
            The single Mesh for this source mesh
        """
        if mesh_index in self._meshes:
            return self._meshes[mesh_index]

        gltf_mesh = self.document.mesh(mesh_index)
        if mesh_id is None:
            mesh_id = gltf_mesh.name or f"Mesh_{mesh_index}"

        mesh = Mesh(id=mesh_id)
        self._meshes[mesh_index] = mesh
        self._emitted_primitives[mesh_index] = []

        vertices, lengths, primitive_indices = self.load_vertex_data(gltf_mesh)
        if not vertices:
            logger.warning("Mesh %s has no vertex data, leaving it empty", mesh_id)
            return mesh

        # The declared layout only reflects the first primitive
        vertex0 = vertices[0]
        mesh.add_vertex_attribute(VertexUsage.POSITION, POSITION_COUNT)
        if vertex0.has_normal:
            mesh.add_vertex_attribute(VertexUsage.NORMAL, NORMAL_COUNT)
        if vertex0.has_tangent:
            mesh.add_vertex_attribute(VertexUsage.TANGENT, TANGENT_COUNT)
        if vertex0.has_binormal:
            mesh.add_vertex_attribute(VertexUsage.BINORMAL, BINORMAL_COUNT)
        if vertex0.has_diffuse:
            mesh.add_vertex_attribute(VertexUsage.COLOR, DIFFUSE_COUNT)
        for i in range(MAX_TEX_COORDS):
            if vertex0.has_tex_coord[i]:
                usage = VertexUsage(VertexUsage.TEXCOORD0 + i)
                mesh.add_vertex_attribute(usage, TEXCOORD_COUNT)

        for v in vertices:
            mesh.add_vertex(v)

        index_offset = 0
        for length, primitive_index in zip(lengths, primitive_indices):
            primitive = gltf_mesh.primitives[primitive_index]
            part = MeshPart(primitive_type=translate_primitive_type(primitive.mode))
            for index in self.load_index_data(primitive):
                part.add_index(int(index) + index_offset)
            mesh.add_mesh_part(part)
            index_offset += length

        self._emitted_primitives[mesh_index] = list(primitive_indices)
        logger.debug(
            "Built mesh %s: %d vertices, %d parts",
            mesh_id,
            len(mesh.vertices),
            len(mesh.parts),
        )
        return mesh

    def load_vertex_data(
        self, gltf_mesh: pygltflib.Mesh
    ) -> tuple[list[Vertex], list[int], list[int]]:
        """Decode and concatenate the vertices of every indexed primitive.

        Returns:
            Tuple of (merged vertices, vertex count per primitive,
            source index of each decoded primitive)
        """
        vertices: list[Vertex] = []
        lengths: list[int] = []
        primitive_indices: list[int] = []

        for i, primitive in enumerate(gltf_mesh.primitives or []):
            if primitive.indices is None or primitive.indices < 0:
                logger.warning("Skipping primitive %d without index accessor", i)
                continue

            attributes = primitive_attributes(primitive)
            if "POSITION" not in attributes:
                logger.warning("Skipping primitive %d without POSITION attribute", i)
                continue

            primitive_vertices = self._load_primitive_vertices(attributes)
            vertices.extend(primitive_vertices)
            lengths.append(len(primitive_vertices))
            primitive_indices.append(i)

        return vertices, lengths, primitive_indices

    def load_index_data(self, primitive: pygltflib.Primitive) -> np.ndarray:
        """Decode the raw (un-offset) index list of a primitive."""
        return read_index_accessor(self.document, primitive.indices)

    def _load_primitive_vertices(self, attributes: dict[str, int]) -> list[Vertex]:
        positions = self._read_attribute(attributes["POSITION"], None)
        num_vert = len(positions)
        vertices = [Vertex(position=_as_tuple(p[:POSITION_COUNT])) for p in positions]

        for name, accessor_index in attributes.items():
            if name == "POSITION":
                continue

            if name == "NORMAL":
                data = self._read_attribute(accessor_index, num_vert)
                for v, value in zip(vertices, data):
                    v.has_normal = True
                    v.normal = _as_tuple(value[:NORMAL_COUNT])
            elif name == "TANGENT":
                data = self._read_attribute(accessor_index, num_vert)
                for v, value in zip(vertices, data):
                    v.has_tangent = True
                    v.tangent = _as_tuple(value[:TANGENT_COUNT])
            elif name == "BINORMAL":
                data = self._read_attribute(accessor_index, num_vert)
                for v, value in zip(vertices, data):
                    v.has_binormal = True
                    v.binormal = _as_tuple(value[:BINORMAL_COUNT])
            elif name == "COLOR_0":
                accessor = self.document.accessor(accessor_index)
                if accessor.componentType != pygltflib.FLOAT:
                    logger.warning(
                        "Ignoring COLOR_0 with component type %d", accessor.componentType
                    )
                    continue
                data = self._read_attribute(accessor_index, num_vert)
                for v, value in zip(vertices, data):
                    v.has_diffuse = True
                    v.diffuse = _as_color(value)
            elif name.startswith("TEXCOORD_"):
                slot = _tex_coord_slot(name)
                if slot is None:
                    logger.debug("Ignoring unsupported attribute %s", name)
                    continue
                data = self._read_attribute(accessor_index, num_vert)
                if slot == 0 and self.options.flip_texcoord_v:
                    data[:, 1] = 1.0 - data[:, 1]
                for v, value in zip(vertices, data):
                    v.has_tex_coord[slot] = True
                    v.tex_coords[slot] = _as_tuple(value[:TEXCOORD_COUNT])
            else:
                logger.debug("Ignoring unsupported attribute %s", name)

        return vertices

    def _read_attribute(self, accessor_index: int, num_vert: int | None) -> np.ndarray:
        data = read_float_accessor(self.document, accessor_index)
        if num_vert is None:
            return data
        if len(data) < num_vert:
            raise AccessorRangeError(
                f"Accessor {accessor_index} has {len(data)} elements, "
                f"expected {num_vert}"
            )
        return data[:num_vert]


def _tex_coord_slot(name: str) -> int | None:
    suffix = name[len("TEXCOORD_") :]
    if not suffix.isdigit():
        return None
    slot = int(suffix)
    if slot >= MAX_TEX_COORDS:
        return None
    return slot


def _as_tuple(values: np.ndarray) -> tuple[float, ...]:
    return tuple(float(v) for v in values)


def _as_color(values: np.ndarray) -> tuple[float, float, float, float]:
    rgba = [float(v) for v in values[:DIFFUSE_COUNT]]
    while len(rgba) < DIFFUSE_COUNT:
        rgba.append(1.0)
    return tuple(rgba)
