# SPDX-License-Identifier: MIT
"""Intermediate scene representation handed to the engine serializer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

import numpy as np

MAX_TEX_COORDS = 8


class VertexUsage(IntEnum):
    """Semantic of a vertex element."""

    POSITION = 1
    NORMAL = 2
    COLOR = 3
    TANGENT = 4
    BINORMAL = 5
    TEXCOORD0 = 8
    TEXCOORD1 = 9
    TEXCOORD2 = 10
    TEXCOORD3 = 11
    TEXCOORD4 = 12
    TEXCOORD5 = 13
    TEXCOORD6 = 14
    TEXCOORD7 = 15


class PrimitiveType(IntEnum):
    """Topology of a mesh part, numbered like glTF primitive modes."""

    POINTS = 0
    LINES = 1
    LINE_LOOP = 2
    LINE_STRIP = 3
    TRIANGLES = 4
    TRIANGLE_STRIP = 5
    TRIANGLE_FAN = 6


class InterpolationType(IntEnum):
    """Playback interpolation of an animation channel."""

    BEZIER = 1
    BSPLINE = 2
    CARDINAL = 3
    HERMITE = 4
    LINEAR = 5
    SMOOTH = 6
    STEP = 7


class TargetAttribute(IntEnum):
    """Transform properties driven by an animation channel."""

    NONE = 0
    SCALE = 1
    ROTATE = 8
    TRANSLATE = 9
    ROTATE_TRANSLATE = 16
    SCALE_ROTATE_TRANSLATE = 17
    SCALE_TRANSLATE = 18
    SCALE_ROTATE = 19


class TextureWrap(Enum):
    """Sampler wrap modes."""

    REPEAT = "REPEAT"
    CLAMP = "CLAMP"


@dataclass
class Vertex:
    """A single vertex with optional attributes and presence flags."""

    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    normal: tuple[float, float, float] = (0.0, 0.0, 0.0)
    tangent: tuple[float, ...] = (0.0, 0.0, 0.0)
    binormal: tuple[float, float, float] = (0.0, 0.0, 0.0)
    diffuse: tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)
    tex_coords: list[tuple[float, float]] = field(
        default_factory=lambda: [(0.0, 0.0)] * MAX_TEX_COORDS
    )

    has_normal: bool = False
    has_tangent: bool = False
    has_binormal: bool = False
    has_diffuse: bool = False
    has_tex_coord: list[bool] = field(default_factory=lambda: [False] * MAX_TEX_COORDS)


@dataclass
class VertexElement:
    """One attribute of the declared vertex layout."""

    usage: VertexUsage
    size: int  # Number of floats


@dataclass
class MeshPart:
    """Index list drawn with a single primitive topology."""

    primitive_type: PrimitiveType = PrimitiveType.TRIANGLES
    indices: list[int] = field(default_factory=list)

    def add_index(self, index: int) -> None:
        self.indices.append(index)


@dataclass(eq=False)
class Mesh:
    """Merged vertex data of all primitives of a source mesh."""

    id: str
    vertex_format: list[VertexElement] = field(default_factory=list)
    vertices: list[Vertex] = field(default_factory=list)
    parts: list[MeshPart] = field(default_factory=list)

    def add_vertex_attribute(self, usage: VertexUsage, size: int) -> None:
        self.vertex_format.append(VertexElement(usage=usage, size=size))

    def add_vertex(self, vertex: Vertex) -> None:
        self.vertices.append(vertex)

    def add_mesh_part(self, part: MeshPart) -> None:
        self.parts.append(part)

    def has_vertex_colors(self) -> bool:
        """Check whether the declared layout carries a colour element."""
        return any(e.usage == VertexUsage.COLOR for e in self.vertex_format)

    def vertex_size(self) -> int:
        """Number of floats per vertex in the declared layout."""
        return sum(e.size for e in self.vertex_format)

    def vertex_buffer(self) -> np.ndarray:
        """Flatten all vertices in declared-layout order.

        Returns:
            1D float32 array of len(vertices) * vertex_size() values
        """
        rows = []
        for v in self.vertices:
            row: list[float] = []
            for element in self.vertex_format:
                row.extend(_element_values(v, element)[: element.size])
            rows.append(row)
        if not rows:
            return np.zeros(0, dtype=np.float32)
        return np.asarray(rows, dtype=np.float32).reshape(-1)


def _element_values(vertex: Vertex, element: VertexElement) -> tuple[float, ...]:
    usage = element.usage
    if usage == VertexUsage.POSITION:
        return vertex.position
    if usage == VertexUsage.NORMAL:
        return vertex.normal
    if usage == VertexUsage.COLOR:
        return vertex.diffuse
    if usage == VertexUsage.TANGENT:
        return vertex.tangent
    if usage == VertexUsage.BINORMAL:
        return vertex.binormal
    return vertex.tex_coords[usage - VertexUsage.TEXCOORD0]


@dataclass
class Sampler:
    """Texture sampler of a material."""

    id: str
    properties: dict[str, Any] = field(default_factory=dict)

    def set(self, name: str, value: Any) -> None:
        self.properties[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        return self.properties.get(name, default)


@dataclass(eq=False)
class Material:
    """Material with an optional shared base material.

    Compared by identity: many materials may share one base instance.
    """

    id: str
    parent: Material | None = None
    samplers: dict[str, Sampler] = field(default_factory=dict)
    uniforms: dict[str, Any] = field(default_factory=dict)
    defines: list[str] = field(default_factory=list)
    render_state: dict[str, str] = field(default_factory=dict)
    vertex_shader: str | None = None
    fragment_shader: str | None = None
    lit: bool = False
    specular: bool = False

    def create_sampler(self, name: str) -> Sampler:
        sampler = Sampler(id=name)
        self.samplers[name] = sampler
        return sampler

    def set_uniform(self, name: str, value: Any) -> None:
        self.uniforms[name] = value

    def add_define(self, define: str) -> None:
        if define not in self.defines:
            self.defines.append(define)

    def set_render_state(self, name: str, value: str) -> None:
        self.render_state[name] = value

    def is_textured(self) -> bool:
        return len(self.samplers) > 0


@dataclass(eq=False)
class Model:
    """Mesh instance attached to a node, with one material per mesh part."""

    mesh: Mesh
    materials: dict[int, Material] = field(default_factory=dict)
    skin: Any = None

    def set_material(self, material: Material, part_index: int) -> None:
        self.materials[part_index] = material


@dataclass
class Camera:
    id: str


@dataclass
class Light:
    id: str


@dataclass(eq=False)
class Node:
    """A node of the converted scene graph."""

    id: str
    transform: np.ndarray = field(default_factory=lambda: np.eye(4))
    children: list[Node] = field(default_factory=list)
    parent: Node | None = None
    model: Model | None = None
    camera: Camera | None = None
    light: Light | None = None

    def add_child(self, child: Node) -> None:
        child.parent = self
        self.children.append(child)

    def set_transform_matrix(self, matrix: np.ndarray) -> None:
        self.transform = np.asarray(matrix, dtype=np.float64).reshape(4, 4)

    def transform_matrix(self) -> list[float]:
        """The local transform as 16 floats in column-major order."""
        return [float(v) for v in self.transform.T.reshape(-1)]

    def first_camera_node(self) -> Node | None:
        """Depth-first search for a node carrying a camera, starting with self."""
        if self.camera is not None:
            return self
        for child in self.children:
            found = child.first_camera_node()
            if found is not None:
                return found
        return None


@dataclass
class Scene:
    """Root nodes and the active camera."""

    id: str
    nodes: list[Node] = field(default_factory=list)
    active_camera_node: Node | None = None

    def add(self, node: Node) -> None:
        self.nodes.append(node)

    def first_camera_node(self) -> Node | None:
        for node in self.nodes:
            found = node.first_camera_node()
            if found is not None:
                return found
        return None


@dataclass
class AnimationChannel:
    """Resampled keys driving one node's transform."""

    target_id: str
    target_attribute: TargetAttribute = TargetAttribute.NONE
    interpolation: InterpolationType = InterpolationType.LINEAR
    key_times: list[float] = field(default_factory=list)  # Milliseconds
    key_values: list[float] = field(default_factory=list)  # Flattened S, R, T


@dataclass
class Animation:
    id: str
    channels: list[AnimationChannel] = field(default_factory=list)

    def add(self, channel: AnimationChannel) -> None:
        self.channels.append(channel)


@dataclass
class SceneFile:
    """Aggregate of everything produced by one conversion pass."""

    scenes: list[Scene] = field(default_factory=list)
    nodes: list[Node] = field(default_factory=list)
    meshes: list[Mesh] = field(default_factory=list)
    materials: list[Material] = field(default_factory=list)
    cameras: list[Camera] = field(default_factory=list)
    lights: list[Light] = field(default_factory=list)
    animations: list[Animation] = field(default_factory=list)

    def add_scene(self, scene: Scene) -> None:
        self.scenes.append(scene)

    def add_node(self, node: Node) -> None:
        self.nodes.append(node)

    def add_mesh(self, mesh: Mesh) -> None:
        self.meshes.append(mesh)

    def add_material(self, material: Material) -> None:
        self.materials.append(material)

    def add_camera(self, camera: Camera) -> None:
        self.cameras.append(camera)

    def add_light(self, light: Light) -> None:
        self.lights.append(light)

    def add_animation(self, animation: Animation) -> None:
        self.animations.append(animation)

    def materials_for_description(self) -> list[Material]:
        """Materials in the order a material description is written.

        Every base material referenced by at least one material comes first,
        exactly once and in first-use order, followed by all other materials.
        """
        bases: list[Material] = []
        for material in self.materials:
            parent = material.parent
            if parent is not None and parent not in bases:
                bases.append(parent)
        return bases + [m for m in self.materials if m not in bases]
