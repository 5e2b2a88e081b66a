# SPDX-License-Identifier: MIT
"""Fixtures building small in-memory glTF documents."""

from __future__ import annotations

import numpy as np
import pygltflib
import pytest

from gltf_scene_encoder.parser.document import SourceDocument

COMPONENT_DTYPES = {
    pygltflib.FLOAT: "<f4",
    pygltflib.UNSIGNED_BYTE: "<u1",
    pygltflib.UNSIGNED_SHORT: "<u2",
    pygltflib.UNSIGNED_INT: "<u4",
    pygltflib.SHORT: "<i2",
}


class GltfBuilder:
    """Accumulates glTF entities and packs accessor data into one buffer."""

    def __init__(self):
        self.gltf = pygltflib.GLTF2(
            scene=0,
            scenes=[],
            nodes=[],
            meshes=[],
            materials=[],
            textures=[],
            images=[],
            animations=[],
            accessors=[],
            bufferViews=[],
            buffers=[pygltflib.Buffer(byteLength=0)],
        )
        self.data = bytearray()

    def add_accessor(
        self,
        values,
        accessor_type: str,
        component_type: int = pygltflib.FLOAT,
        bounds: bool = False,
    ) -> int:
        """Pack values into the buffer and add a tightly packed accessor."""
        array = np.asarray(values, dtype=COMPONENT_DTYPES[component_type])
        while len(self.data) % 4:
            self.data.append(0)

        view_index = len(self.gltf.bufferViews)
        self.gltf.bufferViews.append(
            pygltflib.BufferView(
                buffer=0, byteOffset=len(self.data), byteLength=array.nbytes
            )
        )
        self.data += array.tobytes()

        accessor = pygltflib.Accessor(
            bufferView=view_index,
            byteOffset=0,
            componentType=component_type,
            count=len(array),
            type=accessor_type,
        )
        if bounds:
            flat = array.reshape(len(array), -1)
            accessor.min = [float(v) for v in flat.min(axis=0)]
            accessor.max = [float(v) for v in flat.max(axis=0)]
        self.gltf.accessors.append(accessor)
        return len(self.gltf.accessors) - 1

    def add_primitive_mesh(self, primitives: list[pygltflib.Primitive], name=None) -> int:
        self.gltf.meshes.append(pygltflib.Mesh(name=name, primitives=primitives))
        return len(self.gltf.meshes) - 1

    def add_triangle_primitive(
        self, vertex_count: int, indices=None, material=None, **attributes
    ) -> pygltflib.Primitive:
        """Create a primitive with vertex_count positions along the x axis."""
        positions = [(float(i), 0.0, 0.0) for i in range(vertex_count)]
        attrs = pygltflib.Attributes(POSITION=self.add_accessor(positions, pygltflib.VEC3))
        for name, (values, accessor_type) in attributes.items():
            setattr(attrs, name, self.add_accessor(values, accessor_type))
        if indices is None:
            indices = list(range(vertex_count))
        index_accessor = self.add_accessor(
            indices, pygltflib.SCALAR, pygltflib.UNSIGNED_SHORT
        )
        return pygltflib.Primitive(
            attributes=attrs, indices=index_accessor, material=material
        )

    def add_node(self, **kwargs) -> int:
        self.gltf.nodes.append(pygltflib.Node(**kwargs))
        return len(self.gltf.nodes) - 1

    def add_scene(self, nodes: list[int], name=None) -> int:
        self.gltf.scenes.append(pygltflib.Scene(name=name, nodes=nodes))
        return len(self.gltf.scenes) - 1

    def add_material(self, name=None, color=None, texture_uri=None) -> int:
        pbr = pygltflib.PbrMetallicRoughness(
            baseColorFactor=color or [1.0, 1.0, 1.0, 1.0]
        )
        if texture_uri is not None:
            self.gltf.images.append(pygltflib.Image(uri=texture_uri))
            self.gltf.textures.append(pygltflib.Texture(source=len(self.gltf.images) - 1))
            pbr.baseColorTexture = pygltflib.TextureInfo(index=len(self.gltf.textures) - 1)
        self.gltf.materials.append(
            pygltflib.Material(name=name, pbrMetallicRoughness=pbr)
        )
        return len(self.gltf.materials) - 1

    def add_animation(self, tracks, name=None) -> int:
        """Add an animation from (node, path, times, values, accessor type) tuples."""
        channels = []
        samplers = []
        for node, path, times, values, accessor_type in tracks:
            input_accessor = self.add_accessor(times, pygltflib.SCALAR, bounds=True)
            output_accessor = self.add_accessor(values, accessor_type)
            samplers.append(
                pygltflib.AnimationSampler(
                    input=input_accessor, output=output_accessor, interpolation="LINEAR"
                )
            )
            channels.append(
                pygltflib.AnimationChannel(
                    sampler=len(samplers) - 1,
                    target=pygltflib.AnimationChannelTarget(node=node, path=path),
                )
            )
        self.gltf.animations.append(
            pygltflib.Animation(name=name, channels=channels, samplers=samplers)
        )
        return len(self.gltf.animations) - 1

    def build(self) -> SourceDocument:
        self.gltf.buffers[0].byteLength = len(self.data)
        return SourceDocument.from_gltf(self.gltf, [bytes(self.data)])


@pytest.fixture
def builder() -> GltfBuilder:
    """A fresh glTF document builder."""
    return GltfBuilder()
