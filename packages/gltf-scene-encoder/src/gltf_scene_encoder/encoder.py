# SPDX-License-Identifier: MIT
"""Convert a glTF document into the intermediate scene representation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from gltf_scene_encoder.animation import load_animations
from gltf_scene_encoder.config import EncoderOptions
from gltf_scene_encoder.errors import EncoderError
from gltf_scene_encoder.parser.document import SourceDocument, load_document
from gltf_scene_encoder.scene.material_builder import MaterialBuilder
from gltf_scene_encoder.scene.mesh_builder import MeshBuilder
from gltf_scene_encoder.scene.scene_builder import SceneGraphBuilder
from gltf_scene_encoder.scene.scene_file import Material, SceneFile

logger = logging.getLogger(__name__)

Serializer = Callable[[SceneFile], None]
MaterialWriter = Callable[[list[Material]], None]


class GLTFSceneEncoder:
    """Runs one conversion pass over a glTF document.

    A fresh encoder should be used for every document: its builders hold the
    index-keyed maps of everything converted so far.
    """

    def __init__(self, options: EncoderOptions | None = None):
        self.options = options or EncoderOptions()

    def encode(self, document: SourceDocument) -> SceneFile:
        """Convert a loaded document.

        Args:
            document: Source document

        Returns:
            Populated SceneFile

        Raises:
            EncoderError: On any fatal condition (missing default scene,
                unsupported accessor, out-of-range data)
        """
        try:
            return self._encode(document)
        except EncoderError as e:
            logger.error("Unable to convert glTF scene: %s", e)
            raise

    def encode_file(
        self,
        path: str | Path,
        serializer: Serializer | None = None,
        material_writer: MaterialWriter | None = None,
    ) -> SceneFile:
        """Load a .gltf/.glb file, convert it and hand the result off.

        Args:
            path: Path to the glTF file
            serializer: Called with the populated SceneFile
            material_writer: Called with the materials to describe, base
                materials first

        Returns:
            Populated SceneFile
        """
        try:
            document = load_document(path)
        except EncoderError as e:
            logger.error("Unable to load glTF scene: %s", e)
            raise

        scene_file = self.encode(document)

        if serializer is not None:
            serializer(scene_file)
        if material_writer is not None:
            material_writer(scene_file.materials_for_description())
        return scene_file

    def _encode(self, document: SourceDocument) -> SceneFile:
        scene_file = SceneFile()
        mesh_builder = MeshBuilder(document, self.options)
        scene_builder = SceneGraphBuilder(document, mesh_builder, self.options)
        material_builder = MaterialBuilder(document)

        _, gltf_scene = document.default_scene()
        scene_file.add_scene(scene_builder.build_scene(gltf_scene))

        for mesh in mesh_builder.meshes.values():
            scene_file.add_mesh(mesh)
        for node in scene_builder.nodes.values():
            scene_file.add_node(node)
            if node.camera is not None:
                scene_file.add_camera(node.camera)
            if node.light is not None:
                scene_file.add_light(node.light)

        for animation in load_animations(document, scene_builder.nodes, self.options):
            scene_file.add_animation(animation)

        for mesh_index, mesh in mesh_builder.meshes.items():
            gltf_mesh = document.mesh(mesh_index)
            primitives = mesh_builder.emitted_primitives(mesh_index)
            for part_index, primitive_index in enumerate(primitives):
                material_index = gltf_mesh.primitives[primitive_index].material
                if material_index is None or material_index < 0:
                    continue

                material = material_builder.get_or_create_material(
                    material_index,
                    is_lit=self.options.lit_materials,
                    has_vertex_color=mesh.has_vertex_colors(),
                )
                for model in scene_builder.models_using_mesh(mesh_index):
                    model.set_material(material, part_index)

        for material in material_builder.materials.values():
            scene_file.add_material(material)

        logger.info(
            "Converted %d nodes, %d meshes, %d materials, %d animations",
            len(scene_file.nodes),
            len(scene_file.meshes),
            len(scene_file.materials),
            len(scene_file.animations),
        )
        return scene_file


def encode_file(
    path: str | Path,
    options: EncoderOptions | None = None,
    serializer: Serializer | None = None,
    material_writer: MaterialWriter | None = None,
) -> SceneFile:
    """Convert a .gltf/.glb file with a fresh encoder."""
    return GLTFSceneEncoder(options).encode_file(path, serializer, material_writer)
