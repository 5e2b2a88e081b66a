# SPDX-License-Identifier: MIT
"""Scene graph conversion from glTF nodes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pygltflib

from gltf_scene_encoder.config import EncoderOptions
from gltf_scene_encoder.scene.mesh_builder import MeshBuilder
from gltf_scene_encoder.scene.scene_file import Model, Node, Scene
from gltf_scene_encoder.scene.transforms import Transform, parse_transform_matrix

if TYPE_CHECKING:
    from gltf_scene_encoder.parser.document import SourceDocument

logger = logging.getLogger(__name__)


def node_id(gltf_node: pygltflib.Node, node_index: int) -> str:
    """Id of a converted node: its name, or Node_<index> when unnamed."""
    return gltf_node.name or f"Node_{node_index}"


class SceneGraphBuilder:
    """Builds the node tree of a scene, one Node per source node."""

    def __init__(
        self,
        document: SourceDocument,
        mesh_builder: MeshBuilder | None = None,
        options: EncoderOptions | None = None,
    ):
        """Initialize the builder.

        Args:
            document: Source document owning the nodes
            mesh_builder: Builder used for model components
            options: Conversion options
        """
        self.document = document
        self.options = options or EncoderOptions()
        self.mesh_builder = mesh_builder or MeshBuilder(document, self.options)
        self._nodes: dict[int, Node] = {}
        self._models: dict[int, list[Model]] = {}

    @property
    def nodes(self) -> dict[int, Node]:
        """Built nodes keyed by source node index, in registration order."""
        return self._nodes

    def models_using_mesh(self, mesh_index: int) -> list[Model]:
        """All models created for a given source mesh."""
        return self._models.get(mesh_index, [])

    def build_scene(self, gltf_scene: pygltflib.Scene) -> Scene:
        """Convert a glTF scene and every node reachable from it.

        Args:
            gltf_scene: Scene whose root node indices are converted

        Returns:
            Scene with its root nodes and active camera
        """
        scene = Scene(id=gltf_scene.name or self.options.default_scene_id)

        for index in gltf_scene.nodes or []:
            gltf_node = self.document.node(index)
            scene.add(self.get_or_create_node(index, node_id(gltf_node, index)))

        scene.active_camera_node = scene.first_camera_node()
        logger.info(
            "Built scene %s: %d root nodes, %d nodes total",
            scene.id,
            len(scene.nodes),
            len(self._nodes),
        )
        return scene

    def get_or_create_node(self, node_index: int, fallback_id: str | None = None) -> Node:
        """Get the Node built for a source node, building its subtree on first use.

        The node is registered before its children are visited, so a node
        referenced from several parents is still converted once. Cyclic node
        graphs are not supported.

        Args:
            node_index: Index of the node in the source document
            fallback_id: Id to use; defaults to the node name or Node_<index>

        Returns:
            The single Node for this source node
        """
        if node_index in self._nodes:
            return self._nodes[node_index]

        gltf_node = self.document.node(node_index)
        node = Node(id=fallback_id or node_id(gltf_node, node_index))
        self._nodes[node_index] = node

        self.set_transform(gltf_node, node)
        self.set_camera_component(gltf_node, node)
        self.set_light_component(gltf_node, node)
        self.set_model_component(gltf_node, node)

        for child_index in gltf_node.children or []:
            child_node = self.document.node(child_index)
            child = self.get_or_create_node(child_index, node_id(child_node, child_index))
            node.add_child(child)

        return node

    def set_transform(self, gltf_node: pygltflib.Node, node: Node) -> None:
        """Set the local transform from the node's matrix or its TRS values."""
        if gltf_node.matrix and len(gltf_node.matrix) == 16:
            node.set_transform_matrix(parse_transform_matrix(gltf_node.matrix))
            return

        transform = Transform.identity()
        if gltf_node.scale and len(gltf_node.scale) == 3:
            transform.scale = tuple(gltf_node.scale)
        if gltf_node.rotation and len(gltf_node.rotation) == 4:
            transform.rotation = tuple(gltf_node.rotation)
        if gltf_node.translation and len(gltf_node.translation) == 3:
            transform.translation = tuple(gltf_node.translation)
        node.set_transform_matrix(transform.to_matrix())

    def set_camera_component(self, gltf_node: pygltflib.Node, node: Node) -> bool:
        """Attach a camera component. Cameras are not converted yet."""
        return False

    def set_light_component(self, gltf_node: pygltflib.Node, node: Node) -> bool:
        """Attach a light component. Lights are not converted yet."""
        return False

    def set_model_component(self, gltf_node: pygltflib.Node, node: Node) -> bool:
        """Attach a model for the node's mesh, if it references one."""
        if gltf_node.mesh is None or gltf_node.mesh < 0:
            return False

        mesh = self.mesh_builder.get_or_create_mesh(gltf_node.mesh)
        model = Model(mesh=mesh)
        node.model = model
        self._models.setdefault(gltf_node.mesh, []).append(model)
        return True
