# SPDX-License-Identifier: MIT
"""Tests for scene module."""

import math

import numpy as np
import pytest


class TestTransforms:
    """Tests for transform utilities."""

    def test_identity_transform(self):
        """Test creating identity transform."""
        from gltf_scene_encoder.scene.transforms import Transform

        t = Transform.identity()

        assert t.translation == (0.0, 0.0, 0.0)
        assert t.rotation == (0.0, 0.0, 0.0, 1.0)
        assert t.scale == (1.0, 1.0, 1.0)
        np.testing.assert_array_almost_equal(t.to_matrix(), np.eye(4))

    def test_parse_transform_matrix_with_translation(self):
        """Test parsing column-major matrix."""
        from gltf_scene_encoder.scene.transforms import parse_transform_matrix

        # Column-major: last column contains translation
        matrix = [1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, 1, 2, 3, 1]

        result = parse_transform_matrix(matrix)

        assert result.shape == (4, 4)
        assert result[0, 3] == 1.0
        assert result[1, 3] == 2.0
        assert result[2, 3] == 3.0

    def test_parse_transform_matrix_wrong_size(self):
        """Test that malformed matrices are rejected."""
        from gltf_scene_encoder.scene.transforms import parse_transform_matrix

        with pytest.raises(ValueError):
            parse_transform_matrix([1, 0, 0])

    def test_to_matrix_order(self):
        """Test that scale is applied before rotation and translation."""
        from gltf_scene_encoder.scene.transforms import Transform

        # 90 degrees about z
        s = math.sqrt(0.5)
        t = Transform(translation=(1.0, 0.0, 0.0), rotation=(0.0, 0.0, s, s), scale=(2.0, 2.0, 2.0))

        point = t.to_matrix() @ np.array([1.0, 0.0, 0.0, 1.0])

        np.testing.assert_array_almost_equal(point, [1.0, 2.0, 0.0, 1.0])

    def test_quaternion_normalize_zero(self):
        """Test that a zero quaternion normalizes to identity."""
        from gltf_scene_encoder.scene.transforms import quaternion_normalize

        assert quaternion_normalize((0.0, 0.0, 0.0, 0.0)) == (0.0, 0.0, 0.0, 1.0)

    def test_quaternion_slerp_midpoint(self):
        """Test that slerp stays on the unit sphere halfway between inputs."""
        from gltf_scene_encoder.scene.transforms import quaternion_slerp

        q0 = (1.0, 0.0, 0.0, 0.0)
        q1 = (0.0, 1.0, 0.0, 0.0)

        result = quaternion_slerp(q0, q1, 0.5)

        assert math.isclose(sum(c * c for c in result), 1.0, abs_tol=1e-6)
        assert math.isclose(result[0], result[1], abs_tol=1e-6)
        assert math.isclose(result[0], math.sqrt(0.5), abs_tol=1e-6)

    def test_quaternion_slerp_endpoints(self):
        """Test that slerp returns the inputs at f=0 and f=1."""
        from gltf_scene_encoder.scene.transforms import quaternion_slerp

        q0 = (0.0, 0.0, 0.0, 1.0)
        q1 = (0.0, 0.0, 1.0, 0.0)

        np.testing.assert_array_almost_equal(quaternion_slerp(q0, q1, 0.0), q0)
        np.testing.assert_array_almost_equal(quaternion_slerp(q0, q1, 1.0), q1)

    def test_quaternion_slerp_shortest_arc(self):
        """Test that slerp flips to the shorter arc."""
        from gltf_scene_encoder.scene.transforms import quaternion_slerp

        q0 = (0.0, 0.0, 0.0, 1.0)
        q1 = (0.0, 0.0, 0.0, -1.0)

        result = quaternion_slerp(q0, q1, 0.5)

        np.testing.assert_array_almost_equal(result, q0)


class TestSceneGraphBuilder:
    """Tests for node tree conversion."""

    def test_scene_id_fallback(self, builder):
        """Test that unnamed scenes get the default id."""
        from gltf_scene_encoder.scene.scene_builder import SceneGraphBuilder

        builder.add_node()
        builder.add_scene([0])
        document = builder.build()
        _, gltf_scene = document.default_scene()

        scene = SceneGraphBuilder(document).build_scene(gltf_scene)

        assert scene.id == "__SCENE__"
        assert scene.nodes[0].id == "Node_0"
        assert scene.active_camera_node is None

    def test_named_nodes(self, builder):
        """Test that node names become ids."""
        from gltf_scene_encoder.scene.scene_builder import SceneGraphBuilder

        builder.add_node(name="child")
        builder.add_node(name="root", children=[0])
        builder.add_scene([1], name="level")
        document = builder.build()
        _, gltf_scene = document.default_scene()

        scene = SceneGraphBuilder(document).build_scene(gltf_scene)

        assert scene.id == "level"
        root = scene.nodes[0]
        assert root.id == "root"
        assert root.children[0].id == "child"
        assert root.children[0].parent is root

    def test_shared_child_converted_once(self, builder):
        """Test that a node referenced twice yields one Node."""
        from gltf_scene_encoder.scene.scene_builder import SceneGraphBuilder

        shared = builder.add_node(name="shared")
        a = builder.add_node(name="a", children=[shared])
        b = builder.add_node(name="b", children=[shared])
        builder.add_scene([a, b])
        document = builder.build()
        _, gltf_scene = document.default_scene()

        scene_builder = SceneGraphBuilder(document)
        scene = scene_builder.build_scene(gltf_scene)

        assert scene.nodes[0].children[0] is scene.nodes[1].children[0]
        assert len(scene_builder.nodes) == 3
        assert scene_builder.get_or_create_node(shared) is scene.nodes[0].children[0]

    def test_trs_transform(self, builder):
        """Test composing translation, rotation and scale."""
        from gltf_scene_encoder.scene.scene_builder import SceneGraphBuilder

        builder.add_node(translation=[1.0, 2.0, 3.0], scale=[2.0, 2.0, 2.0])
        document = builder.build()

        node = SceneGraphBuilder(document).get_or_create_node(0)

        expected = np.diag([2.0, 2.0, 2.0, 1.0])
        expected[:3, 3] = [1.0, 2.0, 3.0]
        np.testing.assert_array_almost_equal(node.transform, expected)
        assert node.transform_matrix()[12:15] == [1.0, 2.0, 3.0]

    def test_matrix_transform(self, builder):
        """Test that an explicit matrix takes precedence."""
        from gltf_scene_encoder.scene.scene_builder import SceneGraphBuilder

        matrix = [1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, 5, 6, 7, 1]
        builder.add_node(matrix=matrix, translation=[1.0, 1.0, 1.0])
        document = builder.build()

        node = SceneGraphBuilder(document).get_or_create_node(0)

        np.testing.assert_array_almost_equal(node.transform[:3, 3], [5.0, 6.0, 7.0])
        assert node.transform_matrix() == [float(v) for v in matrix]

    def test_model_component(self, builder):
        """Test that nodes sharing a mesh share its Mesh but get their own Model."""
        from gltf_scene_encoder.scene.scene_builder import SceneGraphBuilder

        mesh = builder.add_primitive_mesh([builder.add_triangle_primitive(3)])
        builder.add_node(mesh=mesh)
        builder.add_node(mesh=mesh)
        builder.add_scene([0, 1])
        document = builder.build()
        _, gltf_scene = document.default_scene()

        scene_builder = SceneGraphBuilder(document)
        scene = scene_builder.build_scene(gltf_scene)

        first, second = scene.nodes
        assert first.model is not second.model
        assert first.model.mesh is second.model.mesh
        assert scene_builder.models_using_mesh(mesh) == [first.model, second.model]


class TestMeshBuilder:
    """Tests for mesh merging."""

    def test_merge_primitives(self, builder):
        """Test that part indices are offset by preceding primitive sizes."""
        from gltf_scene_encoder.scene.mesh_builder import MeshBuilder
        from gltf_scene_encoder.scene.scene_file import PrimitiveType

        mesh_index = builder.add_primitive_mesh(
            [
                builder.add_triangle_primitive(4, indices=[0, 1, 2, 2, 1, 3]),
                builder.add_triangle_primitive(6),
            ],
            name="body",
        )
        document = builder.build()

        mesh = MeshBuilder(document).get_or_create_mesh(mesh_index)

        assert mesh.id == "body"
        assert len(mesh.vertices) == 10
        assert len(mesh.parts) == 2
        assert mesh.parts[0].indices == [0, 1, 2, 2, 1, 3]
        assert mesh.parts[1].indices[0] == 4
        assert mesh.parts[1].indices[-1] == 9
        assert mesh.parts[1].primitive_type == PrimitiveType.TRIANGLES
        assert mesh.vertices[4].position == (0.0, 0.0, 0.0)

    def test_mesh_converted_once(self, builder):
        """Test that a mesh index maps to a single Mesh."""
        from gltf_scene_encoder.scene.mesh_builder import MeshBuilder

        mesh_index = builder.add_primitive_mesh([builder.add_triangle_primitive(3)])
        document = builder.build()
        mesh_builder = MeshBuilder(document)

        mesh = mesh_builder.get_or_create_mesh(mesh_index)

        assert mesh.id == "Mesh_0"
        assert mesh_builder.get_or_create_mesh(mesh_index) is mesh

    def test_flip_texcoord(self, builder):
        """Test that the first texture coordinate set is flipped vertically."""
        from gltf_scene_encoder.scene.mesh_builder import MeshBuilder
        from gltf_scene_encoder.scene.scene_file import VertexUsage

        primitive = builder.add_triangle_primitive(
            3,
            TEXCOORD_0=([(0.5, 0.2)] * 3, "VEC2"),
            TEXCOORD_1=([(0.5, 0.2)] * 3, "VEC2"),
        )
        mesh_index = builder.add_primitive_mesh([primitive])
        document = builder.build()

        mesh = MeshBuilder(document).get_or_create_mesh(mesh_index)

        assert mesh.vertices[0].tex_coords[0] == pytest.approx((0.5, 0.8))
        assert mesh.vertices[0].tex_coords[1] == pytest.approx((0.5, 0.2))
        usages = [e.usage for e in mesh.vertex_format]
        assert usages == [VertexUsage.POSITION, VertexUsage.TEXCOORD0, VertexUsage.TEXCOORD1]

    def test_flip_texcoord_disabled(self, builder):
        """Test that the V flip can be turned off."""
        from gltf_scene_encoder.config import EncoderOptions
        from gltf_scene_encoder.scene.mesh_builder import MeshBuilder

        primitive = builder.add_triangle_primitive(3, TEXCOORD_0=([(0.5, 0.2)] * 3, "VEC2"))
        mesh_index = builder.add_primitive_mesh([primitive])
        document = builder.build()

        options = EncoderOptions(flip_texcoord_v=False)
        mesh = MeshBuilder(document, options).get_or_create_mesh(mesh_index)

        assert mesh.vertices[0].tex_coords[0] == pytest.approx((0.5, 0.2))

    def test_layout_from_first_primitive(self, builder):
        """Test that the vertex layout follows the first primitive only."""
        from gltf_scene_encoder.scene.mesh_builder import MeshBuilder
        from gltf_scene_encoder.scene.scene_file import VertexUsage

        plain = builder.add_triangle_primitive(3)
        with_normals = builder.add_triangle_primitive(
            3, NORMAL=([(0.0, 1.0, 0.0)] * 3, "VEC3")
        )
        mesh_index = builder.add_primitive_mesh([plain, with_normals])
        document = builder.build()

        mesh = MeshBuilder(document).get_or_create_mesh(mesh_index)

        assert [e.usage for e in mesh.vertex_format] == [VertexUsage.POSITION]
        assert mesh.vertex_size() == 3
        assert mesh.vertices[3].has_normal
        assert len(mesh.vertex_buffer()) == 6 * 3

    def test_vertex_attributes(self, builder):
        """Test normals, tangents, binormals and vertex colours."""
        from gltf_scene_encoder.scene.mesh_builder import MeshBuilder
        from gltf_scene_encoder.scene.scene_file import VertexUsage

        primitive = builder.add_triangle_primitive(
            3,
            NORMAL=([(0.0, 0.0, 1.0)] * 3, "VEC3"),
            TANGENT=([(1.0, 0.0, 0.0, -1.0)] * 3, "VEC4"),
            BINORMAL=([(0.0, 1.0, 0.0)] * 3, "VEC3"),
            COLOR_0=([(1.0, 0.0, 0.0)] * 3, "VEC3"),
        )
        mesh_index = builder.add_primitive_mesh([primitive])
        document = builder.build()

        mesh = MeshBuilder(document).get_or_create_mesh(mesh_index)

        vertex = mesh.vertices[0]
        assert vertex.normal == (0.0, 0.0, 1.0)
        assert vertex.tangent == (1.0, 0.0, 0.0)
        assert vertex.binormal == (0.0, 1.0, 0.0)
        assert vertex.diffuse == (1.0, 0.0, 0.0, 1.0)
        assert mesh.has_vertex_colors()
        assert [e.usage for e in mesh.vertex_format] == [
            VertexUsage.POSITION,
            VertexUsage.NORMAL,
            VertexUsage.TANGENT,
            VertexUsage.BINORMAL,
            VertexUsage.COLOR,
        ]
        assert mesh.vertex_size() == 3 + 3 + 3 + 3 + 4

    def test_skip_primitive_without_indices(self, builder):
        """Test that non-indexed primitives contribute no vertices or parts."""
        from gltf_scene_encoder.scene.mesh_builder import MeshBuilder

        indexed = builder.add_triangle_primitive(3)
        unindexed = builder.add_triangle_primitive(4)
        unindexed.indices = None
        mesh_index = builder.add_primitive_mesh([unindexed, indexed])
        document = builder.build()

        mesh_builder = MeshBuilder(document)
        mesh = mesh_builder.get_or_create_mesh(mesh_index)

        assert len(mesh.vertices) == 3
        assert len(mesh.parts) == 1
        assert mesh.parts[0].indices == [0, 1, 2]
        assert mesh_builder.emitted_primitives(mesh_index) == [1]

    def test_empty_mesh(self, builder, caplog):
        """Test that a mesh without decodable primitives stays empty."""
        from gltf_scene_encoder.scene.mesh_builder import MeshBuilder

        primitive = builder.add_triangle_primitive(3)
        primitive.indices = None
        mesh_index = builder.add_primitive_mesh([primitive], name="ghost")
        document = builder.build()

        mesh = MeshBuilder(document).get_or_create_mesh(mesh_index)

        assert mesh.vertices == []
        assert mesh.parts == []
        assert mesh.vertex_format == []
        assert "ghost" in caplog.text

    def test_short_attribute_accessor(self, builder):
        """Test that attributes with fewer elements than positions are fatal."""
        from gltf_scene_encoder.errors import AccessorRangeError
        from gltf_scene_encoder.scene.mesh_builder import MeshBuilder

        primitive = builder.add_triangle_primitive(3, NORMAL=([(0.0, 0.0, 1.0)], "VEC3"))
        mesh_index = builder.add_primitive_mesh([primitive])
        document = builder.build()

        with pytest.raises(AccessorRangeError):
            MeshBuilder(document).get_or_create_mesh(mesh_index)

    @pytest.mark.parametrize(
        "mode,expected",
        [(None, "TRIANGLES"), (0, "POINTS"), (1, "LINES"), (5, "TRIANGLE_STRIP"), (6, "TRIANGLE_FAN")],
    )
    def test_translate_primitive_type(self, mode, expected):
        """Test mapping glTF modes to topologies."""
        from gltf_scene_encoder.scene.mesh_builder import translate_primitive_type

        assert translate_primitive_type(mode).name == expected

    def test_translate_primitive_type_invalid(self):
        """Test that unknown modes are rejected."""
        from gltf_scene_encoder.errors import EncoderError
        from gltf_scene_encoder.scene.mesh_builder import translate_primitive_type

        with pytest.raises(EncoderError):
            translate_primitive_type(9)


class TestMaterialBuilder:
    """Tests for material and base material conversion."""

    def test_colored_materials_share_base(self, builder):
        """Test that untextured materials share one colored base."""
        from gltf_scene_encoder.scene.material_builder import MaterialBuilder

        builder.add_material(name="red", color=[1.0, 0.0, 0.0, 1.0])
        builder.add_material(color=[0.0, 1.0, 0.0, 1.0])
        document = builder.build()
        material_builder = MaterialBuilder(document)

        red = material_builder.get_or_create_material(0)
        green = material_builder.get_or_create_material(1)

        assert red.id == "red"
        assert green.id == "Material_1"
        assert red.parent is green.parent
        assert red.parent.id == "colored"
        assert red.uniforms["u_diffuseColor"] == (1.0, 0.0, 0.0, 1.0)
        assert list(material_builder.base_materials) == ["colored"]
        assert material_builder.get_or_create_material(0) is red

    def test_textured_material(self, builder):
        """Test that a base colour texture yields a textured base."""
        from gltf_scene_encoder.scene.material_builder import MaterialBuilder
        from gltf_scene_encoder.scene.scene_file import TextureWrap

        builder.add_material(name="plain")
        builder.add_material(name="brick", texture_uri="textures/brick.png")
        document = builder.build()
        material_builder = MaterialBuilder(document)

        plain = material_builder.get_or_create_material(0)
        brick = material_builder.get_or_create_material(1)

        assert brick.parent is not plain.parent
        assert brick.parent.id == "textured"
        sampler = brick.samplers["u_diffuseTexture"]
        assert sampler.get("relativePath") == "textures/brick.png"
        assert sampler.get("wrapS") == TextureWrap.REPEAT
        base_sampler = brick.parent.samplers["u_diffuseTexture"]
        assert base_sampler.get("wrapS") == TextureWrap.CLAMP
        assert base_sampler.get("minFilter") == "LINEAR_MIPMAP_LINEAR"
        assert brick.parent.vertex_shader.endswith("textured.vert")

    def test_vertex_color_define(self, builder):
        """Test the vertex colour define."""
        from gltf_scene_encoder.scene.material_builder import MaterialBuilder

        builder.add_material()
        document = builder.build()

        material = MaterialBuilder(document).get_or_create_material(0, has_vertex_color=True)

        assert "VERTEX_COLOR" in material.defines

    def test_lit_state_from_first_child(self, builder):
        """Test that lighting state is taken from the child creating the base."""
        from gltf_scene_encoder.scene.material_builder import MaterialBuilder

        builder.add_material()
        builder.add_material()
        document = builder.build()
        material_builder = MaterialBuilder(document)

        first = material_builder.get_or_create_material(0, is_lit=True)
        second = material_builder.get_or_create_material(1, is_lit=True)

        assert first.parent.lit
        assert "DIRECTIONAL_LIGHT_COUNT 1" in first.parent.defines
        assert "u_inverseTransposeWorldViewMatrix" in first.uniforms
        assert "u_inverseTransposeWorldViewMatrix" not in second.uniforms

    def test_unlit_base(self, builder):
        """Test that an unlit first child leaves the base unlit."""
        from gltf_scene_encoder.scene.material_builder import MaterialBuilder

        builder.add_material()
        document = builder.build()

        material = MaterialBuilder(document).get_or_create_material(0, is_lit=False)

        assert not material.parent.lit
        assert material.parent.defines == []
        assert "u_inverseTransposeWorldViewMatrix" not in material.uniforms

    def test_specular_camera_position(self, builder):
        """Test that specular children receive the camera position uniform."""
        from gltf_scene_encoder.scene.material_builder import MaterialBuilder
        from gltf_scene_encoder.scene.scene_file import Material

        document = builder.build()
        material_builder = MaterialBuilder(document)
        child = Material(id="shiny", lit=True, specular=True)

        material_builder.create_base_material("colored", child)

        assert child.uniforms["u_cameraPosition"] == "CAMERA_WORLD_POSITION"

    def test_materials_for_description(self):
        """Test that base materials are listed once, before other materials."""
        from gltf_scene_encoder.scene.scene_file import Material, SceneFile

        colored = Material(id="colored")
        textured = Material(id="textured")
        scene_file = SceneFile()
        a = Material(id="a", parent=colored)
        b = Material(id="b", parent=textured)
        c = Material(id="c", parent=colored)
        for material in (a, b, c):
            scene_file.add_material(material)

        ordered = scene_file.materials_for_description()

        assert [m.id for m in ordered] == ["colored", "textured", "a", "b", "c"]
