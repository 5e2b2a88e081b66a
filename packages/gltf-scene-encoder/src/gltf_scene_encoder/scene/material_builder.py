# SPDX-License-Identifier: MIT
"""Build materials and their shared base materials from glTF materials."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import pygltflib

from gltf_scene_encoder.scene.scene_file import Material, TextureWrap

if TYPE_CHECKING:
    from gltf_scene_encoder.parser.document import SourceDocument

logger = logging.getLogger(__name__)

# Sampler and uniform names understood by the engine shaders
DIFFUSE_TEXTURE = "u_diffuseTexture"
DIFFUSE_COLOR = "u_diffuseColor"
WORLD_VIEW_PROJECTION = "u_worldViewProjectionMatrix"
INVERSE_TRANSPOSE_WORLD_VIEW = "u_inverseTransposeWorldViewMatrix"
CAMERA_POSITION = "u_cameraPosition"

VERTEX_COLOR_DEFINE = "VERTEX_COLOR"
DIRECTIONAL_LIGHT_DEFINE = "DIRECTIONAL_LIGHT_COUNT 1"

TEXTURED_SIGNATURE = "textured"
COLORED_SIGNATURE = "colored"

SHADERS = {
    TEXTURED_SIGNATURE: ("res/shaders/textured.vert", "res/shaders/textured.frag"),
    COLORED_SIGNATURE: ("res/shaders/colored.vert", "res/shaders/colored.frag"),
}

DEFAULT_BASE_COLOR = (1.0, 1.0, 1.0, 1.0)


@dataclass
class MaterialTextures:
    """Texture indices referenced by a glTF material (None when unused)."""

    base_color: int | None = None
    metallic_roughness: int | None = None
    normal: int | None = None
    emissive: int | None = None
    occlusion: int | None = None


def read_material_textures(gltf_mat: pygltflib.Material) -> MaterialTextures:
    """Collect the texture slot indices of a glTF material."""
    pbr = gltf_mat.pbrMetallicRoughness
    return MaterialTextures(
        base_color=_texture_index(pbr.baseColorTexture if pbr else None),
        metallic_roughness=_texture_index(pbr.metallicRoughnessTexture if pbr else None),
        normal=_texture_index(gltf_mat.normalTexture),
        emissive=_texture_index(gltf_mat.emissiveTexture),
        occlusion=_texture_index(gltf_mat.occlusionTexture),
    )


def base_material_name(material: Material) -> str:
    """Signature selecting the shared base material of a material."""
    if material.is_textured():
        return TEXTURED_SIGNATURE
    return COLORED_SIGNATURE


class MaterialBuilder:
    """Converts glTF materials and derives their shared base materials."""

    def __init__(self, document: SourceDocument):
        self.document = document
        self._materials: dict[int, Material] = {}
        self._base_materials: dict[str, Material] = {}

    @property
    def materials(self) -> dict[int, Material]:
        """Built materials keyed by source material index, in build order."""
        return self._materials

    @property
    def base_materials(self) -> dict[str, Material]:
        """Shared base materials keyed by signature."""
        return self._base_materials

    def get_or_create_material(
        self,
        material_index: int,
        material_id: str | None = None,
        is_lit: bool = True,
        has_vertex_color: bool = False,
    ) -> Material:
        """Get the material built for a source material, building it on first use.

        Args:
            material_index: Index of the material in the source document
            material_id: Id to use; defaults to the material name or Material_<index>
            is_lit: Whether the material is lit
            has_vertex_color: Whether the mesh using it carries vertex colours

        Returns:
            The single Material for this source material
        """
        if material_index in self._materials:
            return self._materials[material_index]

        gltf_mat = self.document.material(material_index)
        if not material_id:
            material_id = gltf_mat.name or f"Material_{material_index}"

        material = Material(id=material_id)
        if has_vertex_color:
            material.add_define(VERTEX_COLOR_DEFINE)
        material.lit = is_lit

        self._materials[material_index] = material

        self.set_material_textures(gltf_mat, material)
        self.set_material_uniforms(gltf_mat, material)

        material.parent = self.find_base_material(material)
        logger.debug("Built material %s (base %s)", material.id, material.parent.id)
        return material

    def set_material_textures(self, gltf_mat: pygltflib.Material, material: Material) -> None:
        """Create samplers for the textures of a material.

        Only the base colour texture becomes a sampler. The other slots are
        read but not mapped to engine samplers yet.
        """
        textures = read_material_textures(gltf_mat)
        if textures.base_color is None:
            return

        sampler = material.create_sampler(DIFFUSE_TEXTURE)
        sampler.set("relativePath", self._texture_uri(textures.base_color))
        sampler.set("wrapS", TextureWrap.REPEAT)
        sampler.set("wrapT", TextureWrap.REPEAT)

    def set_material_uniforms(self, gltf_mat: pygltflib.Material, material: Material) -> None:
        """Set the diffuse colour uniform from the base colour factor."""
        pbr = gltf_mat.pbrMetallicRoughness
        factor = (pbr.baseColorFactor if pbr else None) or DEFAULT_BASE_COLOR
        material.set_uniform(DIFFUSE_COLOR, tuple(float(c) for c in factor[:4]))

    def find_base_material(self, material: Material) -> Material:
        """Get the base material for a material's signature, creating it lazily."""
        name = base_material_name(material)
        base = self._base_materials.get(name)
        if base is None:
            base = self.create_base_material(name, material)
            self._base_materials[name] = base
        return base

    def create_base_material(self, name: str, child: Material) -> Material:
        """Create the base material shared by all materials of one signature.

        Lighting related state is derived from the child that triggers the
        creation.
        """
        base = Material(id=name)
        base.set_uniform(WORLD_VIEW_PROJECTION, "WORLD_VIEW_PROJECTION_MATRIX")
        base.set_render_state("cullFace", "true")
        base.set_render_state("depthTest", "true")

        if child.is_textured():
            base.vertex_shader, base.fragment_shader = SHADERS[TEXTURED_SIGNATURE]
            sampler = base.create_sampler(DIFFUSE_TEXTURE)
            sampler.set("mipmap", "true")
            sampler.set("wrapS", TextureWrap.CLAMP)
            sampler.set("wrapT", TextureWrap.CLAMP)
            sampler.set("minFilter", "LINEAR_MIPMAP_LINEAR")
            sampler.set("magFilter", "LINEAR")
        else:
            base.vertex_shader, base.fragment_shader = SHADERS[COLORED_SIGNATURE]

        if child.lit:
            base.lit = True
            child.set_uniform(
                INVERSE_TRANSPOSE_WORLD_VIEW, "INVERSE_TRANSPOSE_WORLD_VIEW_MATRIX"
            )
            base.add_define(DIRECTIONAL_LIGHT_DEFINE)
            if child.specular:
                child.set_uniform(CAMERA_POSITION, "CAMERA_WORLD_POSITION")

        logger.debug("Created base material %s", name)
        return base

    def _texture_uri(self, texture_index: int) -> str:
        texture = self.document.texture(texture_index)
        if texture.source is None:
            logger.warning("Texture %d has no image source", texture_index)
            return ""
        image = self.document.image(texture.source)
        if not image.uri:
            logger.warning("Image %d has no URI", texture.source)
            return ""
        return image.uri


def _texture_index(info) -> int | None:
    if info is None or info.index is None or info.index < 0:
        return None
    return info.index
