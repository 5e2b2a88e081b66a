# SPDX-License-Identifier: MIT
"""Decode typed elements from glTF buffers through accessors and buffer views."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pygltflib

from gltf_scene_encoder.errors import AccessorRangeError, UnsupportedAccessorError

if TYPE_CHECKING:
    from gltf_scene_encoder.parser.document import SourceDocument

# Only 32-bit float components are supported for vertex and animation payloads
FLOAT_SIZE = 4

ELEMENT_COUNTS = {
    pygltflib.SCALAR: 1,
    pygltflib.VEC2: 2,
    pygltflib.VEC3: 3,
    pygltflib.VEC4: 4,
}

INDEX_DTYPES = {
    pygltflib.UNSIGNED_BYTE: np.dtype("<u1"),
    pygltflib.UNSIGNED_SHORT: np.dtype("<u2"),
    pygltflib.UNSIGNED_INT: np.dtype("<u4"),
}


def element_count(accessor_type: str) -> int:
    """Get the number of components of an accessor element type.

    Raises:
        UnsupportedAccessorError: For anything but SCALAR/VEC2/VEC3/VEC4
    """
    count = ELEMENT_COUNTS.get(accessor_type)
    if count is None:
        raise UnsupportedAccessorError(f"Unsupported accessor type: {accessor_type}")
    return count


def byte_stride(
    accessor: pygltflib.Accessor, buffer_view: pygltflib.BufferView
) -> int:
    """Distance in bytes between two consecutive float elements."""
    if buffer_view.byteStride:
        return buffer_view.byteStride
    return element_count(accessor.type) * FLOAT_SIZE


def read_vector(
    accessor: pygltflib.Accessor,
    buffer_view: pygltflib.BufferView,
    buffer: bytes,
    index: int,
) -> tuple[float, ...]:
    """Read one float element of an accessor.

    Use read_float_accessor to decode every element at once.

    Args:
        accessor: Accessor describing the element type
        buffer_view: Buffer view the accessor reads from
        buffer: Raw bytes of the buffer the view points into
        index: Element index

    Returns:
        Tuple with element_count(accessor.type) floats
    """
    _require_float(accessor)
    size = element_count(accessor.type)
    stride = byte_stride(accessor, buffer_view)
    offset = _base_offset(accessor, buffer_view) + index * stride
    if index < 0 or offset + size * FLOAT_SIZE > len(buffer):
        raise AccessorRangeError(
            f"Element {index} at byte {offset} is outside buffer of {len(buffer)} bytes"
        )
    values = np.frombuffer(buffer, dtype="<f4", count=size, offset=offset)
    return tuple(float(v) for v in values)


def read_scalar(
    accessor: pygltflib.Accessor,
    buffer_view: pygltflib.BufferView,
    buffer: bytes,
    index: int,
) -> float:
    """Read the first component of one float element."""
    return read_vector(accessor, buffer_view, buffer, index)[0]


def read_float_accessor(document: SourceDocument, accessor_index: int) -> np.ndarray:
    """Decode a whole float accessor.

    Bulk form of read_vector: element i is read at the same offset, base
    offset plus i times the stride, through one strided view.

    Returns:
        (count, n) float32 array where n is the element component count
    """
    accessor, buffer_view, buffer = resolve_accessor(document, accessor_index)
    _require_float(accessor)
    size = element_count(accessor.type)
    stride = byte_stride(accessor, buffer_view)
    count = accessor.count or 0
    if count == 0:
        return np.zeros((0, size), dtype=np.float32)

    offset = _base_offset(accessor, buffer_view)
    _check_range(offset, stride, count, size * FLOAT_SIZE, len(buffer), accessor_index)

    view = np.ndarray(
        shape=(count, size),
        dtype="<f4",
        buffer=buffer,
        offset=offset,
        strides=(stride, FLOAT_SIZE),
    )
    return np.array(view, dtype=np.float32)


def read_index_accessor(document: SourceDocument, accessor_index: int) -> np.ndarray:
    """Decode an index accessor with unsigned 8/16/32-bit components.

    Returns:
        1D int64 array of indices

    Raises:
        UnsupportedAccessorError: For any other component type
    """
    accessor, buffer_view, buffer = resolve_accessor(document, accessor_index)
    dtype = INDEX_DTYPES.get(accessor.componentType)
    if dtype is None:
        raise UnsupportedAccessorError(
            f"Unsupported index component type {accessor.componentType} "
            f"(accessor {accessor_index})"
        )
    count = accessor.count or 0
    if count == 0:
        return np.zeros(0, dtype=np.int64)

    offset = _base_offset(accessor, buffer_view)
    _check_range(offset, dtype.itemsize, count, dtype.itemsize, len(buffer), accessor_index)
    data = np.frombuffer(buffer, dtype=dtype, count=count, offset=offset)
    return data.astype(np.int64)


def accessor_bounds(document: SourceDocument, accessor_index: int) -> tuple[float, float]:
    """Get (min, max) of the first component of an accessor.

    Uses the declared bounds, falling back to the decoded data when the
    document omits them.
    """
    accessor = document.accessor(accessor_index)
    if accessor.min and accessor.max:
        return float(accessor.min[0]), float(accessor.max[0])

    data = read_float_accessor(document, accessor_index)
    if len(data) == 0:
        return 0.0, 0.0
    return float(data[:, 0].min()), float(data[:, 0].max())


def resolve_accessor(
    document: SourceDocument, accessor_index: int
) -> tuple[pygltflib.Accessor, pygltflib.BufferView, bytes]:
    """Look up an accessor together with its buffer view and buffer bytes."""
    accessor = document.accessor(accessor_index)
    if accessor.bufferView is None:
        raise AccessorRangeError(f"Accessor {accessor_index} has no buffer view")
    buffer_view = document.buffer_view(accessor.bufferView)
    buffer = document.buffer(buffer_view.buffer)
    return accessor, buffer_view, buffer


def _base_offset(accessor: pygltflib.Accessor, buffer_view: pygltflib.BufferView) -> int:
    return (buffer_view.byteOffset or 0) + (accessor.byteOffset or 0)


def _require_float(accessor: pygltflib.Accessor) -> None:
    if accessor.componentType != pygltflib.FLOAT:
        raise UnsupportedAccessorError(
            f"Unsupported component type {accessor.componentType}, expected FLOAT"
        )


def _check_range(
    offset: int,
    stride: int,
    count: int,
    element_size: int,
    buffer_size: int,
    accessor_index: int,
) -> None:
    end = offset + (count - 1) * stride + element_size
    if offset < 0 or end > buffer_size:
        raise AccessorRangeError(
            f"Accessor {accessor_index} reads bytes {offset}..{end} "
            f"of a {buffer_size} byte buffer"
        )
