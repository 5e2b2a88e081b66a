# SPDX-License-Identifier: MIT
"""Exceptions raised while encoding a glTF document."""

from __future__ import annotations


class EncoderError(ValueError):
    """Base class for fatal conversion errors."""


class DocumentLoadError(EncoderError):
    """The source document could not be loaded or its buffers resolved."""


class MissingSceneError(EncoderError):
    """The document does not declare a usable default scene."""


class UnsupportedAccessorError(EncoderError):
    """An accessor uses an element type or component type we cannot decode."""


class AccessorRangeError(EncoderError):
    """An accessor, buffer view or buffer reference points outside its data."""
