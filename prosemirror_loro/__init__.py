# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
ProseMirror Loro - ProseMirror JSON documents on top of the Loro CRDT
"""

from .exceptions import MalformedDocumentError, UnrepresentableNodeError
from .model import (
    LoroFragment,
    ProseMirrorLoroModel,
    ReconcileStats,
    decode_mark_name,
    encode_mark_name,
    fragment_to_json,
    json_to_fragment,
    update_fragment,
)

__version__ = "0.1.0"

__all__ = [
    "LoroFragment",
    "MalformedDocumentError",
    "ProseMirrorLoroModel",
    "ReconcileStats",
    "UnrepresentableNodeError",
    "decode_mark_name",
    "encode_mark_name",
    "fragment_to_json",
    "json_to_fragment",
    "update_fragment",
]
