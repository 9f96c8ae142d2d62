# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

from .builder import json_to_fragment
from .loro_fragment import ElementNode, LoroFragment, TextRun
from .mark_codec import decode_mark_name, encode_mark_name
from .prosemirror_model import ProseMirrorLoroModel
from .reconciler import ReconcileStats, update_fragment
from .serializer import fragment_to_json

__all__ = [
    'ElementNode',
    'LoroFragment',
    'ProseMirrorLoroModel',
    'ReconcileStats',
    'TextRun',
    'decode_mark_name',
    'encode_mark_name',
    'fragment_to_json',
    'json_to_fragment',
    'update_fragment',
]
