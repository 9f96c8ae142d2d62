# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Mark name codec

Text attributes in a Loro rich text are a flat mapping from key to value, so
two marks of the same type (two links with different ``href``) cannot both be
stored under the mark type name. Marks that carry attributes are therefore
stored under ``"<type>--<hash>"`` where ``<hash>`` is 8 base64 characters
derived from the JSON of the attributes. Marks without attributes keep the
bare type name.

KEY GRAMMAR:
===========

    bold                 -> mark "bold", no attributes
    link--Zm9vYmFy       -> mark "link", attributes stored as the value

The hash is the y-prosemirror one: SHA-256 of the compact JSON, folded down to
6 bytes by XOR-ing byte ``i`` into byte ``i % 6``, then base64 encoded. Keys
written by other systems that happen to match the grammar are decoded as
marks too.
"""

import base64
import hashlib
import json
import re
from typing import Any, Dict, Optional

MARK_HASH_PATTERN = re.compile(r"(.+)--[a-zA-Z0-9+/=]{8}")

HASH_BYTES = 6


def _attrs_json(attrs: Dict[str, Any]) -> str:
    # Insertion order, no whitespace, raw unicode: same text as JSON.stringify
    return json.dumps(attrs, separators=(",", ":"), ensure_ascii=False)


def encode_mark_name(mark_type: str, attrs: Optional[Dict[str, Any]] = None) -> str:
    """
    Encode a mark type and its attributes into a text attribute key

    Args:
        mark_type: ProseMirror mark type, e.g. "link"
        attrs: Mark attributes, None or empty for bare marks

    Returns:
        The bare mark type, or "<mark_type>--<8 base64 chars>"
    """
    if not attrs:
        return mark_type

    digest = bytearray(hashlib.sha256(_attrs_json(attrs).encode("utf-8")).digest())
    for i in range(HASH_BYTES, len(digest)):
        digest[i % HASH_BYTES] ^= digest[i]
    suffix = base64.b64encode(bytes(digest[:HASH_BYTES])).decode("ascii")
    return f"{mark_type}--{suffix}"


def decode_mark_name(key: str) -> str:
    """Recover the mark type from an encoded attribute key"""
    match = MARK_HASH_PATTERN.fullmatch(key)
    return match.group(1) if match else key
