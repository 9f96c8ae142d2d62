# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Tree -> ProseMirror JSON

Walks a ``LoroFragment`` and produces the ``{"type": "doc", "content": [...]}``
document. Elements become element nodes, every attributed chunk of a text run
becomes one text node, and encoded text attribute keys are decoded back into
marks. Reading never writes to the tree.
"""

import json
from typing import Any, Dict, List

from ..constants import DOC_TYPE, MARKS_ATTRIBUTE, TEXT_TYPE
from ..exceptions import UnrepresentableNodeError
from .loro_fragment import Chunk, ElementNode, LoroFragment
from .mark_codec import decode_mark_name


def fragment_to_json(fragment: LoroFragment) -> Dict[str, Any]:
    """
    Serialize a fragment to a ProseMirror document

    Args:
        fragment: Fragment to read

    Returns:
        Document as a dictionary, ``content`` always present
    """
    content = children_to_json(fragment, fragment.root())
    return {"type": DOC_TYPE, "content": content}


def children_to_json(fragment: LoroFragment, parent: ElementNode) -> List[Dict[str, Any]]:
    result = []
    for child in fragment.children(parent):
        if isinstance(child, ElementNode):
            result.append(element_to_json(fragment, child))
        else:
            result.extend(chunk_to_json(chunk) for chunk in fragment.chunks(child))
    return result


def element_to_json(fragment: LoroFragment, element: ElementNode) -> Dict[str, Any]:
    node: Dict[str, Any] = {"type": element.tag}

    attrs = fragment.attributes(element)
    marks_json = attrs.pop(MARKS_ATTRIBUTE, None)
    if attrs:
        node["attrs"] = attrs
    if marks_json is not None:
        node["marks"] = _element_marks(element, marks_json)

    content = children_to_json(fragment, element)
    if content:
        node["content"] = content
    return node


def _element_marks(element: ElementNode, marks_json: Any) -> List[Any]:
    try:
        marks = json.loads(marks_json)
    except (TypeError, json.JSONDecodeError) as e:
        raise UnrepresentableNodeError(
            f"Element '{element.tag}' has an unreadable '{MARKS_ATTRIBUTE}' attribute: {e}"
        )
    if not isinstance(marks, list):
        raise UnrepresentableNodeError(
            f"Element '{element.tag}' attribute '{MARKS_ATTRIBUTE}' is not a JSON array"
        )
    return marks


def chunk_marks(attributes: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Decode a text attribute map into ProseMirror marks

    Marks come out in the order Loro reports the attributes, not in the order
    they were written, so ``[link, bold]`` can read back as ``[bold, link]``.
    """
    marks = []
    for key, value in attributes.items():
        mark: Dict[str, Any] = {"type": decode_mark_name(key)}
        # Bare marks are stored with an empty object
        if value:
            mark["attrs"] = value
        marks.append(mark)
    return marks


def chunk_to_json(chunk: Chunk) -> Dict[str, Any]:
    content, attributes = chunk
    node: Dict[str, Any] = {"type": TEXT_TYPE, "text": content}
    if attributes:
        node["marks"] = chunk_marks(attributes)
    return node
