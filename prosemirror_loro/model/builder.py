# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
ProseMirror JSON -> Tree

Writes the nodes of a ProseMirror document under a fragment element. Every
text node becomes its own text run with its marks encoded as text attributes,
every element node becomes an element whose attributes are set one
transaction at a time. This path only appends; updating existing content in
place is the job of the reconciler.
"""

import logging
from typing import Any, Dict, Optional, Union

from ..constants import TEXT_TYPE
from .loro_fragment import ElementNode, LoroFragment, TextRun
from .nodes import (
    content_list,
    element_attributes,
    validate_document,
    node_type,
    text_attributes,
    text_content,
)

logger = logging.getLogger(__name__)


def json_to_fragment(fragment: LoroFragment, document: Union[str, Dict[str, Any]]) -> None:
    """
    Append the content of a ProseMirror document to a fragment

    Args:
        fragment: Target fragment, expected to be empty
        document: ProseMirror document as dictionary or JSON string

    Raises:
        MalformedDocumentError: If a node does not have the expected shape
    """
    document = validate_document(document)
    root = fragment.root()
    content = content_list(document, "doc")
    for index, node in enumerate(content):
        write_node(fragment, root, node, f"doc.content[{index}]")
    logger.info(f"Wrote {len(content)} top-level nodes into fragment '{fragment.name}'")


def write_node(
    fragment: LoroFragment,
    parent: ElementNode,
    node: Any,
    path: str,
    index: Optional[int] = None
) -> Union[ElementNode, TextRun]:
    """Write one JSON node (and its subtree) under ``parent`` at ``index``"""
    if node_type(node, path) == TEXT_TYPE:
        return write_text_node(fragment, parent, node, path, index)
    return write_element_node(fragment, parent, node, path, index)


def write_text_node(
    fragment: LoroFragment,
    parent: ElementNode,
    node: Dict[str, Any],
    path: str,
    index: Optional[int] = None
) -> TextRun:
    content = text_content(node, path)
    attrs = text_attributes(node, path)
    with fragment.transaction():
        run = fragment.insert_text_run(parent, index)
        fragment.insert_text(run, 0, content, attrs)
    return run


def write_element_node(
    fragment: LoroFragment,
    parent: ElementNode,
    node: Dict[str, Any],
    path: str,
    index: Optional[int] = None
) -> ElementNode:
    attrs = element_attributes(node, path)
    children = content_list(node, path)

    with fragment.transaction():
        element = fragment.insert_child(parent, index, node["type"])
    for key, value in attrs.items():
        fragment.set_attribute(element, key, value)

    for child_index, child in enumerate(children):
        write_node(fragment, element, child, f"{path}.content[{child_index}]")
    logger.debug(f"Wrote element '{element.tag}' with {len(children)} children")
    return element
