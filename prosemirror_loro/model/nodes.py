# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""Validation and encoding helpers for ProseMirror JSON nodes"""

import json
from typing import Any, Dict, List, Union

from ..constants import FRAGMENT_TAG, MARKS_ATTRIBUTE, TEXT_TAG, TEXT_TYPE
from ..exceptions import MalformedDocumentError
from .mark_codec import encode_mark_name


def load_document(document: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Parse a JSON string if needed and check the top-level shape"""
    if isinstance(document, str):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON format: {e}")
    if not isinstance(document, dict):
        raise MalformedDocumentError("document must be a JSON object")
    content_list(document, "doc")
    return document


def node_type(node: Any, path: str) -> str:
    if not isinstance(node, dict):
        raise MalformedDocumentError("node must be a JSON object", path)
    value = node.get("type")
    if not isinstance(value, str) or not value:
        raise MalformedDocumentError("node is missing a string 'type'", path)
    return value


def is_text(node: Dict[str, Any]) -> bool:
    return node.get("type") == TEXT_TYPE


def content_list(node: Dict[str, Any], path: str) -> List[Any]:
    content = node.get("content")
    if content is None:
        return []
    if not isinstance(content, list):
        raise MalformedDocumentError("'content' must be a list", path)
    return content


def text_content(node: Dict[str, Any], path: str) -> str:
    text = node.get("text", "")
    if text is None:
        return ""
    if not isinstance(text, str):
        raise MalformedDocumentError("'text' must be a string", path)
    return text


def text_attributes(node: Dict[str, Any], path: str) -> Dict[str, Any]:
    """
    Encode the marks of a text node into a flat text attribute map

    Returns:
        Mapping of encoded mark key -> mark attributes (empty dict when bare)
    """
    marks = node.get("marks") or []
    if not isinstance(marks, list):
        raise MalformedDocumentError("'marks' must be a list", path)
    attrs = {}
    for index, mark in enumerate(marks):
        mark_path = f"{path}.marks[{index}]"
        mark_type = node_type(mark, mark_path)
        mark_attrs = mark.get("attrs")
        if mark_attrs is not None and not isinstance(mark_attrs, dict):
            raise MalformedDocumentError("mark 'attrs' must be an object", mark_path)
        attrs[encode_mark_name(mark_type, mark_attrs)] = mark_attrs or {}
    return attrs


def attribute_string(value: Any) -> str:
    """Element attributes are stored as strings"""
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def element_attributes(node: Dict[str, Any], path: str) -> Dict[str, str]:
    """String attribute map to store on an element, including its marks"""
    attrs = node.get("attrs") or {}
    if not isinstance(attrs, dict):
        raise MalformedDocumentError("'attrs' must be an object", path)
    result = {str(key): attribute_string(value) for key, value in attrs.items()}
    marks = node.get("marks")
    if marks is not None:
        if not isinstance(marks, list):
            raise MalformedDocumentError("'marks' must be a list", path)
        result[MARKS_ATTRIBUTE] = json.dumps(marks, separators=(",", ":"), ensure_ascii=False)
    return result


def validate_node(node: Any, path: str) -> None:
    """Check a node and its subtree before anything is written"""
    if node_type(node, path) == TEXT_TYPE:
        text_content(node, path)
        text_attributes(node, path)
        return
    if node["type"] in (TEXT_TAG, FRAGMENT_TAG):
        raise MalformedDocumentError(f"element type '{node['type']}' is reserved", path)
    element_attributes(node, path)
    for index, child in enumerate(content_list(node, path)):
        validate_node(child, f"{path}.content[{index}]")


def validate_document(document: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Load a document and validate every node of it"""
    document = load_document(document)
    for index, node in enumerate(content_list(document, "doc")):
        validate_node(node, f"doc.content[{index}]")
    return document
