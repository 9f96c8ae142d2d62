# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""Shared names for the ProseMirror <-> Loro tree layout"""

# Tree container holding the fragment when the caller does not name one
DEFAULT_FRAGMENT_NAME = "prosemirror"

# Tag of the handle standing for the fragment itself
FRAGMENT_TAG = "#fragment"

# Tag stored in the meta map of text-run nodes
TEXT_TAG = "#text"

# Meta map keys of a tree node
META_TAG = "tag"
META_ATTRS = "attrs"
META_TEXT = "text"

# Element attribute carrying the JSON-encoded marks of a non-text node
MARKS_ATTRIBUTE = "marks"

# Top-level JSON node type
DOC_TYPE = "doc"
TEXT_TYPE = "text"
