# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
LoroFragment: an XML-like element/text tree laid out on a Loro tree container

Loro has no XML fragment type, so the ProseMirror document tree is stored in a
``LoroTree``. Every tree node carries a meta map describing what it is:

Tree Layout:
- Fragment root:  the tree itself, its top-level nodes are the document content
- Element:        meta {"tag": "<type>", "attrs": LoroMap[str, str]}
- Text run:       meta {"tag": "#text",   "text": LoroText}

Text formatting lives in the rich text of a run: each chunk of
``LoroText.to_delta()`` is a piece of text sharing one attribute map.

All writes go through the methods of this class and must happen inside
``transaction()``, which commits the pending Loro operations when it exits.
Node handles only hold a ``TreeID`` and are re-read on every access.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from loro import ExpandType, LoroDoc, LoroMap, LoroText

from ..constants import (
    DEFAULT_FRAGMENT_NAME,
    FRAGMENT_TAG,
    META_ATTRS,
    META_TAG,
    META_TEXT,
    TEXT_TAG,
)
from ..exceptions import UnrepresentableNodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElementNode:
    """Handle on an element (or the fragment root) in the tree"""
    id: Any
    tag: str


@dataclass(frozen=True)
class TextRun:
    """Handle on a text run in the tree"""
    id: Any


TreeChild = Union[ElementNode, TextRun]
Chunk = Tuple[str, Dict[str, Any]]


class LoroFragment:
    """
    Element/text tree stored in one named tree container of a Loro document
    """

    def __init__(self, doc: LoroDoc, name: str = DEFAULT_FRAGMENT_NAME):
        """
        Bind a fragment to a Loro document

        Args:
            doc: Loro document owning the tree
            name: Name of the tree container (default: "prosemirror")
        """
        self.doc = doc
        self.name = name
        self.tree = doc.get_tree(name)
        self.tree.enable_fractional_index(0)
        # Encoded mark keys are not known up front
        self.doc.config_default_text_style(ExpandType.After)

    # ------------------------------------------------------------------
    # Transactions

    @contextmanager
    def transaction(self) -> Iterator["LoroFragment"]:
        """
        Scope a group of writes; pending operations are committed on exit

        The commit also runs when the body raises, so writes issued before a
        failure stay applied.
        """
        try:
            yield self
        finally:
            self.doc.commit()

    # ------------------------------------------------------------------
    # Reading

    def _meta(self, tree_id: Any) -> Dict[str, Any]:
        value = self.tree.get_meta(tree_id).get_deep_value()
        return value if isinstance(value, dict) else {}

    def root(self) -> ElementNode:
        """
        Handle on the fragment itself

        The root is not a tree node: its children are the top-level nodes of
        the tree, so content created concurrently by several replicas merges
        side by side.
        """
        return ElementNode(None, FRAGMENT_TAG)

    def _child_ids(self, parent: ElementNode) -> List[Any]:
        if parent.id is None:
            return list(self.tree.roots)
        return list(self.tree.children(parent.id) or [])

    def node(self, tree_id: Any) -> TreeChild:
        """Build the handle for a tree node from its meta map"""
        tag = self._meta(tree_id).get(META_TAG)
        if not isinstance(tag, str) or not tag:
            raise UnrepresentableNodeError(f"Tree node {tree_id} has no tag")
        if tag == TEXT_TAG:
            return TextRun(tree_id)
        return ElementNode(tree_id, tag)

    def children(self, parent: ElementNode) -> List[TreeChild]:
        """Ordered children of an element"""
        return [self.node(child_id) for child_id in self._child_ids(parent)]

    def attributes(self, element: ElementNode) -> Dict[str, Any]:
        """Attribute map of an element"""
        attrs = self._meta(element.id).get(META_ATTRS)
        return dict(attrs) if isinstance(attrs, dict) else {}

    def _text(self, run: TextRun) -> LoroText:
        return self.tree.get_meta(run.id).get_or_create_container(META_TEXT, LoroText())

    def chunks(self, run: TextRun) -> List[Chunk]:
        """
        Attributed chunks of a text run

        Returns:
            List of (text, attributes) pairs in document order, adjacent
            chunks never share the same attributes
        """
        result: List[Chunk] = []
        for delta in self._text(run).to_delta():
            content = getattr(delta, "insert", None)
            if not isinstance(content, str) or not content:
                continue
            # Unmarked keys can surface with a null value
            attributes = {k: v for k, v in (delta.attributes or {}).items() if v is not None}
            if result and result[-1][1] == attributes:
                result[-1] = (result[-1][0] + content, attributes)
            else:
                result.append((content, attributes))
        return result

    def text_length(self, run: TextRun) -> int:
        return sum(len(content) for content, _ in self.chunks(run))

    # ------------------------------------------------------------------
    # Writing

    def _create(self, parent: ElementNode, index: Optional[int], tag: str) -> Any:
        if index is None:
            index = len(self._child_ids(parent))
        child_id = self.tree.create_at(index, parent.id)
        meta = self.tree.get_meta(child_id)
        meta.insert(META_TAG, tag)
        if tag == TEXT_TAG:
            meta.insert_container(META_TEXT, LoroText())
        else:
            meta.insert_container(META_ATTRS, LoroMap())
        return child_id

    def append_child(self, parent: ElementNode, tag: str) -> ElementNode:
        return self.insert_child(parent, None, tag)

    def insert_child(self, parent: ElementNode, index: Optional[int], tag: str) -> ElementNode:
        """Create an element under ``parent`` at ``index`` (None appends)"""
        if tag in (TEXT_TAG, FRAGMENT_TAG):
            raise ValueError(f"Tag '{tag}' is reserved")
        return ElementNode(self._create(parent, index, tag), tag)

    def push_text(self, parent: ElementNode) -> TextRun:
        return self.insert_text_run(parent, None)

    def insert_text_run(self, parent: ElementNode, index: Optional[int]) -> TextRun:
        """Create an empty text run under ``parent`` at ``index`` (None appends)"""
        return TextRun(self._create(parent, index, TEXT_TAG))

    def remove_child(self, node: TreeChild) -> None:
        self.tree.delete(node.id)

    def set_attribute(self, element: ElementNode, key: str, value: str) -> None:
        """Set one element attribute inside its own transaction"""
        with self.transaction():
            attrs = self.tree.get_meta(element.id).get_or_create_container(META_ATTRS, LoroMap())
            attrs.insert(key, value)

    def remove_attribute(self, element: ElementNode, key: str) -> None:
        with self.transaction():
            attrs = self.tree.get_meta(element.id).get_or_create_container(META_ATTRS, LoroMap())
            attrs.delete(key)

    def insert_text(
        self,
        run: TextRun,
        offset: int,
        content: str,
        attrs: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Insert text into a run, applying ``attrs`` uniformly to the new span

        Without ``attrs`` the new text takes whatever formatting the run
        expands over it; with ``attrs`` the span carries exactly those.

        Args:
            run: Target text run
            offset: Character offset of the insertion
            content: Text to insert
            attrs: Text attributes (encoded mark key -> value) for the span
        """
        if not content:
            return
        text = self._text(run)
        text.insert(offset, content)
        if attrs is None:
            return
        end = offset + len(content)
        for key, value in attrs.items():
            text.mark(offset, end, key, value)
        for key in self._keys_between(run, offset, end):
            if key not in attrs:
                text.unmark(offset, end, key)

    def _keys_between(self, run: TextRun, start: int, end: int) -> List[str]:
        keys: Dict[str, None] = {}
        position = 0
        for content, attributes in self.chunks(run):
            if position < end and position + len(content) > start:
                keys.update(dict.fromkeys(attributes))
            position += len(content)
        return list(keys)

    def delete_text(self, run: TextRun, offset: int, length: int) -> None:
        if length > 0:
            self._text(run).delete(offset, length)

    def format_text(self, run: TextRun, start: int, end: int, key: str, value: Any) -> None:
        if end > start:
            self._text(run).mark(start, end, key, value)

    def unformat_text(self, run: TextRun, start: int, end: int, key: str) -> None:
        if end > start:
            self._text(run).unmark(start, end, key)
