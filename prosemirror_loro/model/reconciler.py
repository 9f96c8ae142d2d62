# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
In-place update of a fragment towards a ProseMirror document

Rebuilding a fragment from scratch deletes every tree node and every
character, so a replica that edits concurrently loses its edits on merge.
The reconciler instead issues the smallest set of tree operations it can
find, leaving untouched nodes and characters with their Loro identity.

ALGORITHM:
=========

1. **Items**: the children of an element are grouped into items. An element
   is an item keyed by its tag; a maximal sequence of text runs (tree side)
   or text nodes (JSON side) is one text-group item.

2. **Alignment**: old and new items are aligned with a longest common
   subsequence over their keys. Equal keys are always matched when walking
   the table, so when several siblings could match, the first remaining one
   in document order wins.

3. **Edits**:
   - Unmatched old items are deleted, unmatched new items are written with
     the builder at their position.
   - Matched elements get their changed attributes set, removed attributes
     deleted, and their children reconciled recursively.
   - Matched text groups are edited by trimming the common prefix and suffix
     of the old and new text: one deletion and one insertion of the middle,
     followed by mark/unmark calls over the characters whose attributes
     differ. Runs left empty are removed. When the node counts differ the
     group is diffed as one string, so a text node added next to an existing
     one with the same marks joins its run and reads back merged.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .builder import write_node
from .loro_fragment import ElementNode, LoroFragment, TextRun, TreeChild
from .nodes import (
    content_list,
    element_attributes,
    is_text,
    text_attributes,
    text_content,
    validate_document,
)

logger = logging.getLogger(__name__)

TEXT_KEY = ("text", "")

_MISSING = object()


@dataclass
class ReconcileStats:
    """Counts of the tree operations issued by one reconcile pass"""
    nodes_inserted: int = 0
    nodes_removed: int = 0
    attributes_set: int = 0
    attributes_removed: int = 0
    characters_inserted: int = 0
    characters_deleted: int = 0
    format_spans: int = 0

    @property
    def changed(self) -> bool:
        return any((
            self.nodes_inserted, self.nodes_removed, self.attributes_set,
            self.attributes_removed, self.characters_inserted,
            self.characters_deleted, self.format_spans,
        ))


@dataclass
class _Item:
    key: Tuple[str, str]
    members: List[Any] = field(default_factory=list)


def update_fragment(fragment: LoroFragment, document: Union[str, Dict[str, Any]]) -> ReconcileStats:
    """
    Update a fragment in place so that it serializes to ``document``

    Args:
        fragment: Live fragment holding the prior state
        document: Desired ProseMirror document (dictionary or JSON string)

    Returns:
        Statistics about the operations that were issued

    Raises:
        MalformedDocumentError: If the document is malformed; nothing is written
    """
    document = validate_document(document)
    stats = ReconcileStats()
    root = fragment.root()
    _reconcile_children(fragment, root, content_list(document, "doc"), "doc", stats)
    logger.info(f"Reconciled fragment '{fragment.name}': {stats}")
    return stats


def align(old_keys: Sequence[Any], new_keys: Sequence[Any]) -> List[Tuple[Optional[int], Optional[int]]]:
    """
    Align two key sequences on a longest common subsequence

    Returns:
        Pairs (old_index, new_index) in document order; a None side marks a
        removal (new_index None) or an insertion (old_index None)
    """
    n, m = len(old_keys), len(new_keys)
    lengths = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        for j in range(m - 1, -1, -1):
            if old_keys[i] == new_keys[j]:
                lengths[i][j] = lengths[i + 1][j + 1] + 1
            else:
                lengths[i][j] = max(lengths[i + 1][j], lengths[i][j + 1])

    pairs: List[Tuple[Optional[int], Optional[int]]] = []
    i = j = 0
    while i < n and j < m:
        if old_keys[i] == new_keys[j]:
            pairs.append((i, j))
            i += 1
            j += 1
        elif lengths[i + 1][j] >= lengths[i][j + 1]:
            pairs.append((i, None))
            i += 1
        else:
            pairs.append((None, j))
            j += 1
    pairs.extend((index, None) for index in range(i, n))
    pairs.extend((None, index) for index in range(j, m))
    return pairs


def _tree_items(children: List[TreeChild]) -> List[_Item]:
    items: List[_Item] = []
    for child in children:
        if isinstance(child, TextRun):
            if items and items[-1].key == TEXT_KEY:
                items[-1].members.append(child)
                continue
            items.append(_Item(TEXT_KEY, [child]))
        else:
            items.append(_Item(("element", child.tag), [child]))
    return items


def _json_items(content: List[Dict[str, Any]], path: str) -> List[_Item]:
    items: List[_Item] = []
    for index, node in enumerate(content):
        member = (node, f"{path}.content[{index}]")
        if is_text(node):
            if items and items[-1].key == TEXT_KEY:
                items[-1].members.append(member)
                continue
            items.append(_Item(TEXT_KEY, [member]))
        else:
            items.append(_Item(("element", node["type"]), [member]))
    return items


def _reconcile_children(
    fragment: LoroFragment,
    parent: ElementNode,
    content: List[Dict[str, Any]],
    path: str,
    stats: ReconcileStats
) -> None:
    old_items = _tree_items(fragment.children(parent))
    new_items = _json_items(content, path)
    pairs = align([item.key for item in old_items], [item.key for item in new_items])

    removed = [old_items[old_index] for old_index, new_index in pairs if new_index is None]
    if removed:
        with fragment.transaction():
            for item in removed:
                for node in item.members:
                    fragment.remove_child(node)
                    stats.nodes_removed += 1

    # Only matched items are left, so positions can be counted from the start
    cursor = 0
    for old_index, new_index in pairs:
        if new_index is None:
            continue
        new_item = new_items[new_index]
        if old_index is None:
            for node, node_path in new_item.members:
                write_node(fragment, parent, node, node_path, cursor)
                stats.nodes_inserted += 1
                cursor += 1
        elif new_item.key == TEXT_KEY:
            cursor += _reconcile_text_group(fragment, old_items[old_index].members, new_item.members, stats)
        else:
            element = old_items[old_index].members[0]
            node, node_path = new_item.members[0]
            _reconcile_element(fragment, element, node, node_path, stats)
            cursor += 1


def _reconcile_element(
    fragment: LoroFragment,
    element: ElementNode,
    node: Dict[str, Any],
    path: str,
    stats: ReconcileStats
) -> None:
    desired = element_attributes(node, path)
    current = fragment.attributes(element)
    for key, value in desired.items():
        if current.get(key) != value:
            fragment.set_attribute(element, key, value)
            stats.attributes_set += 1
    for key in current:
        if key not in desired:
            fragment.remove_attribute(element, key)
            stats.attributes_removed += 1
    _reconcile_children(fragment, element, content_list(node, path), path, stats)


def _reconcile_text_group(
    fragment: LoroFragment,
    runs: List[TextRun],
    members: List[Tuple[Dict[str, Any], str]],
    stats: ReconcileStats
) -> int:
    """Edit a group of text runs towards a group of text nodes; returns the runs kept"""
    chunks = [(text_content(node, path), text_attributes(node, path)) for node, path in members]
    if len(runs) == len(chunks):
        # One node per run, as written by the builder
        return sum(
            _reconcile_runs(fragment, [run], [chunk], stats)
            for run, chunk in zip(runs, chunks)
        )
    return _reconcile_runs(fragment, runs, chunks, stats)


def changed_span(current: str, target: str) -> Tuple[int, int, int]:
    """
    Locate the differing middle of two strings

    Returns:
        (start, current_end, target_end) so that ``current[start:current_end]``
        has to be replaced by ``target[start:target_end]``
    """
    limit = min(len(current), len(target))
    start = 0
    while start < limit and current[start] == target[start]:
        start += 1
    current_end, target_end = len(current), len(target)
    while current_end > start and target_end > start and current[current_end - 1] == target[target_end - 1]:
        current_end -= 1
        target_end -= 1
    return start, current_end, target_end


def _locate(lengths: List[int], position: int) -> Tuple[int, int]:
    offset = 0
    for index, length in enumerate(lengths):
        if position < offset + length:
            return index, position - offset
        offset += length
    return len(lengths) - 1, position - (offset - lengths[-1])


def _reconcile_runs(
    fragment: LoroFragment,
    runs: List[TextRun],
    chunks: List[Tuple[str, Dict[str, Any]]],
    stats: ReconcileStats
) -> int:
    target = "".join(content for content, _ in chunks)
    desired: List[Dict[str, Any]] = []
    for content, attrs in chunks:
        desired.extend([attrs] * len(content))

    with fragment.transaction():
        texts = ["".join(content for content, _ in fragment.chunks(run)) for run in runs]
        lengths = [len(text) for text in texts]
        start, current_end, target_end = changed_span("".join(texts), target)

        offset = 0
        for index, run in enumerate(runs):
            run_start, run_end = offset, offset + lengths[index]
            offset = run_end
            lo, hi = max(start, run_start), min(current_end, run_end)
            if hi > lo:
                fragment.delete_text(run, lo - run_start, hi - lo)
                lengths[index] -= hi - lo
        stats.characters_deleted += current_end - start

        inserted = target[start:target_end]
        if inserted:
            index, local = _locate(lengths, start)
            fragment.insert_text(runs[index], local, inserted)
            lengths[index] += len(inserted)
            stats.characters_inserted += len(inserted)

        offset = 0
        for index, run in enumerate(runs):
            stats.format_spans += _format_run(fragment, run, desired[offset:offset + lengths[index]])
            offset += lengths[index]

        kept = 0
        for index, run in enumerate(runs):
            if lengths[index] == 0:
                fragment.remove_child(run)
                stats.nodes_removed += 1
            else:
                kept += 1
    return kept


def _format_run(fragment: LoroFragment, run: TextRun, desired: List[Dict[str, Any]]) -> int:
    """Mark/unmark the spans of a run whose attributes differ from ``desired``"""
    current: List[Dict[str, Any]] = []
    for content, attrs in fragment.chunks(run):
        current.extend([attrs] * len(content))

    keys: Dict[str, None] = {}
    for attrs in current + desired:
        keys.update(dict.fromkeys(attrs))

    spans = 0
    size = len(current)
    for key in keys:
        span_start: Optional[int] = None
        span_value: Any = _MISSING
        for i in range(size + 1):
            wanted = desired[i].get(key, _MISSING) if i < size else _MISSING
            differs = i < size and current[i].get(key, _MISSING) != wanted
            if span_start is not None and (not differs or wanted != span_value):
                _apply_span(fragment, run, span_start, i, key, span_value)
                spans += 1
                span_start = None
            if differs and span_start is None:
                span_start, span_value = i, wanted
    return spans


def _apply_span(fragment: LoroFragment, run: TextRun, start: int, end: int, key: str, value: Any) -> None:
    if value is _MISSING:
        fragment.unformat_text(run, start, end, key)
    else:
        fragment.format_text(run, start, end, key, value)
    logger.debug(f"Formatted [{start}, {end}) of run {run.id}: {key}")
