# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
ProseMirrorLoroModel: a ProseMirror document backed by a Loro CRDT

The model owns one ``LoroDoc`` and one named fragment inside it, and offers
the two ways of writing JSON into the tree as separate operations:

- ``build()`` populates an empty fragment. Every node is new.
- ``reconcile()`` updates a populated fragment in place, so the change
  merges with concurrent edits made by other replicas.

USAGE PATTERNS:
==============

✅ Initialization:
model = ProseMirrorLoroModel()
model.build({"type": "doc", "content": [...]})

✅ Collaboration:
since = other.version()
model.reconcile(new_document)
other.import_updates(model.export_updates(since))

✅ Export:
document = model.to_json()
model.save_snapshot("doc.loro")

✅ History:
checkpoint = model.frontiers()
model.reconcile(new_document)
old_document = model.to_json_at(checkpoint)
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from loro import ExportMode, LoroDoc

from ..constants import DEFAULT_FRAGMENT_NAME
from .builder import json_to_fragment
from .loro_fragment import LoroFragment
from .reconciler import ReconcileStats, update_fragment
from .serializer import fragment_to_json

logger = logging.getLogger(__name__)

Document = Union[str, Dict[str, Any]]


class ProseMirrorLoroModel:
    """
    ProseMirror JSON view over a fragment of a Loro document
    """

    def __init__(
        self,
        doc: Optional[LoroDoc] = None,
        fragment_name: str = DEFAULT_FRAGMENT_NAME,
        peer_id: Optional[int] = None
    ):
        """
        Initialize the model

        Args:
            doc: Existing Loro document, a new one is created when omitted
            fragment_name: Name of the tree container holding the document
            peer_id: Optional Loro peer id for this replica
        """
        self.doc = doc if doc is not None else LoroDoc()
        if peer_id is not None:
            self.doc.peer_id = peer_id
        self.fragment = LoroFragment(self.doc, fragment_name)
        logger.debug(f"Initialized ProseMirrorLoroModel on fragment '{fragment_name}'")

    @classmethod
    def from_snapshot(cls, data: bytes, fragment_name: str = DEFAULT_FRAGMENT_NAME) -> "ProseMirrorLoroModel":
        """Create a model from an exported snapshot or update"""
        model = cls(fragment_name=fragment_name)
        model.import_updates(data)
        return model

    # ------------------------------------------------------------------
    # JSON

    def is_empty(self) -> bool:
        return not self.fragment.children(self.fragment.root())

    def to_json(self) -> Dict[str, Any]:
        return fragment_to_json(self.fragment)

    def to_json_string(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_json(), indent=indent, ensure_ascii=False)

    def build(self, document: Document) -> None:
        """
        Populate the empty fragment from a ProseMirror document

        Raises:
            RuntimeError: If the fragment already has content
            MalformedDocumentError: If the document is malformed
        """
        if not self.is_empty():
            raise RuntimeError(
                f"Fragment '{self.fragment.name}' is not empty, use reconcile() to update it"
            )
        json_to_fragment(self.fragment, document)
        logger.info(f"Built fragment '{self.fragment.name}' from JSON")

    def reconcile(self, document: Document) -> ReconcileStats:
        """Update the fragment in place towards a ProseMirror document"""
        return update_fragment(self.fragment, document)

    # ------------------------------------------------------------------
    # Replication

    def version(self) -> Any:
        """Version vector of everything this replica has seen"""
        return self.doc.oplog_vv

    def frontiers(self) -> Any:
        """Frontiers of the current state, usable to read or export it later"""
        return self.doc.state_frontiers

    def export_snapshot(self) -> bytes:
        return self.doc.export(ExportMode.Snapshot())

    def export_snapshot_at(self, frontiers: Any) -> bytes:
        """
        Export a snapshot of the document as it was at ``frontiers``

        Args:
            frontiers: Value previously returned by ``frontiers()``

        Returns:
            Snapshot bytes for ``from_snapshot``
        """
        return self.doc.export(ExportMode.SnapshotAt(version=frontiers))

    def to_json_at(self, frontiers: Any) -> Dict[str, Any]:
        """Serialize the document as it was at ``frontiers``, without touching it"""
        past = LoroFragment(self.doc.fork_at(frontiers), self.fragment.name)
        return fragment_to_json(past)

    def subscribe_local_update(self, callback: Callable[[bytes], None]) -> Any:
        """
        Call ``callback`` with the update bytes of every local commit

        Returns:
            Subscription; call ``unsubscribe()`` on it to stop
        """
        def on_update(update: bytes) -> bool:
            callback(update)
            return True

        return self.doc.subscribe_local_update(on_update)

    def export_updates(self, since: Optional[Any] = None) -> bytes:
        """
        Export the operations a peer at version ``since`` is missing

        Args:
            since: Version vector of the peer; a full snapshot when None

        Returns:
            Binary update for ``import_updates`` on the peer
        """
        if since is None:
            return self.export_snapshot()
        return self.doc.export(ExportMode.Updates(from_=since))

    def import_updates(self, data: bytes) -> None:
        self.doc.import_(data)
        logger.debug(f"Imported {len(data)} bytes into fragment '{self.fragment.name}'")

    # ------------------------------------------------------------------
    # Persistence

    def save_snapshot(self, file_path: Union[str, Path]) -> None:
        data = self.export_snapshot()
        Path(file_path).write_bytes(data)
        logger.info(f"Saved snapshot ({len(data)} bytes) to {file_path}")

    @classmethod
    def load_snapshot(
        cls,
        file_path: Union[str, Path],
        fragment_name: str = DEFAULT_FRAGMENT_NAME
    ) -> "ProseMirrorLoroModel":
        model = cls.from_snapshot(Path(file_path).read_bytes(), fragment_name)
        logger.info(f"Loaded snapshot from {file_path}")
        return model

    def save_json(self, file_path: Union[str, Path], indent: Optional[int] = 2) -> None:
        Path(file_path).write_text(self.to_json_string(indent=indent), encoding="utf-8")
        logger.info(f"Saved document JSON to {file_path}")

    @classmethod
    def load_json(
        cls,
        file_path: Union[str, Path],
        fragment_name: str = DEFAULT_FRAGMENT_NAME
    ) -> "ProseMirrorLoroModel":
        """Create a model and build it from a ProseMirror JSON file"""
        model = cls(fragment_name=fragment_name)
        model.build(Path(file_path).read_text(encoding="utf-8"))
        return model
