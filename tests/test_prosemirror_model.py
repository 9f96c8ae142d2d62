# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

import json

import pytest

from prosemirror_loro.model import ProseMirrorLoroModel

from .conftest import doc, paragraph, text


class TestProseMirrorLoroModel:
    """Model lifecycle, replication and persistence"""

    def test_new_model_is_empty(self, model):
        assert model.is_empty()
        assert model.to_json() == doc()

    def test_build_then_read(self, model):
        model.build(doc(paragraph(text("Hello"))))
        assert not model.is_empty()
        assert model.to_json() == doc(paragraph(text("Hello")))

    def test_build_refuses_populated_fragment(self, model):
        model.build(doc(paragraph(text("Hello"))))
        with pytest.raises(RuntimeError):
            model.build(doc(paragraph(text("Again"))))

    def test_peer_id_is_applied(self):
        assert ProseMirrorLoroModel(peer_id=42).doc.peer_id == 42

    def test_read_past_state(self, model):
        model.build(doc(paragraph(text("first draft"))))
        checkpoint = model.frontiers()
        model.reconcile(doc(paragraph(text("second draft")), paragraph(text("more"))))

        assert model.to_json_at(checkpoint) == doc(paragraph(text("first draft")))
        assert model.to_json() == doc(paragraph(text("second draft")), paragraph(text("more")))

    def test_export_snapshot_at_past_state(self, model):
        model.build(doc(paragraph(text("v1"))))
        checkpoint = model.frontiers()
        model.reconcile(doc(paragraph(text("v2"))))

        restored = ProseMirrorLoroModel.from_snapshot(model.export_snapshot_at(checkpoint))
        assert restored.to_json() == doc(paragraph(text("v1")))

    def test_local_updates_are_published(self, model):
        updates = []
        subscription = model.subscribe_local_update(updates.append)
        model.build(doc(paragraph(text("Hello"))))
        model.reconcile(doc(paragraph(text("Hello, World!"))))

        assert updates
        peer = ProseMirrorLoroModel()
        for update in updates:
            peer.import_updates(update)
        assert peer.to_json() == doc(paragraph(text("Hello, World!")))

        subscription.unsubscribe()
        count = len(updates)
        model.reconcile(doc(paragraph(text("Bye"))))
        assert len(updates) == count

    def test_to_json_string(self, model):
        model.build(json.dumps(doc(paragraph(text("café")))))
        assert json.loads(model.to_json_string(indent=2)) == doc(paragraph(text("café")))
        assert "café" in model.to_json_string()

    def test_fragments_are_isolated(self):
        first = ProseMirrorLoroModel(fragment_name="first")
        second = ProseMirrorLoroModel(doc=first.doc, fragment_name="second")
        first.build(doc(paragraph(text("A"))))
        second.build(doc(paragraph(text("B"))))

        assert first.to_json() == doc(paragraph(text("A")))
        assert second.to_json() == doc(paragraph(text("B")))

    def test_snapshot_round_trip(self, model):
        model.build(doc(paragraph(text("saved"))))
        restored = ProseMirrorLoroModel.from_snapshot(model.export_snapshot())
        assert restored.to_json() == model.to_json()

    def test_export_updates_without_version_is_full_state(self, model):
        model.build(doc(paragraph(text("all"))))
        peer = ProseMirrorLoroModel()
        peer.import_updates(model.export_updates())
        assert peer.to_json() == doc(paragraph(text("all")))

    def test_save_and_load_snapshot(self, model, tmp_path):
        model.build(doc(paragraph(text("on disk"))))
        path = tmp_path / "doc.loro"
        model.save_snapshot(path)

        assert ProseMirrorLoroModel.load_snapshot(path).to_json() == doc(paragraph(text("on disk")))

    def test_save_and_load_json(self, model, tmp_path):
        document = doc({"type": "heading", "attrs": {"level": "1"}, "content": [text("Title")]})
        model.build(document)
        path = tmp_path / "doc.json"
        model.save_json(path)

        assert json.loads(path.read_text(encoding="utf-8")) == document
        assert ProseMirrorLoroModel.load_json(path).to_json() == document
