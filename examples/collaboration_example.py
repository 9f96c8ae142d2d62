#!/usr/bin/env python3
"""
ProseMirrorLoroModel Example: Real-time Collaboration Simulation

Two replicas edit the same ProseMirror document concurrently. Each side
writes its new JSON with reconcile(), so only the actual change travels as an
update and both edits survive the merge.
"""

import json

from prosemirror_loro import ProseMirrorLoroModel


def paragraph(value):
    return {"type": "paragraph", "content": [{"type": "text", "text": value}]}


def main():
    print("🤝 ProseMirrorLoroModel Collaboration Simulation")
    print("=" * 60)

    # User A creates the initial document
    print("👤 User A: Creating initial document...")
    user_a = ProseMirrorLoroModel()
    user_a.build({
        "type": "doc",
        "content": [
            {"type": "heading", "attrs": {"level": "1"},
             "content": [{"type": "text", "text": "Project notes"}]},
            paragraph("Requirements go here"),
            paragraph("Timeline goes here"),
        ],
    })

    snapshot = user_a.export_snapshot()
    print(f"   📦 Snapshot size: {len(snapshot)} bytes")

    # User B joins from the snapshot
    print("\n👤 User B: Joining collaboration...")
    user_b = ProseMirrorLoroModel.from_snapshot(snapshot)
    a_seen, b_seen = user_a.version(), user_b.version()

    # Both users edit different paragraphs at the same time
    document_a = user_a.to_json()
    document_a["content"][1] = paragraph("Requirements: conflict-free editing")
    stats_a = user_a.reconcile(document_a)
    print(f"   ✏️  User A: {stats_a}")

    document_b = user_b.to_json()
    document_b["content"][2] = paragraph("Timeline: ship in week 2")
    stats_b = user_b.reconcile(document_b)
    print(f"   ✏️  User B: {stats_b}")

    # Exchange incremental updates
    update_a = user_a.export_updates(b_seen)
    update_b = user_b.export_updates(a_seen)
    print(f"\n🔄 Exchanging updates: A -> B {len(update_a)} bytes, B -> A {len(update_b)} bytes")
    user_b.import_updates(update_a)
    user_a.import_updates(update_b)

    converged = user_a.to_json() == user_b.to_json()
    print(f"   {'✅' if converged else '❌'} Replicas converged: {converged}")
    print(json.dumps(user_a.to_json(), indent=2))


if __name__ == "__main__":
    main()
