# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

import json

import pytest
from click.testing import CliRunner

from prosemirror_loro.cli import main
from prosemirror_loro.model import ProseMirrorLoroModel, encode_mark_name

from .conftest import doc, paragraph, text


def invoke(runner, args):
    # Keep log records out of the command output
    return runner.invoke(main, ["--log-level", "WARNING"] + args)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def json_file(tmp_path):
    path = tmp_path / "doc.json"
    path.write_text(json.dumps(doc(paragraph(text("Hello")))), encoding="utf-8")
    return path


def test_import_then_export(runner, json_file, tmp_path):
    snapshot = tmp_path / "doc.loro"
    result = invoke(runner, ["import", str(json_file), str(snapshot)])
    assert result.exit_code == 0, result.output
    assert snapshot.exists()

    result = invoke(runner, ["export", str(snapshot)])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == doc(paragraph(text("Hello")))


def test_update_writes_delta(runner, json_file, tmp_path):
    snapshot = tmp_path / "doc.loro"
    invoke(runner, ["import", str(json_file), str(snapshot)])
    peer = ProseMirrorLoroModel.load_snapshot(snapshot)

    edited = tmp_path / "edited.json"
    edited.write_text(json.dumps(doc(paragraph(text("Hello world")))), encoding="utf-8")
    delta = tmp_path / "change.bin"
    result = invoke(runner, ["update", str(snapshot), str(edited), "--delta", str(delta)])

    assert result.exit_code == 0, result.output
    assert result.output.strip() == "updated"
    assert ProseMirrorLoroModel.load_snapshot(snapshot).to_json() == doc(paragraph(text("Hello world")))
    peer.import_updates(delta.read_bytes())
    assert peer.to_json() == doc(paragraph(text("Hello world")))


def test_update_unchanged(runner, json_file, tmp_path):
    snapshot = tmp_path / "doc.loro"
    invoke(runner, ["import", str(json_file), str(snapshot)])
    result = invoke(runner, ["update", str(snapshot), str(json_file)])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "unchanged"


def test_import_rejects_malformed_json(runner, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps(doc({"content": []})), encoding="utf-8")
    result = invoke(runner, ["import", str(bad), str(tmp_path / "out.loro")])
    assert result.exit_code == 1
    assert "type" in result.output


def test_encode_and_decode_mark(runner):
    result = invoke(runner, ["encode-mark", "link", "--attrs", '{"href": "https://example.com"}'])
    assert result.exit_code == 0, result.output
    key = result.output.strip()
    assert key == encode_mark_name("link", {"href": "https://example.com"})

    result = invoke(runner, ["decode-mark", key])
    assert result.output.strip() == "link"


def test_encode_bare_mark(runner):
    result = invoke(runner, ["encode-mark", "bold"])
    assert result.output.strip() == "bold"


def test_encode_mark_rejects_non_object(runner):
    result = invoke(runner, ["encode-mark", "link", "--attrs", "[1, 2]"])
    assert result.exit_code == 1
