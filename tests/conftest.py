# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

import pytest
from loro import LoroDoc

from prosemirror_loro.model import LoroFragment, ProseMirrorLoroModel


def paragraph(*content, **attrs):
    node = {"type": "paragraph", "content": list(content)}
    if attrs:
        node["attrs"] = attrs
    return node


def text(value, *marks):
    node = {"type": "text", "text": value}
    if marks:
        node["marks"] = list(marks)
    return node


def doc(*content):
    return {"type": "doc", "content": list(content)}


@pytest.fixture
def fragment():
    return LoroFragment(LoroDoc(), "default")


@pytest.fixture
def model():
    return ProseMirrorLoroModel()
