# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""Errors raised while converting between ProseMirror JSON and Loro trees"""


class MalformedDocumentError(ValueError):
    """The ProseMirror JSON input does not have the expected node shape"""

    def __init__(self, message: str, path: str = "doc"):
        self.path = path
        super().__init__(f"{path}: {message}")


class UnrepresentableNodeError(ValueError):
    """A tree node cannot be expressed as a ProseMirror JSON node"""
