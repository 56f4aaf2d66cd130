"""Marking of generated YAML files with a header comment."""

from __future__ import annotations

import os
from pathlib import Path

HEADER_COMMENT = b'# Generated by "kubeapply expand". DO NOT EDIT.\n'


def add_headers(root: str | os.PathLike) -> None:
    """Prefix every .yaml file under root with the generated-file header, once."""
    walk_errors: list[OSError] = []
    for current, dirnames, filenames in os.walk(
        os.fspath(root), onerror=walk_errors.append
    ):
        if walk_errors:
            raise walk_errors[0]
        dirnames.sort()
        for name in sorted(filenames):
            if not name.endswith(".yaml"):
                continue
            path = Path(current, name)
            contents = path.read_bytes()
            if contents.startswith(HEADER_COMMENT):
                continue
            path.write_bytes(HEADER_COMMENT + contents)
    if walk_errors:
        raise walk_errors[0]