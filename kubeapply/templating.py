"""In-place expansion of ``.gotpl.`` template files."""

from __future__ import annotations

import os
import stat
import urllib.parse
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import Any

import jinja2
import yaml

GOTPL_MARKER = ".gotpl."


class TemplateLookupError(ValueError):
    """Raised when a lookup path traverses a value that is not a mapping."""


def lookup(input_value: Any, path: str) -> Any:
    """Look up a dot-separated path in nested mappings.

    A missing key anywhere on the path gives None. Traversing a value that is
    neither None nor a mapping raises TemplateLookupError.
    """
    obj = input_value
    for component in path.split("."):
        if obj is None:
            return None
        if not isinstance(obj, Mapping):
            raise TemplateLookupError(
                f"Tried to traverse a value that's not a map (kind={type(obj).__name__})"
            )
        if component not in obj:
            return None
        obj = obj[component]
    return obj


def path_lookup(path: str, input_value: Any) -> Any:
    """Same as lookup, with the arguments flipped."""
    return lookup(input_value, path)


def to_yaml(input_value: Any) -> str:
    """Serialise a value to block-style YAML with sorted keys."""
    output = yaml.safe_dump(input_value, default_flow_style=False)
    end_marker = "\n...\n"
    if output.endswith(end_marker):
        output = output[: -len(end_marker)] + "\n"
    return output


def _url_encode(value: Any) -> str:
    return urllib.parse.quote_plus(str(value))


_EXTRA_FUNCS: dict[str, Callable[..., Any]] = {
    "lookup": lookup,
    "pathLookup": path_lookup,
    "toYaml": to_yaml,
    "urlEncode": _url_encode,
}


def _walk(path: str) -> Iterator[tuple[str, bool]]:
    """Yield (path, is_dir) for path and everything below it, in lexical order."""
    info = os.lstat(path)
    is_dir = stat.S_ISDIR(info.st_mode)
    yield path, is_dir
    if is_dir:
        for name in sorted(os.listdir(path)):
            yield from _walk(os.path.join(path, name))


def _context(data: Any) -> dict[str, Any]:
    if isinstance(data, Mapping):
        return dict(data)
    return {"data": data}


def _entry_lines(name: str, content: str) -> list[str]:
    lines = [f"  {name}: |"]
    lines.extend(f"    {line}" if line else "" for line in content.strip().split("\n"))
    return lines


def _render_file(path: str, data: Any, allow_contents: bool, strict: bool) -> str:
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined if strict else jinja2.Undefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters.update(_EXTRA_FUNCS)
    env.globals.update(_EXTRA_FUNCS)

    if allow_contents:
        base_dir = os.path.dirname(path)

        def file_contents(rel_path: str) -> str:
            config_path = os.path.join(base_dir, rel_path)
            return _render_file(config_path, data, False, strict).strip()

        def config_map_entry(rel_path: str) -> str:
            config_path = os.path.join(base_dir, rel_path)
            content = _render_file(config_path, data, False, strict)
            return "\n".join(_entry_lines(os.path.basename(rel_path), content))

        def config_map_entries(rel_path: str) -> str:
            dir_path = os.path.join(base_dir, rel_path)
            output: list[str] = []
            with os.scandir(dir_path) as entries:
                ordered = sorted(entries, key=lambda entry: entry.name)
            for entry in ordered:
                if entry.is_dir(follow_symlinks=False) or entry.name.startswith("."):
                    continue
                content = _render_file(os.path.join(dir_path, entry.name), data, False, strict)
                output.extend(_entry_lines(entry.name.replace(GOTPL_MARKER, "."), content))
            return "\n".join(output)

        env.globals.update(
            fileContents=file_contents,
            configMapEntry=config_map_entry,
            configMapEntries=config_map_entries,
        )

    source = Path(path).read_bytes().decode("utf-8")
    return env.from_string(source).render(_context(data))


def apply_template(
    directory: str | os.PathLike,
    data: Any,
    delete_sources: bool,
    strict: bool,
) -> None:
    """Expand every file whose path contains ``.gotpl.`` under directory.

    Each template is written next to itself with ``.gotpl.`` replaced by ``.``.
    In strict mode a missing variable is an error. Expansion failures raise
    jinja2.TemplateError naming the template path.
    """
    for sub_path, is_dir in _walk(os.fspath(directory)):
        if is_dir or GOTPL_MARKER not in sub_path:
            continue

        try:
            rendered = _render_file(sub_path, data, True, strict)
        except (jinja2.TemplateError, TemplateLookupError, OSError) as exc:
            raise jinja2.TemplateError(f"Error expanding path {sub_path}: {exc}") from exc

        Path(sub_path.replace(GOTPL_MARKER, ".")).write_bytes(rendered.encode("utf-8"))

        if delete_sources:
            os.remove(sub_path)