"""Settings for converting Kubernetes YAML into starlark, and the proto module table."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

_API_ROOT = "k8s.io/api"
_APIMACHINERY_ROOT = "k8s.io/apimachinery/pkg"

# API groups under the core API root and the versions of each that may appear.
_API_GROUP_VERSIONS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("apps", ("v1", "v1beta1", "v1beta2")),
    ("authentication", ("v1",)),
    ("authorization", ("v1",)),
    ("autoscaling", ("v1",)),
    ("batch", ("v1", "v1beta1")),
    ("core", ("v1",)),
    ("events", ("v1beta1",)),
    ("extensions", ("v1beta1",)),
    ("networking", ("v1",)),
    ("policy", ("v1beta1",)),
    ("rbac", ("v1", "v1beta1")),
    ("scheduling", ("v1", "v1beta1")),
    ("storage", ("v1",)),
)


def _build_modules() -> Mapping[str, str]:
    table = {
        f"{group}{version}": f"{_API_ROOT}/{group}/{version}"
        for group, versions in _API_GROUP_VERSIONS
        for version in versions
    }
    table["metav1"] = f"{_APIMACHINERY_ROOT}/apis/meta/v1"
    table["resource"] = f"{_APIMACHINERY_ROOT}/api/resource"
    return MappingProxyType(dict(sorted(table.items())))


# Every proto package that a generated starlark file might need to load.
MODULES: Mapping[str, str] = _build_modules()


def pkg_to_module(pkg_name: str) -> str:
    """Return the starlark module name for a Kubernetes API package path."""
    for module, package in MODULES.items():
        if package == pkg_name:
            return module
    raise LookupError(f"Could not find module for package {pkg_name}")


def module_to_import_name(module: str) -> str:
    """Return the dotted proto package name for a starlark module name."""
    try:
        package = MODULES[module]
    except KeyError:
        raise LookupError(f"Could not find package for {module}") from None
    return package.replace("/", ".")


@dataclass
class Arg:
    """An argument of the generated starlark entrypoint."""

    name: str
    default_value: Any = None
    required: bool = False

    def default_value_str(self) -> str:
        """Return the default value as starlark source."""
        value = self.default_value
        if isinstance(value, bool):
            return "True" if value else "False"
        if isinstance(value, str):
            return f'"{value}"'
        if isinstance(value, int):
            return f"{value:d}"
        if isinstance(value, float):
            return f"{value:f}"
        return "None"

    def required_statement(self) -> str:
        """Return a starlark statement that fails when the argument is left empty."""
        value = self.default_value
        if isinstance(value, bool):
            empty_value = "None"
        elif isinstance(value, str):
            empty_value = '""'
        elif isinstance(value, int):
            empty_value = "0"
        elif isinstance(value, float):
            empty_value = "0.0"
        else:
            empty_value = "None"
        return (
            f"if {self.name} == {empty_value}:\n"
            f'  fail("{self.name} must be set to non-empty value")'
        )


@dataclass
class Config:
    """How a YAML to starlark conversion is laid out."""

    entrypoint: str = ""
    args: list[Arg] = field(default_factory=list)

    def sub_variable(self, value: str) -> str:
        """Return the argument name that should replace a raw string, or ""."""
        substitutions = {
            arg.default_value: arg.name
            for arg in self.args
            if isinstance(arg.default_value, str) and arg.default_value
        }
        return substitutions.get(value, "")