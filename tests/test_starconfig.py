import pytest

from kubeapply.starconfig import (
    MODULES,
    Arg,
    Config,
    module_to_import_name,
    pkg_to_module,
)


def test_string_default_is_quoted():
    assert Arg("name", "test-config", True).default_value_str() == '"test-config"'


def test_int_default():
    assert Arg("count", 1234).default_value_str() == "1234"


def test_bool_defaults():
    assert Arg("flag", True).default_value_str() == "True"
    assert Arg("flag", False).default_value_str() == "False"


def test_float_default_uses_six_decimals():
    assert Arg("ratio", 1.5).default_value_str() == "1.500000"


def test_missing_default_is_none():
    assert Arg("thing").default_value_str() == "None"
    assert Arg("thing", [1, 2]).default_value_str() == "None"


def test_required_statement_for_string():
    assert Arg("name", "test-config", True).required_statement() == (
        'if name == "":\n  fail("name must be set to non-empty value")'
    )


@pytest.mark.parametrize(
    "default, empty",
    [(5, "0"), (2.5, "0.0"), (None, "None"), (True, "None")],
)
def test_required_statement_empty_values(default, empty):
    statement = Arg("x", default, True).required_statement()
    assert statement.splitlines()[0] == f"if x == {empty}:"
    assert 'fail("x must be set to non-empty value")' in statement


def test_sub_variable_matches_string_defaults():
    config = Config(
        entrypoint="run",
        args=[Arg("name", "test-config", True), Arg("count", 1234)],
    )
    assert config.sub_variable("test-config") == "name"
    assert config.sub_variable("other") == ""


def test_sub_variable_ignores_empty_and_non_string_defaults():
    config = Config(args=[Arg("empty", ""), Arg("count", 1234)])
    assert config.sub_variable("") == ""
    assert config.sub_variable("1234") == ""


def test_default_config():
    config = Config()
    assert config.entrypoint == ""
    assert config.args == []


def test_module_to_import_name():
    assert module_to_import_name("corev1") == "k8s.io.api.core.v1"
    assert module_to_import_name("metav1") == "k8s.io.apimachinery.pkg.apis.meta.v1"


def test_pkg_to_module():
    assert pkg_to_module("k8s.io/api/core/v1") == "corev1"
    assert pkg_to_module("k8s.io/apimachinery/pkg/apis/meta/v1") == "metav1"


def test_every_module_round_trips():
    for module, package in MODULES.items():
        assert pkg_to_module(package) == module
        assert module_to_import_name(module) == package.replace("/", ".")


def test_unknown_package_raises():
    with pytest.raises(LookupError, match="Could not find module for package"):
        pkg_to_module("k8s.io/api/unknown/v9")


def test_unknown_module_raises():
    with pytest.raises(LookupError, match="Could not find package for"):
        module_to_import_name("unknownv9")