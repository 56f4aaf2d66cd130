import json

import pytest
import yaml

from kubeapply.yamlfuncs import (
    Module,
    write_json,
    yaml_marshal,
    yaml_module,
    yaml_unmarshal,
)


def test_marshal_dict_single_key():
    assert yaml_marshal({"key1": "value1"}) == "key1: value1\n"


def test_marshal_dict_two_keys():
    assert yaml_marshal({"key2": "value2", "key1": "value1"}) == "key1: value1\nkey2: value2\n"


@pytest.mark.parametrize(
    "value",
    [
        {"a": [1, 2, 3], "b": {"c": True, "d": None}},
        {"name": "x", "ratio": 1.5, "items": ["p", "q"]},
        [1, "two", False],
        {"nested": {"deeper": {"deepest": "v"}}},
    ],
)
def test_marshal_unmarshal_round_trip(value):
    assert yaml_unmarshal(yaml_marshal(value)) == value


def test_write_json_null():
    assert write_json(None) == "null"


@pytest.mark.parametrize(
    "value",
    [True, False, 42, -7, 1.5, "hello", [1, "a", None], {"k": [1, 2], "j": {"x": False}}],
)
def test_write_json_is_valid_json(value):
    assert json.loads(write_json(value)) == value


def test_write_json_list_separator():
    assert write_json([1, "a"]) == '[1, "a"]'


def test_write_json_integral_float():
    assert write_json(2.0) == "2"


def test_write_json_large_float_uses_exponent():
    assert write_json(1e6) == "1e+06"


def test_write_json_control_characters_round_trip():
    text = "a\x01b\nc"
    out = write_json(text)
    assert "\\u0001" in out
    assert json.loads(out) == text


def test_write_json_unsafe_string_escapes_html():
    out = write_json("<tag>\n")
    assert "<" not in out
    assert json.loads(out) == "<tag>\n"


def test_write_json_safe_string_escapes_quotes():
    text = 'say "hi" \\ now'
    assert json.loads(write_json(text)) == text


@pytest.mark.parametrize("value", [object(), {1, 2}, b"bytes"])
def test_write_json_unsupported_type(value):
    with pytest.raises(TypeError):
        write_json(value)


def test_marshal_unsupported_type():
    with pytest.raises(TypeError):
        yaml_marshal({"k": object()})


def test_unmarshal_mapping():
    assert yaml_unmarshal("a: [1, 2]\nb: true\n") == {"a": [1, 2], "b": True}


def test_unmarshal_exponent_float():
    result = yaml_unmarshal("1e+06")
    assert isinstance(result, float)
    assert result == float("1e+06")


def test_unmarshal_timestamp_stays_text():
    assert yaml_unmarshal("d: 2001-12-14") == {"d": "2001-12-14"}


def test_unmarshal_empty_is_none():
    assert yaml_unmarshal("") is None


def test_unmarshal_takes_first_document():
    assert yaml_unmarshal("a: 1\n---\nb: 2\n") == {"a": 1}


def test_unmarshal_invalid_yaml():
    with pytest.raises(yaml.YAMLError):
        yaml_unmarshal("a: [1")


def test_unmarshal_requires_string():
    with pytest.raises(TypeError):
        yaml_unmarshal(123)


def test_module_attr_lookup():
    module = yaml_module()
    assert module.attr("marshal") is yaml_marshal
    assert module.attr("unmarshal") is yaml_unmarshal
    assert module.attr("missing") is None


def test_module_attr_names_sorted():
    module = Module(name="util", attrs={"rawYaml": 1, "fromYaml": 2, "intOrStr": 3})
    assert module.attr_names() == sorted(["rawYaml", "fromYaml", "intOrStr"])
    assert yaml_module().attr_names() == ["marshal", "unmarshal"]


def test_module_str_and_truth():
    module = yaml_module()
    assert str(module) == '<module "yaml">'
    assert bool(Module(name="empty")) is True


def test_module_unhashable():
    with pytest.raises(TypeError):
        hash(yaml_module())