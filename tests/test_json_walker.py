import pytest

from json_walker import (
    EmptyPathError,
    JsonPathError,
    MissingKeyError,
    NotAMappingError,
    walk,
)


def test_walk_returns_nested_value():
    assert walk({"a": {"b": "c"}}, "a/b") == "c"


def test_walk_returns_final_value_untyped():
    document = {"fields": {"attachment": [{"filename": "a.txt"}], "timespent": None}}

    assert walk(document, "fields/attachment") == [{"filename": "a.txt"}]
    assert walk(document, "fields/timespent") is None


def test_walk_through_scalar_names_offending_segment():
    with pytest.raises(NotAMappingError) as excinfo:
        walk({"a": {"b": "c"}}, "a/b/c")

    assert excinfo.value.segment == "b"
    assert excinfo.value.path == "a/b/c"


def test_walk_does_not_traverse_arrays():
    with pytest.raises(NotAMappingError):
        walk({"issues": [{"key": "ABC-1"}]}, "issues/0")


def test_walk_on_non_mapping_root():
    with pytest.raises(NotAMappingError) as excinfo:
        walk(["a"], "a")

    assert excinfo.value.segment == "<root>"


def test_walk_missing_key():
    with pytest.raises(MissingKeyError) as excinfo:
        walk({"fields": {}}, "fields/parent/key")

    assert excinfo.value.segment == "parent"


def test_walk_null_intermediate_is_not_a_mapping():
    with pytest.raises(NotAMappingError):
        walk({"fields": {"assignee": None}}, "fields/assignee/name")


def test_walk_empty_path_fails():
    with pytest.raises(EmptyPathError):
        walk({"a": {"b": "c"}}, "")


def test_errors_share_a_base_class():
    assert issubclass(EmptyPathError, JsonPathError)
    assert issubclass(NotAMappingError, JsonPathError)
    assert issubclass(MissingKeyError, JsonPathError)
