"""Tests for ExecutionContext."""

import pickle
from collections.abc import Sequence

import pytest

from batchstate.core.context import ExecutionContext
from batchstate.exceptions import TypeMismatchError


class CounterValue:
    """Value object with its own equality, for serialization tests."""

    def __init__(self, value=0):
        self.value = value

    def __eq__(self, other):
        if not isinstance(other, CounterValue):
            return NotImplemented
        return self.value == other.value

    def __hash__(self):
        return 31 + self.value


class UnhashableValue:
    """Value object defining equality but no hash."""

    def __init__(self, value):
        self.value = value

    def __eq__(self, other):
        return isinstance(other, UnhashableValue) and self.value == other.value

    __hash__ = None


@pytest.fixture
def context():
    """Create an empty execution context."""
    return ExecutionContext()


class TestTypedAccessors:
    """Test typed put and get helpers."""

    def test_normal_usage(self, context):
        """Test storing and reading values through the typed helpers."""
        context.put_string("1", "testString1")
        context.put_string("2", "testString2")
        context.put_long("3", 3)
        context.put_double("4", 4.4)
        context.put_int("5", 5)

        assert context.get_string("1") == "testString1"
        assert context.get_string("2") == "testString2"
        assert context.get_string("55", "defaultString") == "defaultString"
        assert context.get_double("4") == 4.4
        assert context.get_double("55", 5.5) == 5.5
        assert context.get_long("3") == 3
        assert context.get_long("55", 5) == 5
        assert context.get_int("5") == 5
        assert context.get_int("55", 6) == 6

    def test_missing_key_without_default_returns_none(self, context):
        """Test typed reads of missing keys."""
        assert context.get_string("missing") is None
        assert context.get_long("missing") is None
        assert context.get_int("missing") is None
        assert context.get_double("missing") is None

    def test_put_double_stores_float(self, context):
        """Test that put_double converts integers to floats."""
        context.put_double("ratio", 2)

        assert context.get_double("ratio") == 2.0
        assert isinstance(context.get("ratio"), float)

    @pytest.mark.parametrize("method", ["put_long", "put_int"])
    @pytest.mark.parametrize("value", [3.9, "7", "x"])
    def test_integer_put_rejects_non_integers(self, context, method, value):
        """Test that integer puts neither truncate nor parse."""
        with pytest.raises(TypeMismatchError) as exc_info:
            getattr(context, method)("k", value)

        assert exc_info.value.expected_type is int
        assert not context.contains_key("k")
        assert not context.is_dirty()

    def test_put_double_rejects_strings(self, context):
        """Test that put_double does not parse strings."""
        with pytest.raises(TypeMismatchError):
            context.put_double("k", "4.4")

        assert not context.contains_key("k")

    def test_invalid_cast(self, context):
        """Test that a long is not coerced to a double."""
        context.put_long("1", 1)

        with pytest.raises(TypeMismatchError):
            context.get_double("1")

    def test_invalid_cast_is_type_error(self, context):
        """Test that type mismatches can be caught as TypeError."""
        context.put_string("1", "one")

        with pytest.raises(TypeError):
            context.get_int("1")

    def test_mismatch_error_details(self, context):
        """Test the attributes carried by TypeMismatchError."""
        context.put_long("count", 10)

        with pytest.raises(TypeMismatchError) as exc_info:
            context.get_string("count")

        error = exc_info.value
        assert error.key == "count"
        assert error.expected_type is str
        assert error.actual_type is int
        assert "count" in str(error)

    def test_default_is_ignored_when_key_present(self, context):
        """Test that the stored value wins over the default."""
        context.put_int("5", 5)

        assert context.get_int("5", 99) == 5

    def test_default_not_type_checked(self, context):
        """Test that defaults are returned as-is."""
        assert context.get_long("missing", "not a number") == "not a number"


class TestGet:
    """Test untyped and generic typed reads."""

    def test_get_missing_returns_none(self, context):
        """Test reading a key that does not exist."""
        assert context.get("does not exist") is None

    def test_get_by_list_type(self, context):
        """Test reading a list through its type."""
        value = ["value1", "value2"]
        context.put("aListObject", value)

        result = context.get("aListObject", list)

        assert result == value
        assert result[0] == value[0]
        assert result[1] == value[1]

    def test_get_by_abstract_type(self, context):
        """Test reading a list through an abstract collection type."""
        context.put("items", ["a", "b"])

        assert context.get("items", Sequence) == ["a", "b"]

    def test_get_by_tuple_of_types(self, context):
        """Test reading with any of several accepted types."""
        context.put("number", 3)

        assert context.get("number", (int, float)) == 3

    def test_get_missing_with_null_default(self, context):
        """Test that an explicit None default is returned for missing keys."""
        assert context.get("aListObjectButNull", list, None) is None
        assert context.get("aListObjectButNull", list) is None

    def test_get_missing_with_default(self, context):
        """Test that a non-null default is returned for missing keys."""
        default = ["value1"]

        result = context.get("aListObjectButNull", list, default)

        assert result is default
        assert result[0] == "value1"

    def test_get_with_wrong_type(self, context):
        """Test that reading a list as a dict fails."""
        context.put("anotherListObject", ["value1", "value2", "value3"])

        with pytest.raises(TypeMismatchError):
            context.get("anotherListObject", dict)


class TestPutAndRemove:
    """Test put, null-as-delete and remove."""

    def test_put_then_get(self, context):
        """Test that a put value is readable and present."""
        context.put("key", {"nested": [1, 2]})

        assert context.get("key") == {"nested": [1, 2]}
        assert context.contains_key("key")

    def test_put_null(self, context):
        """Test that putting None on an absent key stores nothing."""
        context.put("1", None)

        assert context.get("1") is None
        assert not context.contains_key("1")

    def test_put_null_removes_existing_key(self, context):
        """Test that putting None removes a present key."""
        context.put("1", "value")
        context.put("1", None)

        assert context.get("1") is None
        assert not context.contains_key("1")
        assert context.is_empty()

    @pytest.mark.parametrize(
        "method", ["put_string", "put_long", "put_int", "put_double"]
    )
    def test_typed_put_null_removes_key(self, context, method):
        """Test that every typed put treats None as removal."""
        context.put("k", 1)
        getattr(context, method)("k", None)

        assert not context.contains_key("k")

    def test_remove_returns_value(self, context):
        """Test removing a present key."""
        context.put_string("1", "test")

        assert context.remove("1") == "test"
        assert not context.contains_key("1")

    def test_remove_missing_returns_none(self, context):
        """Test removing an absent key."""
        assert context.remove("missing") is None


class TestDirtyFlag:
    """Test dirty tracking."""

    def test_dirty_flag(self, context):
        """Test the clean -> dirty -> clean cycle."""
        assert not context.is_dirty()
        context.put_string("1", "test")
        assert context.is_dirty()
        context.clear_dirty_flag()
        assert not context.is_dirty()

    def test_clear_keeps_entries(self, context):
        """Test that clearing the flag does not touch the content."""
        context.put_string("1", "test")
        context.clear_dirty_flag()

        assert context.get_string("1") == "test"

    def test_dirty_with_duplicate(self):
        """Test that re-putting the same value keeps the context dirty."""
        context = ExecutionContext()
        context.put("1", "testString1")
        assert context.is_dirty()
        context.put("1", "testString1")
        assert context.is_dirty()

    def test_duplicate_put_after_clear_marks_dirty(self, context):
        """Test that by default every put marks the context dirty."""
        context.put_string("1", "test")
        context.clear_dirty_flag()
        context.put_string("1", "test")

        assert context.is_dirty()

    def test_not_dirty_with_duplicate_when_not_tracking_equal_puts(self):
        """Test the value-aware policy ignores puts of an equal value."""
        context = ExecutionContext(track_equal_puts=False)
        context.put_string("1", "test")
        assert context.is_dirty()
        context.clear_dirty_flag()
        context.put_string("1", "test")
        assert not context.is_dirty()
        context.put_string("1", "changed")
        assert context.is_dirty()

    def test_dirty_with_remove_missing(self, context):
        """Test that only removing a present key marks the context dirty."""
        context.put_string("1", "test")
        assert context.is_dirty()
        context.put_string("1", None)  # remove an item that was present
        assert context.is_dirty()

        context.clear_dirty_flag()
        context.put_string("1", None)  # remove a non-existent item
        assert not context.is_dirty()

    def test_remove_present_key_marks_dirty(self, context):
        """Test that remove() of a present key marks the context dirty."""
        context.put("1", "test")
        context.clear_dirty_flag()
        context.remove("1")

        assert context.is_dirty()

    def test_remove_missing_key_keeps_clean(self, context):
        """Test that remove() of an absent key leaves the flag alone."""
        context.remove("missing")

        assert not context.is_dirty()


class TestQueries:
    """Test containment, emptiness and views."""

    def test_is_empty(self, context):
        """Test emptiness before and after a put."""
        assert context.is_empty()
        context.put_string("1", "test")
        assert not context.is_empty()

    def test_contains(self, context):
        """Test key and value containment."""
        context.put_string("1", "testString")

        assert context.contains_key("1")
        assert context.contains_value("testString")
        assert "1" in context
        assert not context.contains_value("other")

    def test_contains_value_uses_equality(self, context):
        """Test that value containment compares by equality."""
        context.put("obj", CounterValue(7))

        assert context.contains_value(CounterValue(7))

    def test_size_and_len(self, context):
        """Test entry counting."""
        context.put("a", 1)
        context.put("b", 2)

        assert context.size() == 2
        assert len(context) == 2

    def test_views_are_snapshots(self, context):
        """Test that keys(), items() and to_dict() do not alias entries."""
        context.put("a", 1)

        snapshot = context.to_dict()
        snapshot["b"] = 2
        keys = context.keys()
        items = context.items()
        context.put("c", 3)

        assert not context.contains_key("b")
        assert set(keys) == {"a"}
        assert dict(items) == {"a": 1}

    def test_repr_excludes_dirty_flag(self, context):
        """Test the string representations."""
        context.put("a", 1)

        assert repr(context) == "ExecutionContext({'a': 1})"
        assert str(context) == "{'a': 1}"


class TestEquality:
    """Test equality and hashing."""

    def test_equals(self, context):
        """Test equality follows content."""
        context.put_string("1", "testString")
        temp_context = ExecutionContext()
        assert temp_context != context
        temp_context.put_string("1", "testString")
        assert temp_context == context

    def test_dirty_flag_not_part_of_equality(self):
        """Test that a clean and a dirty context can be equal."""
        first = ExecutionContext()
        second = ExecutionContext()
        first.put("a", 1)
        second.put("a", 1)
        second.clear_dirty_flag()

        assert first == second

    def test_not_equal_to_plain_dict(self, context):
        """Test that a context never equals a dictionary."""
        context.put("a", 1)

        assert context != {"a": 1}

    def test_equal_contexts_hash_alike(self):
        """Test hash consistency, including unhashable values."""
        first = ExecutionContext()
        second = ExecutionContext()
        for ctx in (first, second):
            ctx.put("list", [1, {"k": [2, 3]}])
            ctx.put("set", {1, 2})
            ctx.put("custom", UnhashableValue(4))
            ctx.put("counter", CounterValue(7))

        assert first == second
        assert hash(first) == hash(second)
        assert len({first, second}) == 1

    def test_set_and_frozenset_values_hash_alike(self):
        """Test that equal set and frozenset values give equal hashes."""
        first = ExecutionContext()
        second = ExecutionContext()
        first.put("s", {"a", "b"})
        second.put("s", frozenset({"a", "b"}))

        assert first == second
        assert hash(first) == hash(second)

    def test_nested_set_and_frozenset_values_hash_alike(self):
        """Test hash consistency for sets nested in containers."""
        first = ExecutionContext()
        second = ExecutionContext()
        first.put("n", [{"ids": {1, 2}}])
        second.put("n", [{"ids": frozenset({1, 2})}])

        assert first == second
        assert hash(first) == hash(second)

    def test_empty_contexts_hash_alike(self):
        """Test hashing of empty contexts."""
        assert hash(ExecutionContext()) == hash(ExecutionContext())


class TestCopyConstruction:
    """Test building a context from another one."""

    def test_copy_constructor(self):
        """Test that a copy equals its source."""
        context = ExecutionContext()
        context.put("foo", "bar")

        copy = ExecutionContext(context)

        assert copy == context

    def test_copy_constructor_null_input(self):
        """Test copying from None."""
        context = ExecutionContext(None)

        assert context.is_empty()
        assert not context.is_dirty()

    def test_copy_is_clean(self):
        """Test that the copy starts with a clean dirty flag."""
        context = ExecutionContext()
        context.put("foo", "bar")

        assert not ExecutionContext(context).is_dirty()

    def test_copy_is_deep(self):
        """Test that mutable values are not shared with the source."""
        context = ExecutionContext()
        context.put("items", ["a"])

        copy = ExecutionContext(context)
        copy.get("items", list).append("b")

        assert context.get("items") == ["a"]

    def test_copy_is_independent(self):
        """Test that later puts do not leak between source and copy."""
        context = ExecutionContext()
        copy = ExecutionContext(context)
        copy.put("new", 1)

        assert context.is_empty()
        assert not context.is_dirty()

    def test_construct_from_mapping(self):
        """Test building from a dictionary, dropping None values."""
        context = ExecutionContext({"a": 1, "b": None})

        assert context.to_dict() == {"a": 1}
        assert not context.is_dirty()

    def test_construct_from_invalid_source(self):
        """Test that unsupported sources are rejected."""
        with pytest.raises(TypeError):
            ExecutionContext(["a", 1])


class TestPickling:
    """Test the pickle round-trip of the context itself."""

    def test_serialization(self, context):
        """Test that a mixed context survives a pickle round-trip."""
        value = CounterValue()
        value.value = 7

        context.put_string("1", "testString1")
        context.put_string("2", "testString2")
        context.put_long("3", 3)
        context.put_double("4", 4.4)
        context.put("5", value)
        context.put_int("6", 6)

        restored = pickle.loads(pickle.dumps(context))

        assert restored == context
        assert restored.get("5").value == 7

    def test_unpickled_context_is_clean(self, context):
        """Test that the dirty flag is not carried over."""
        context.put("a", 1)

        restored = pickle.loads(pickle.dumps(context))

        assert context.is_dirty()
        assert not restored.is_dirty()

    def test_pickle_keeps_dirty_policy(self):
        """Test that the dirty policy survives pickling."""
        context = ExecutionContext(track_equal_puts=False)

        restored = pickle.loads(pickle.dumps(context))

        assert restored.track_equal_puts is False
