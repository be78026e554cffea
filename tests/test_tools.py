"""Test tool declarations and argument validation."""

import pytest

from skeet.connectors.redis import RedisConnector
from skeet.errors import InvalidToolArguments
from skeet.tools import REFRESH_TOOL, ToolDeclaration, ToolParameter

REDIS_SET = next(t for t in RedisConnector.TOOLS if t.name == "redis_set")


def test_input_schema_lists_required_parameters():
    assert REDIS_SET.input_schema == {
        "type": "object",
        "properties": {
            "key": {"type": "string"},
            "value": {"type": "string"},
            "expiry": {"type": "number", "description": "TTL in seconds"},
        },
        "required": ["key", "value"],
    }


def test_refresh_tool_takes_no_arguments():
    assert REFRESH_TOOL.input_schema == {"type": "object", "properties": {}}
    assert REFRESH_TOOL.validate_arguments(None) == {}


def test_missing_required_argument():
    with pytest.raises(InvalidToolArguments, match="value"):
        REDIS_SET.validate_arguments({"key": "k"})


def test_numeric_strings_are_coerced_and_extras_dropped():
    args = REDIS_SET.validate_arguments({"key": "k", "value": 5, "expiry": "60", "bogus": 1})
    assert args == {"key": "k", "value": "5", "expiry": 60}


@pytest.mark.parametrize("bad", [{"key": "k", "value": "v", "expiry": "soon"},
                                 {"key": ["k"], "value": "v"},
                                 {"key": "k", "value": "v", "expiry": True}])
def test_wrong_types_rejected(bad):
    with pytest.raises(InvalidToolArguments):
        REDIS_SET.validate_arguments(bad)


def test_boolean_parameter():
    tool = ToolDeclaration(name="x_flag", description="", parameters=(ToolParameter(name="on", type="boolean"),))
    assert tool.validate_arguments({"on": False}) == {"on": False}
    with pytest.raises(InvalidToolArguments):
        tool.validate_arguments({"on": "yes"})
