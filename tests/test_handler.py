import pytest

from modelctx.handler import (
    ExecutionError,
    FunctionTool,
    InvalidParameters,
    PromptInternalError,
    PromptNotFound,
    ResourceNotFound,
    SchemaError,
    ToolError,
    ToolNotFound,
    generate_schema,
    tool,
)

CALCULATOR_NAME = "calculator"
CALCULATOR_DESCRIPTION = "Perform basic arithmetic operations"
CALCULATOR_PARAMS = {
    "x": "First number in the calculation",
    "y": "Second number in the calculation",
    "operation": "The operation to perform (add, subtract, multiply, divide)",
}


async def calculator(x: int, y: int, operation: str) -> int:
    if operation == "add":
        return x + y
    if operation == "subtract":
        return x - y
    if operation == "multiply":
        return x * y
    if operation == "divide":
        if y == 0:
            raise ExecutionError("Division by zero")
        return x // y
    raise InvalidParameters(f"Unknown operation: {operation}")


def test_error_messages():
    assert str(InvalidParameters("bad")) == "Invalid parameters: bad"
    assert str(ExecutionError("boom")) == "Execution failed: boom"
    assert str(SchemaError("s")) == "Schema error: s"
    assert str(ToolNotFound("t")) == "Tool not found: t"
    assert str(ResourceNotFound("r")) == "Resource not found: r"
    assert str(PromptInternalError("i")) == "Internal error: i"
    assert str(PromptNotFound("p")) == "Prompt not found: p"


def test_tool_errors_compare_by_kind_and_message():
    assert InvalidParameters("a") == InvalidParameters("a")
    assert not InvalidParameters("a") == ExecutionError("a")
    assert isinstance(ToolNotFound("x"), ToolError)


def test_tool_metadata():
    handler = tool(CALCULATOR_NAME, CALCULATOR_DESCRIPTION, CALCULATOR_PARAMS)(calculator)
    assert handler.name == "calculator"
    assert handler.description == "Perform basic arithmetic operations"


def test_tool_name_defaults_to_function_name():
    def get_value() -> int:
        return 0

    handler = tool()(get_value)
    assert handler.name == "get_value"
    assert handler.description == ""


def test_schema_shape():
    handler = tool(CALCULATOR_NAME, CALCULATOR_DESCRIPTION, CALCULATOR_PARAMS)(calculator)
    schema = handler.schema()
    assert schema["title"] == "CalculatorParameters"
    assert schema["required"] == ["x", "y", "operation"]
    assert schema["properties"]["x"]["description"] == "First number in the calculation"
    assert schema["properties"]["x"]["type"] == "integer"
    assert schema["properties"]["operation"]["type"] == "string"


def test_schema_optional_is_not_required():
    def lookup(key: str, limit: int | None = None) -> str:
        return key

    schema = generate_schema(lookup)
    assert schema["required"] == ["key"]
    assert schema["properties"]["limit"]["type"] == ["integer", "null"]


def test_schema_from_string_annotations():
    def lookup(key, limit=None):
        return key

    lookup.__annotations__ = {"key": "str", "limit": "Optional[int]"}
    schema = generate_schema(lookup)
    assert schema["required"] == ["key"]
    assert schema["properties"]["key"]["type"] == "string"
    assert schema["properties"]["limit"]["type"] == ["integer", "null"]


@pytest.mark.asyncio
async def test_call_multiply():
    handler = tool(CALCULATOR_NAME, CALCULATOR_DESCRIPTION, CALCULATOR_PARAMS)(calculator)
    result = await handler.call({"x": 5, "y": 3, "operation": "multiply"})
    assert result == 15


@pytest.mark.asyncio
async def test_call_division_by_zero_wraps_error():
    handler = tool(CALCULATOR_NAME, CALCULATOR_DESCRIPTION, CALCULATOR_PARAMS)(calculator)
    with pytest.raises(ExecutionError) as info:
        await handler.call({"x": 5, "y": 0, "operation": "divide"})
    assert info.value.message == "Execution failed: Division by zero"


@pytest.mark.asyncio
async def test_call_unknown_operation_is_execution_error():
    handler = tool(CALCULATOR_NAME, CALCULATOR_DESCRIPTION, CALCULATOR_PARAMS)(calculator)
    with pytest.raises(ExecutionError) as info:
        await handler.call({"x": 1, "y": 1, "operation": "power"})
    assert "Unknown operation: power" in info.value.message


@pytest.mark.asyncio
async def test_call_missing_parameter():
    handler = tool(CALCULATOR_NAME, CALCULATOR_DESCRIPTION, CALCULATOR_PARAMS)(calculator)
    with pytest.raises(InvalidParameters) as info:
        await handler.call({"x": 1, "operation": "add"})
    assert "y" in info.value.message


@pytest.mark.asyncio
async def test_call_wrong_type():
    handler = tool(CALCULATOR_NAME, CALCULATOR_DESCRIPTION, CALCULATOR_PARAMS)(calculator)
    with pytest.raises(InvalidParameters) as info:
        await handler.call({"x": "1", "y": 1, "operation": "add"})
    assert "x" in info.value.message


@pytest.mark.asyncio
async def test_call_non_object():
    handler = FunctionTool(calculator, name=CALCULATOR_NAME)
    with pytest.raises(InvalidParameters) as info:
        await handler.call([1, 2])
    assert info.value.message == "invalid type: expected a JSON object"


@pytest.mark.asyncio
async def test_sync_function_and_defaults():
    def echo(message: str, times: int = 2) -> list:
        return [message] * times

    handler = FunctionTool(echo)
    assert await handler.call({"message": "hi"}) == ["hi", "hi"]
    assert await handler.call({"message": "hi", "times": 1}) == ["hi"]


def test_function_tool_is_still_callable():
    handler = FunctionTool(lambda value: value, name="ident")
    assert handler("same") == "same"


def test_callable_without_code_is_schema_error():
    with pytest.raises(SchemaError) as info:
        FunctionTool(len, name="length")
    assert "cannot read the parameters" in info.value.message