from __future__ import annotations

import pytest
from pydantic import ValidationError

from orchestrator.models import (
    AgentProgress,
    AgentStep,
    Role,
    StepKind,
    StepStatus,
    ToolCall,
    ToolParameter,
    ToolSchema,
    Turn,
)


def test_turn_wire_shape_without_tool_calls():
    turn = Turn(role=Role.USER, content="hi")

    assert turn.to_wire() == {"role": "user", "content": "hi"}
    assert not turn.is_tool_result


def test_turn_wire_shape_with_tool_calls():
    turn = Turn(role=Role.ASSISTANT, tool_calls=[ToolCall(name="get_current_weather", arguments={"location": "Paris"})])

    assert turn.to_wire() == {
        "role": "assistant",
        "content": "",
        "tool_calls": [{"function": {"name": "get_current_weather", "arguments": {"location": "Paris"}}}],
    }


def test_tool_result_turn_keeps_tool_name_local():
    turn = Turn(role=Role.ASSISTANT, content='{"success": true}', tool_name="clear_chat")

    assert turn.is_tool_result
    assert "tool_name" not in turn.to_wire()


def test_schema_required_must_be_declared():
    with pytest.raises(ValidationError):
        ToolSchema(name="x", description="x", required=frozenset({"missing"}))


def test_schema_wire_shape_keeps_declaration_order():
    schema = ToolSchema(
        name="book",
        description="Book a table",
        parameters={
            "when": ToolParameter(type="string", description="Time"),
            "size": ToolParameter(type="integer", description="Party size", enum=[2, 4]),
            "where": ToolParameter(type="string", description="Place"),
        },
        required=frozenset({"where", "when"}),
    )

    wire = schema.to_wire()

    assert wire["type"] == "function"
    assert wire["function"]["name"] == "book"
    params = wire["function"]["parameters"]
    assert params["type"] == "object"
    assert params["required"] == ["when", "where"]
    assert params["properties"]["size"] == {"type": "integer", "description": "Party size", "enum": [2, 4]}
    assert "enum" not in params["properties"]["when"]


def test_step_moves_to_terminal_once():
    step = AgentStep.start(StepKind.EXECUTING_TOOL, "Using clear_chat...", tool_name="clear_chat")
    assert step.status is StepStatus.RUNNING
    assert not step.is_terminal

    done = step.complete()

    assert done.status is StepStatus.COMPLETED
    assert done.id == step.id
    assert done.metadata.tool_name == "clear_chat"
    assert done.metadata.duration_ms is not None
    with pytest.raises(ValueError):
        done.fail("late")
    with pytest.raises(ValueError):
        done.complete()


def test_failed_step_records_error():
    step = AgentStep.start(StepKind.SELECTING_TOOL, "Determining the best approach...").fail("boom")

    assert step.status is StepStatus.ERROR
    assert step.metadata.error == "boom"


def test_step_ids_are_unique():
    ids = {AgentStep.start(StepKind.UNDERSTANDING_INTENT, "x").id for _ in range(50)}

    assert len(ids) == 50


def test_progress_rejects_running_previous_steps():
    running = AgentStep.start(StepKind.UNDERSTANDING_INTENT, "x")

    with pytest.raises(ValidationError):
        AgentProgress(current_step=running, previous_steps=[running])


def test_progress_steps_are_oldest_first():
    first = AgentStep.start(StepKind.UNDERSTANDING_INTENT, "a").complete()
    second = AgentStep.start(StepKind.FORMULATING_RESPONSE, "b")

    progress = AgentProgress(current_step=second, previous_steps=[first])

    assert progress.steps == [first, second]
    assert not progress.is_complete
