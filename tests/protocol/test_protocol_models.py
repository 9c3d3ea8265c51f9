"""Tests for JSON-RPC envelope models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from remindd.protocol.models import JsonRpcError, JsonRpcRequest, JsonRpcResponse, ToolDescriptor


class TestJsonRpcResponse:
    def test_success(self) -> None:
        response = JsonRpcResponse.success(1, {"id": "r1"})
        assert response.result == {"id": "r1"}
        assert response.error is None
        assert not response.is_error

    def test_null_result_is_still_a_result(self) -> None:
        response = JsonRpcResponse.success("a", None)
        assert response.to_wire() == {"jsonrpc": "2.0", "id": "a", "result": None}

    def test_failure(self) -> None:
        response = JsonRpcResponse.failure(1, JsonRpcError(code=-32601, message="nope"))
        assert response.is_error
        assert "result" not in response.to_wire()

    def test_both_result_and_error_rejected(self) -> None:
        with pytest.raises(ValidationError, match="both"):
            JsonRpcResponse(id=1, result={}, error=JsonRpcError(code=-1, message="x"))

    def test_neither_result_nor_error_rejected(self) -> None:
        with pytest.raises(ValidationError, match="either"):
            JsonRpcResponse(id=1)

    def test_null_id_only_for_errors(self) -> None:
        with pytest.raises(ValidationError, match="null id"):
            JsonRpcResponse(id=None, result={})

    def test_validate_from_wire(self) -> None:
        response = JsonRpcResponse.model_validate({"jsonrpc": "2.0", "id": 3, "result": [1]})
        assert response.result == [1]


class TestJsonRpcRequest:
    def test_notification_wire_has_no_id(self) -> None:
        wire = JsonRpcRequest(method="notifications/initialized").to_wire()
        assert "id" not in wire
        assert "params" not in wire

    def test_is_notification(self) -> None:
        assert JsonRpcRequest(method="x").is_notification
        assert not JsonRpcRequest(method="x", id=0).is_notification


class TestJsonRpcError:
    def test_data_omitted_when_absent(self) -> None:
        assert JsonRpcError(code=-32603, message="Internal error").to_wire() == {
            "code": -32603,
            "message": "Internal error",
        }


class TestToolDescriptor:
    def test_wire_uses_camel_case_schema(self) -> None:
        descriptor = ToolDescriptor(name="t", description="d", inputSchema={"type": "object"})
        assert descriptor.to_wire() == {
            "name": "t",
            "description": "d",
            "inputSchema": {"type": "object"},
        }

    def test_frozen(self) -> None:
        descriptor = ToolDescriptor(name="t")
        with pytest.raises(ValidationError):
            descriptor.name = "other"  # type: ignore[misc]
