"""Argument models, descriptors and invocation for the reminder tools.

Each tool is declared once as a :class:`ToolSpec`: a pydantic argument model
(from which the advertised ``inputSchema`` is generated) and an async
runner that calls the provider with typed arguments.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError, field_validator

from remindd.protocol.errors import InvalidParamsError
from remindd.protocol.models import ToolDescriptor

if TYPE_CHECKING:
    from remindd.provider.base import ReminderProvider

# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------


class ToolArguments(BaseModel):
    """Base for tool argument models.

    Only the advertised (camelCase) keys are accepted; field names are not.
    """

    model_config = ConfigDict(extra="forbid")


class CreateReminderArgs(ToolArguments):
    title: StrictStr = Field(..., min_length=1, description="Reminder title.")
    notes: StrictStr | None = Field(default=None, description="Free-form notes.")
    due_date: datetime | None = Field(
        default=None,
        alias="dueDate",
        description="Due date as an ISO 8601 timestamp.",
    )
    list_name: StrictStr | None = Field(
        default=None,
        alias="listName",
        description="Target list; the default list when omitted.",
    )

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "title must not be blank"
            raise ValueError(msg)
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date_is_text(cls, value: Any) -> Any:
        # the wire form is an ISO 8601 string; epoch numbers are rejected
        if value is not None and not isinstance(value, str):
            msg = "dueDate must be an ISO 8601 string"
            raise ValueError(msg)
        return value


class ListRemindersArgs(ToolArguments):
    list_name: StrictStr | None = Field(
        default=None,
        alias="listName",
        description="List to read; the default list when omitted.",
    )
    include_completed: StrictBool = Field(
        default=False,
        alias="includeCompleted",
        description="Include completed reminders.",
    )


class CompleteReminderArgs(ToolArguments):
    id: StrictStr = Field(..., min_length=1, description="Reminder id.")


class GetListsArgs(ToolArguments):
    pass


# ---------------------------------------------------------------------------
# Runners
# ---------------------------------------------------------------------------


async def _create_reminder(provider: ReminderProvider, args: CreateReminderArgs) -> dict[str, Any]:
    reminder_id = await provider.create(
        args.title,
        notes=args.notes,
        due_date=args.due_date,
        list_name=args.list_name,
    )
    return {"id": reminder_id}


async def _list_reminders(provider: ReminderProvider, args: ListRemindersArgs) -> dict[str, Any]:
    reminders = await provider.list(args.list_name, include_completed=args.include_completed)
    return {"reminders": [reminder.to_wire() for reminder in reminders]}


async def _complete_reminder(
    provider: ReminderProvider, args: CompleteReminderArgs
) -> dict[str, Any]:
    return {"success": bool(await provider.complete(args.id))}


async def _get_lists(provider: ReminderProvider, args: GetListsArgs) -> dict[str, Any]:
    return {"lists": [item.to_wire() for item in await provider.lists()]}


def tool_result(payload: dict[str, Any]) -> dict[str, Any]:
    """Wrap a tool payload in the ``tools/call`` result envelope."""
    return {
        "content": [{"type": "text", "text": json.dumps(payload, ensure_ascii=False)}],
        "structuredContent": payload,
        "isError": False,
    }


def _input_schema(model: type[BaseModel]) -> dict[str, Any]:
    schema = model.model_json_schema(by_alias=True)
    schema.pop("title", None)
    schema.setdefault("properties", {})
    schema["additionalProperties"] = False
    return schema


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

Runner = Callable[[Any, Any], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class ToolSpec:
    """A callable tool: descriptor metadata, argument model and runner."""

    name: str
    description: str
    arguments: type[ToolArguments]
    runner: Runner

    @property
    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            input_schema=_input_schema(self.arguments),
        )

    def validate(self, arguments: dict[str, Any]) -> ToolArguments:
        """Validate raw *arguments*; raise :class:`InvalidParamsError` on mismatch."""
        try:
            return self.arguments.model_validate(arguments)
        except ValidationError as exc:
            errors = [
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in exc.errors(include_url=False)
            ]
            raise InvalidParamsError(
                f"Invalid arguments for tool {self.name}",
                data={"tool": self.name, "errors": errors},
            ) from exc

    async def invoke(self, provider: ReminderProvider, arguments: ToolArguments) -> dict[str, Any]:
        return await self.runner(provider, arguments)


class ToolRegistry:
    """Immutable name-to-:class:`ToolSpec` map in registration order."""

    def __init__(self, specs: list[ToolSpec]) -> None:
        self._specs = {spec.name: spec for spec in specs}
        self._descriptors = tuple(spec.descriptor for spec in specs)

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def names(self) -> list[str]:
        return list(self._specs)

    def descriptors(self) -> tuple[ToolDescriptor, ...]:
        return self._descriptors

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)


REMINDER_TOOLS = ToolRegistry(
    [
        ToolSpec(
            name="create_reminder",
            description="Create a reminder with an optional note and due date.",
            arguments=CreateReminderArgs,
            runner=_create_reminder,
        ),
        ToolSpec(
            name="list_reminders",
            description="List reminders in a list (the default list when omitted).",
            arguments=ListRemindersArgs,
            runner=_list_reminders,
        ),
        ToolSpec(
            name="complete_reminder",
            description="Mark a reminder as completed.",
            arguments=CompleteReminderArgs,
            runner=_complete_reminder,
        ),
        ToolSpec(
            name="get_lists",
            description="Return all reminder lists.",
            arguments=GetListsArgs,
            runner=_get_lists,
        ),
    ]
)
