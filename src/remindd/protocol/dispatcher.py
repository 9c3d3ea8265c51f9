"""Dispatcher — routes JSON-RPC methods to handlers behind the session gate.

Gated methods (and unknown methods) fail with ``NotReady`` until
``initialize`` has resolved authorization; tool calls additionally require
authorization to be granted.  Tool arguments are validated before the
provider is touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from remindd import PROTOCOL_VERSION, SERVER_NAME, __version__
from remindd.protocol import errors
from remindd.protocol.errors import (
    AccessDeniedError,
    InternalError,
    InvalidParamsError,
    MethodNotFoundError,
    NotReadyError,
    RpcError,
)
from remindd.protocol.models import JsonRpcRequest, JsonRpcResponse
from remindd.protocol.session import Authorization, Authorizer, Phase, SessionState
from remindd.protocol.tools import REMINDER_TOOLS, ToolRegistry, tool_result
from remindd.provider import base as provider_errors
from remindd.utils.telemetry import (
    ATTR_AUTHORIZATION,
    ATTR_ERROR_CODE,
    ATTR_PROTOCOL_VERSION,
    ATTR_REQUEST_ID,
    ATTR_TOOL_NAME,
    get_tracer,
)

if TYPE_CHECKING:
    from remindd.provider.base import ReminderProvider

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

Handler = Callable[[JsonRpcRequest], Awaitable[Any]]
HealthProbe = Callable[[], dict[str, Any]]


@dataclass(frozen=True)
class _Route:
    handler: Handler
    gated: bool


def map_provider_error(exc: provider_errors.ProviderError) -> RpcError:
    """Translate a backend failure into its wire error.

    Backend text is logged, never forwarded.
    """
    logger.debug("Provider error: %r", exc)
    if isinstance(exc, provider_errors.AccessDeniedError):
        return AccessDeniedError()
    if isinstance(exc, provider_errors.NotFoundError):
        return errors.NotFoundError(
            f"{exc.kind.capitalize()} not found",
            data={"kind": exc.kind, "key": exc.key},
        )
    if isinstance(exc, provider_errors.UnavailableError):
        return errors.ProviderUnavailableError()
    logger.error("Invalid input reached the provider: %s", exc)
    return InternalError()


class Dispatcher:
    """Method table for the reminders daemon.

    Usage::

        dispatcher = Dispatcher(InMemoryProvider())
        response = await dispatcher.handle(request)   # None for notifications
    """

    def __init__(
        self,
        provider: ReminderProvider,
        *,
        session: SessionState | None = None,
        tools: ToolRegistry = REMINDER_TOOLS,
        health_probe: HealthProbe | None = None,
    ) -> None:
        self._provider = provider
        self.session = session or SessionState()
        self.authorizer = Authorizer(provider, self.session)
        self._tools = tools
        self._health_probe = health_probe
        self._routes: dict[str, _Route] = {}

        self.register("initialize", self._initialize, gated=False)
        self.register("notifications/initialized", self._initialized, gated=False)
        self.register("ping", self._ping, gated=False)
        self.register("health", self._health, gated=False)
        self.register("tools/list", self._list_tools)
        self.register("tools/call", self._call_tool)

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    def register(self, method: str, handler: Handler, *, gated: bool = True) -> None:
        """Route *method* to *handler*; gated methods require a ready session."""
        self._routes[method] = _Route(handler=handler, gated=gated)

    def methods(self) -> list[str]:
        return list(self._routes)

    async def handle(self, request: JsonRpcRequest) -> JsonRpcResponse | None:
        """Run the handler for *request* and build its response.

        Never raises for per-request failures.  Returns ``None`` for
        notifications.
        """
        logger.debug("-> %s id=%r", request.method, request.id)
        try:
            result = await self._dispatch(request)
        except RpcError as exc:
            if request.is_notification:
                logger.info("Notification %s failed: %s", request.method, exc.message)
                return None
            logger.debug("<- %s id=%r error %d", request.method, request.id, exc.code)
            return JsonRpcResponse.failure(request.id, exc.to_error())
        except Exception:
            logger.exception("Unhandled error in %s (id=%r)", request.method, request.id)
            if request.is_notification:
                return None
            return JsonRpcResponse.failure(request.id, InternalError().to_error())

        if request.id is None:
            return None
        return JsonRpcResponse.success(request.id, result)

    async def _dispatch(self, request: JsonRpcRequest) -> Any:
        route = self._routes.get(request.method)
        gated = route is None or route.gated
        if gated and not self.session.ready:
            raise NotReadyError(data={"phase": self.session.phase.value})
        if route is None:
            raise MethodNotFoundError(request.method)
        return await route.handler(request)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _initialize(self, request: JsonRpcRequest) -> dict[str, Any]:
        params = request.params or {}
        client_info = params.get("clientInfo")
        with _tracer.start_as_current_span("rpc.initialize") as span:
            span.set_attribute(ATTR_REQUEST_ID, str(request.id))
            span.set_attribute(ATTR_PROTOCOL_VERSION, PROTOCOL_VERSION)
            logger.info(
                "initialize from %s (protocol %s)",
                client_info.get("name", "?") if isinstance(client_info, dict) else "?",
                params.get("protocolVersion", "?"),
            )

            if self.session.phase is Phase.UNINITIALIZED:
                await self.session.advance(Phase.INITIALIZING)
            try:
                authorization = await self.authorizer.authorize()
            except provider_errors.ProviderError as exc:
                rpc_error = map_provider_error(exc)
                span.set_attribute(ATTR_ERROR_CODE, rpc_error.code)
                raise rpc_error from exc
            await self.session.advance(Phase.READY)
            span.set_attribute(ATTR_AUTHORIZATION, authorization.value)

        return {
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
            "capabilities": {"tools": {}},
            "tools": [descriptor.to_wire() for descriptor in self._tools.descriptors()],
            "authorization": authorization.value,
        }

    async def _initialized(self, request: JsonRpcRequest) -> None:
        logger.debug("Client confirmed initialization")

    async def _ping(self, request: JsonRpcRequest) -> dict[str, Any]:
        return {}

    async def _health(self, request: JsonRpcRequest) -> dict[str, Any]:
        if self._health_probe is not None:
            return self._health_probe()
        return self.session.snapshot().model_dump(mode="json")

    async def _list_tools(self, request: JsonRpcRequest) -> dict[str, Any]:
        return {"tools": [descriptor.to_wire() for descriptor in self._tools.descriptors()]}

    async def _call_tool(self, request: JsonRpcRequest) -> dict[str, Any]:
        params = request.params or {}
        name = params.get("name")
        if not isinstance(name, str):
            raise InvalidParamsError("tools/call requires a string 'name'")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError("'arguments' must be an object", data={"tool": name})

        spec = self._tools.get(name)
        if spec is None:
            raise InvalidParamsError(f"Unknown tool: {name}", data={"tool": name})

        typed = spec.validate(arguments)
        if self.session.authorization is not Authorization.GRANTED:
            raise AccessDeniedError(data={"tool": name})

        with _tracer.start_as_current_span("tool.call") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            span.set_attribute(ATTR_REQUEST_ID, str(request.id))
            try:
                payload = await spec.invoke(self._provider, typed)
            except provider_errors.ProviderError as exc:
                rpc_error = map_provider_error(exc)
                span.set_attribute(ATTR_ERROR_CODE, rpc_error.code)
                raise rpc_error from exc
        return tool_result(payload)
