"""
Tool Guard Middleware for Agent Framework.

FunctionMiddleware that validates every tool invocation with the
ToolDispatcher before the tool runs. A denied invocation never reaches the
tool: its result is replaced with the denial reason so the agent can
explain the refusal.
"""

import logging
from collections.abc import Mapping
from typing import Any

from agent_framework import FunctionInvocationContext, FunctionMiddleware
from pydantic import BaseModel

from .dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)


def arguments_to_mapping(arguments: Any) -> Mapping[str, Any] | None:
    """
    Convert invocation arguments into a plain mapping.

    Args:
        arguments: Pydantic model or mapping as supplied by the framework.

    Returns:
        Argument mapping, or None if the shape is not recognized.
    """
    if isinstance(arguments, BaseModel):
        return arguments.model_dump()
    if isinstance(arguments, Mapping):
        return arguments
    return None


class ToolGuardMiddleware(FunctionMiddleware):
    """
    Middleware that gates tool invocations through the safety engine.

    On denial sets ``context.result`` to the reason, sets
    ``context.terminate`` and does not call the next handler.
    """

    def __init__(self, dispatcher: ToolDispatcher | None = None) -> None:
        """
        Initialize middleware with a dispatcher.

        Args:
            dispatcher: Configured ToolDispatcher (default configuration when None).
        """
        self.dispatcher = dispatcher or ToolDispatcher()

    async def process(self, context: FunctionInvocationContext, call_next: Any) -> None:
        """
        Validate the invocation, then run it or short-circuit.

        Args:
            context: Function invocation context with the tool and its arguments.
            call_next: Callable to invoke the next middleware or the tool.
        """
        tool_name = context.function.name
        arguments = arguments_to_mapping(context.arguments)

        result = self.dispatcher.validate(tool_name, arguments)
        if not result.allowed:
            logger.debug(f"🔒 ToolGuardMiddleware: short-circuited '{tool_name}'")
            context.result = result.reason
            context.terminate = True
            return

        await call_next()
