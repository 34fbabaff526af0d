"""
Mock adapter — a scriptable stand-in for any adapter.

Used in mock mode and in tests to stand in for a package manager, git
or scp without touching the machine. Responses can be fixed per action
id, per operation, or computed by a responder callable.
"""

from __future__ import annotations

from collections.abc import Callable

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.core.models.action import Receipt

Responder = Callable[[ExecutionContext], Receipt | None]


class MockAdapter(Adapter):
    """Stand-in for any adapter; records every context it receives.

    Resolution order for a call: a receipt fixed for the action id, then
    the responder (``None`` falls through), then a failing operation,
    then success. ``fail_operation("query")`` makes a package manager
    report nothing installed.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
        responder: Responder | None = None,
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responder = responder
        self._responses: dict[str, Receipt] = {}
        self._failing_operations: dict[str, str] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    def calls_for(self, operation: str) -> list[str]:
        """Units passed to a given operation, in call order."""
        return [c.unit for c in self._call_log if c.operation == operation]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        self._responses[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        """Fail exactly one action, e.g. ``apt:install:qemu``."""
        self.set_response(action_id, Receipt.failure(adapter=self._name, action_id=action_id, error=error))

    def fail_operation(self, operation: str, error: str = "Mock failure") -> None:
        """Fail every ``operation`` call not fixed by ``set_response``."""
        self._failing_operations[operation] = error

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)
        action_id = context.action.id

        fixed = self._responses.get(action_id)
        if fixed is not None:
            return fixed
        if self._responder is not None:
            computed = self._responder(context)
            if computed is not None:
                return computed

        error = self._failing_operations.get(context.operation)
        if error is not None:
            return Receipt.failure(adapter=self._name, action_id=action_id, error=error)
        return Receipt.success(
            adapter=self._name, action_id=action_id, output=self._default_output, metadata={"mock": True}
        )

    def reset(self) -> None:
        """Forget calls, fixed responses and failing operations."""
        self._call_log.clear()
        self._responses.clear()
        self._failing_operations.clear()
