"""
Adapter registry — the one door between stages and external tools.

Stages build an Action and hand it to ``AdapterRegistry.execute``; the
registry picks the adapter, validates, honors dry-run and mock mode,
and journals the (action, receipt) pair for the run report.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.core.models.action import Action, Receipt
from devbox.core.models.platform import PlatformFacts

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Adapters by name, plus the dispatch rules every action goes through.

    - dry-run: read-only actions run, everything else comes back skipped
    - mock mode: one mock adapter (or a canned success) answers for all
    - journal: every dispatched action and its receipt, in order
    """

    def __init__(
        self,
        facts: PlatformFacts | None = None,
        mock_mode: bool = False,
        dry_run: bool = False,
    ):
        self._adapters: dict[str, Adapter] = {}
        self._facts = facts
        self._mock_mode = mock_mode
        self._mock_adapter: Adapter | None = None
        self._dry_run = dry_run
        self._journal: list[tuple[Action, Receipt]] = []

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def facts(self) -> PlatformFacts | None:
        return self._facts

    @property
    def journal(self) -> list[tuple[Action, Receipt]]:
        return self._journal

    def set_mock_mode(self, enabled: bool, mock_adapter: Adapter | None = None) -> None:
        """Route every action to ``mock_adapter`` (or a canned success)."""
        self._mock_mode = enabled
        self._mock_adapter = mock_adapter

    def set_facts(self, facts: PlatformFacts) -> None:
        """Swap in new facts, e.g. after bootstrap put brew on PATH."""
        self._facts = facts

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter %s", adapter.name)
        self._adapters[adapter.name] = adapter

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        return list(self._adapters)

    def is_available(self, name: str) -> bool:
        """Registered and its executable found. Always True in mock mode."""
        if self._mock_mode:
            return True
        adapter = self._adapters.get(name)
        return adapter is not None and _probe(adapter)

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Name, availability and class of each adapter, for ``devbox status``."""
        return {
            name: {"name": name, "available": _probe(adapter), "type": type(adapter).__name__}
            for name, adapter in self._adapters.items()
        }

    # ── Dispatch ────────────────────────────────────────────────

    def execute(self, action: Action, *, cwd: str | None = None) -> Receipt:
        """Dispatch one action and journal the receipt. Never raises."""
        started = time.monotonic()
        receipt = self._dispatch(action, cwd)
        if not receipt.duration_ms:
            receipt.duration_ms = int((time.monotonic() - started) * 1000)
        self._journal.append((action, receipt))
        return receipt

    def _resolve(self, action: Action) -> Adapter | None:
        if self._mock_mode:
            return self._mock_adapter
        return self._adapters.get(action.adapter)

    def _dispatch(self, action: Action, cwd: str | None) -> Receipt:
        adapter = self._resolve(action)
        if adapter is None and self._mock_mode:
            return self._dry_run_receipt(action) or Receipt.success(
                adapter=action.adapter,
                action_id=action.id,
                output=f"[mock] {action.id} executed",
                metadata={"mock": True},
            )
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        context = ExecutionContext(
            action=action,
            facts=self._facts,
            cwd=cwd,
            dry_run=self._dry_run,
            params=action.params,
        )

        try:
            valid, reason = adapter.validate(context)
        except Exception as e:
            return Receipt.failure(adapter=action.adapter, action_id=action.id, error=f"Validation error: {e}")
        if not valid:
            return Receipt.failure(adapter=action.adapter, action_id=action.id, error=f"Validation failed: {reason}")

        skipped = self._dry_run_receipt(action)
        if skipped is not None:
            return skipped

        try:
            return adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised on %s: %s", adapter.name, action.id, e)
            return Receipt.failure(adapter=action.adapter, action_id=action.id, error=f"Unexpected error: {e}")

    def _dry_run_receipt(self, action: Action) -> Receipt | None:
        if not self._dry_run or action.read_only:
            return None
        return Receipt.skip(
            adapter=action.adapter,
            action_id=action.id,
            reason=f"[dry-run] Would execute {action.id}",
            metadata={"dry_run": True},
        )


def _probe(adapter: Adapter) -> bool:
    try:
        return adapter.is_available()
    except Exception:
        return False
