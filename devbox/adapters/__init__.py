"""
Adapters — every side effect outside the process goes through here.

Stages build Actions, the AdapterRegistry dispatches them to one of
these adapters, and a Receipt comes back.
"""

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.adapters.mock import MockAdapter
from devbox.adapters.registry import AdapterRegistry

__all__ = ["Adapter", "AdapterRegistry", "ExecutionContext", "MockAdapter"]
