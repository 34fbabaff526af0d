"""File transfer adapters — scp upload, curl download."""

from devbox.adapters.transfer.curl import CurlAdapter
from devbox.adapters.transfer.scp import ScpAdapter

__all__ = ["CurlAdapter", "ScpAdapter"]
