"""Host detection."""

from devbox.core.detection.platform import detect_platform, parse_os_release

__all__ = ["detect_platform", "parse_os_release"]
