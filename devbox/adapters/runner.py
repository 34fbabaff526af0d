"""
Subprocess runner — the single place where ``subprocess.run`` is called.

Every adapter funnels its commands through ``run_command`` so sudo
prefixing, timeouts, output truncation and logging behave the same for
brew, apt, git and scp alike. It returns a Receipt and never raises.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time

from devbox.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Tail of stdout/stderr kept on receipts
_OUTPUT_LIMIT = 4000


def _tail(text: str | None) -> str:
    if not text:
        return ""
    return text[-_OUTPUT_LIMIT:].strip()


def run_command(
    cmd: list[str],
    *,
    adapter: str,
    action_id: str,
    needs_sudo: bool = False,
    timeout: int = 900,
    cwd: str | None = None,
    input_text: str | None = None,
    env_overrides: dict[str, str] | None = None,
) -> Receipt:
    """Run a command and capture the outcome as a Receipt.

    Args:
        cmd: Command list for ``subprocess.run()``.
        adapter: Adapter name recorded on the receipt.
        action_id: Action id recorded on the receipt.
        needs_sudo: Prefix with ``sudo`` (skipped when already root).
            sudo reads the password from the terminal, never from us.
        timeout: Seconds before the command is abandoned.
        cwd: Working directory for the command.
        input_text: Data piped to stdin (``at`` reads its job this way).
        env_overrides: Extra environment variables.

    Returns:
        ``ok`` receipt with stdout on exit 0, ``failed`` receipt with
        stderr (or the exit code) otherwise.
    """
    if needs_sudo and os.geteuid() != 0:
        cmd = ["sudo", *cmd]

    env = None
    if env_overrides:
        env = os.environ.copy()
        env.update(env_overrides)

    command_str = " ".join(cmd)
    logger.debug("Executing: %s (cwd=%s)", command_str, cwd)
    start = time.monotonic()

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            input=input_text,
            env=env,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        return Receipt.failure(
            adapter=adapter,
            action_id=action_id,
            error=f"Command timed out after {timeout}s",
            metadata={"command": command_str, "timeout": timeout},
        )
    except FileNotFoundError:
        return Receipt.failure(
            adapter=adapter,
            action_id=action_id,
            error=f"Executable not found: {cmd[0]}",
            metadata={"command": command_str, "return_code": 127},
        )
    except OSError as e:
        return Receipt.failure(
            adapter=adapter,
            action_id=action_id,
            error=f"Command execution error: {e}",
            metadata={"command": command_str},
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = _tail(result.stdout)
    stderr = _tail(result.stderr)

    if result.returncode == 0:
        return Receipt.success(
            adapter=adapter,
            action_id=action_id,
            output=stdout,
            duration_ms=elapsed_ms,
            metadata={"command": command_str, "return_code": 0, "stderr": stderr},
        )

    return Receipt.failure(
        adapter=adapter,
        action_id=action_id,
        error=stderr or f"Command exited with code {result.returncode}",
        duration_ms=elapsed_ms,
        metadata={"command": command_str, "return_code": result.returncode, "stdout": stdout},
    )
