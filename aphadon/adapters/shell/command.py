"""
Shell command adapter — execute an arbitrary command.

The most general adapter: bootstrap steps (``dnf -y update``), stow,
chsh, git clones and third-party install scripts all run through it.
"""

from __future__ import annotations

import logging
import shlex
import shutil
from pathlib import Path

from aphadon.adapters.base import Adapter, ExecutionContext
from aphadon.adapters.shell.runner import DEFAULT_TIMEOUT, run_command
from aphadon.core.models.action import Receipt

logger = logging.getLogger(__name__)


class ShellCommandAdapter(Adapter):
    """Run a command and capture output.

    Action params:
        command (list[str] | str): The command to execute. Strings are
            split with ``shlex``.
        needs_sudo (bool): Prefix sudo when not root (default: False).
        env (dict): Extra environment variables.
        cwd (str): Working directory (default: dotfiles root).
        timeout (int): Timeout in seconds.
        allow_failure (bool): Report a failure as a skip with a warning.
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        command = context.action.params.get("command")
        if not command:
            return False, "Missing required param: 'command'"

        cwd = context.working_dir
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        command = params["command"]
        argv = shlex.split(command) if isinstance(command, str) else list(command)

        result = run_command(
            argv,
            needs_sudo=params.get("needs_sudo", False),
            timeout=params.get("timeout", DEFAULT_TIMEOUT),
            env_overrides=params.get("env"),
            cwd=context.working_dir,
        )

        if not result["ok"] and params.get("allow_failure"):
            logger.warning(
                "%s failed (continuing): %s",
                context.action.name or argv[0],
                result.get("error"),
            )
            return Receipt.skip(
                adapter=self.name,
                action_id=context.action.id,
                reason=f"tolerated failure: {result.get('error')}",
                metadata={"command": argv, "stderr": result.get("stderr", "")},
            )

        return Receipt.from_result(self.name, context.action.id, result)
