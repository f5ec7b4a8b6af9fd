"""
Post-install — dotfile symlinks, shell setup and tmux plugins.

Builds a plan for the engine like the package install does, so the
steps are logged, audited and dry-runnable the same way:

    1. ~/.config and ~/.local/share
    2. ``stow -v <dir>`` for each stow package present in the checkout
    3. zsh (Oh My Zsh) or bash (Oh My Bash) as login shell
    4. TPM clone

The plan is built after the package install ran, so checks such as
"is zsh installed" see the packages that were just installed.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable, Mapping
from pathlib import Path

from aphadon.core.engine.executor import ExecutionPlan, generate_operation_id
from aphadon.core.models.action import Action
from aphadon.core.models.manifest import Manifest

logger = logging.getLogger(__name__)

OH_MY_ZSH_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
OH_MY_BASH_URL = "https://raw.githubusercontent.com/ohmybash/oh-my-bash/master/tools/install.sh"
TPM_REPO = "https://github.com/tmux-plugins/tpm"

SHELL_MENU = {
    "1": ("zsh", "Zsh (with Oh My Zsh)"),
    "2": ("bash", "Bash (with Oh My Bash)"),
    "3": ("skip", "Skip shell configuration"),
}

_FRAMEWORKS = {
    # shell → (label, framework dir, framework name, installer URL)
    "zsh": ("Zsh", ".oh-my-zsh", "Oh My Zsh", OH_MY_ZSH_URL),
    "bash": ("Bash", ".oh-my-bash", "Oh My Bash", OH_MY_BASH_URL),
}

Which = Callable[[str], str | None]


def normalize_shell_choice(raw: str | None) -> str:
    """Map a menu answer (``1``/``zsh``…) to ``zsh``, ``bash`` or ``skip``.

    Anything unrecognized defaults to zsh.
    """
    value = (raw or "").strip().lower()
    if value in SHELL_MENU:
        return SHELL_MENU[value][0]
    if value in ("zsh", "bash", "skip"):
        return value
    logger.warning("Invalid choice, defaulting to Zsh")
    return "zsh"


class _PostInstallPlanner:
    def __init__(self, plan: ExecutionPlan, dotfiles_root: Path):
        self.plan = plan
        self.root = dotfiles_root

    def add(self, step: str, name: str, adapter: str, params: dict, **kwargs) -> None:
        self.plan.add(Action(
            id=f"{self.plan.operation_id}:post:{step}",
            name=name,
            adapter=adapter,
            phase="post-install",
            params=params,
            **kwargs,
        ))

    def stow(self, pkg: str) -> None:
        if (self.root / pkg).is_dir():
            self.add(f"stow:{pkg}", f"Stowing: {pkg}", "shell", {
                "command": ["stow", "-v", pkg],
                "cwd": str(self.root),
                "allow_failure": True,
            })
        else:
            self.add(f"stow:{pkg}", f"stow {pkg}", "notice", {
                "reason": f"Package directory not found: {pkg}",
            })


def build_post_install_plan(
    manifest: Manifest,
    dotfiles_root: Path,
    home: Path,
    shell_choice: str,
    *,
    which: Which = shutil.which,
    environ: Mapping[str, str] | None = None,
    operation_id: str | None = None,
) -> ExecutionPlan:
    """Build the post-install plan.

    Args:
        manifest: Manifest (its ``stow`` list).
        dotfiles_root: Checkout holding the stow directories.
        home: Home directory to configure.
        shell_choice: ``zsh``, ``bash`` or ``skip``.
        which: Executable lookup (injectable for tests).
        environ: Environment used for the current ``$SHELL``.
        operation_id: Reuse an id (default: generated).
    """
    env = os.environ if environ is None else environ
    plan = ExecutionPlan(
        operation_id=operation_id or generate_operation_id(),
        automation="post-install",
    )
    planner = _PostInstallPlanner(plan, dotfiles_root)

    for rel in (".config", ".local/share"):
        planner.add(f"mkdir:{rel}", f"Create ~/{rel}", "filesystem", {
            "operation": "mkdir",
            "path": f"~/{rel}",
        })

    for pkg in manifest.stow:
        planner.stow(pkg)

    if shell_choice in _FRAMEWORKS:
        _plan_shell(planner, shell_choice, home, which, env)
    else:
        logger.info("Skipping shell configuration")

    tpm_dir = home / ".tmux" / "plugins" / "tpm"
    if tpm_dir.is_dir():
        logger.info("TPM already installed")
    else:
        planner.add("tpm", "Installing Tmux Plugin Manager", "shell", {
            "command": ["git", "clone", TPM_REPO, str(tpm_dir)],
        })

    return plan


def _plan_shell(
    planner: _PostInstallPlanner,
    shell: str,
    home: Path,
    which: Which,
    env: Mapping[str, str],
) -> None:
    label, framework_dir, framework, url = _FRAMEWORKS[shell]
    shell_path = which(shell)
    if shell_path is None:
        planner.add(f"shell:{shell}", f"{label} setup", "notice", {
            "reason": f"{label} not installed, skipping {label} setup",
        })
        return

    logger.info("Setting up %s...", label)
    if (planner.root / shell).is_dir():
        planner.stow(shell)

    if (home / framework_dir).is_dir():
        logger.info("%s already installed", framework)
    else:
        planner.add(f"shell:{shell}:framework", f"Installing {framework}", "shell", {
            "command": [shell, "-c", f'{shell} -c "$(curl -fsSL {url})"'],
            # CHSH=no: the chsh step below handles the login shell
            "env": {"RUNZSH": "no", "KEEP_ZSHRC": "yes", "CHSH": "no"},
            "allow_failure": True,
        })

    if env.get("SHELL") != shell_path:
        planner.add(f"shell:{shell}:chsh", f"Setting {label} as default shell", "shell", {
            "command": ["chsh", "-s", shell_path],
            "allow_failure": True,
        })


def next_steps(shell_choice: str) -> list[str]:
    """Lines printed when the run is over."""
    if shell_choice == "zsh":
        first = "Restart your terminal or run: source ~/.zshrc"
    elif shell_choice == "bash":
        first = "Restart your terminal or run: source ~/.bashrc"
    else:
        first = "Restart your terminal"
    return [
        f"1. {first}",
        "2. Open tmux and press 'prefix + I' to install plugins",
        "3. Open Neovim and run :checkhealth",
    ]
