"""Resolution of the gh executable and the environment it runs in.

GUI launchers and service managers often start processes with a minimal
PATH that misses Homebrew and /usr/local. GhEnvironment is resolved once by
the process entry point and injected wherever gh is invoked.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from repo_polisher.config.settings import GhCliConfig
from repo_polisher.git.models import DEFAULT_HOST

log = structlog.get_logger(__name__)

GH_PATH_ENV_VAR = "GH_CLI_PATH"
GH_HOST_ENV_VAR = "GH_HOST"
SHELL_LOOKUP_TIMEOUT = 5


def _has_path_separator(candidate: str) -> bool:
    return "/" in candidate or "\\" in candidate


def resolve_via_shell() -> str | None:
    """Ask the user's login shell where gh lives."""
    shell = os.environ.get("SHELL") or "/bin/zsh"
    if not Path(shell).exists():
        return None
    try:
        result = subprocess.run(  # nosec B603
            [shell, "-lc", "command -v gh"],
            capture_output=True,
            text=True,
            timeout=SHELL_LOOKUP_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        log.debug("gh_shell_lookup_failed", shell=shell, error=str(e))
        return None

    if result.returncode == 0:
        path = result.stdout.strip().splitlines()[-1] if result.stdout.strip() else ""
        if path and Path(path).exists():
            return path
    return None


@dataclass(frozen=True)
class GhEnvironment:
    """Executable and environment used for every gh invocation.

    Attributes:
        command: Path or name of the gh executable
        env: Full environment passed to gh, with PATH extended
    """

    command: str = "gh"
    env: dict[str, str] = field(default_factory=lambda: dict(os.environ))

    @classmethod
    def resolve(cls, config: GhCliConfig | None = None) -> "GhEnvironment":
        """Build the gh environment from configuration and the host system.

        The executable is the configured path (or ``GH_CLI_PATH``) when it
        exists, otherwise plain ``gh`` looked up on the extended PATH. A
        configured host other than github.com is exported as ``GH_HOST`` for
        gh commands that do not name a repository.
        """
        config = config or GhCliConfig()
        explicit = config.path or os.environ.get(GH_PATH_ENV_VAR)

        extra_paths = list(config.extra_path_dirs)
        if explicit and _has_path_separator(explicit):
            extra_paths.append(str(Path(explicit).parent))
        if config.resolve_via_shell:
            shell_resolved = resolve_via_shell()
            if shell_resolved:
                extra_paths.append(str(Path(shell_resolved).parent))

        env = dict(os.environ)
        existing = env.get("PATH", "").split(os.pathsep) if env.get("PATH") else []
        merged = list(dict.fromkeys(p for p in [*existing, *extra_paths] if p))
        env["PATH"] = os.pathsep.join(merged)
        if config.host != DEFAULT_HOST:
            env[GH_HOST_ENV_VAR] = config.host

        command = explicit if explicit and Path(explicit).exists() else "gh"
        log.debug("gh_environment_resolved", command=command, host=env.get(GH_HOST_ENV_VAR, DEFAULT_HOST))
        return cls(command=command, env=env)

    @property
    def available(self) -> bool:
        """Check if the gh executable can be found."""
        if _has_path_separator(self.command):
            return Path(self.command).exists()
        return shutil.which(self.command, path=self.env.get("PATH")) is not None
