"""Path resolution for the two runtime environments.

A process runs either directly on the host (``native``) or inside a
container that sees the host through volume mounts (``sandbox``). The
environment is detected once at start-up and a matching resolver is handed
to the application.
"""

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from pathlib import Path

from mcp_clipboard.config import (
    DATA_DIR_ENV,
    NATIVE_DATA_DIR,
    SANDBOX_CWD_MOUNT,
    SANDBOX_DATA_DIR,
    SANDBOX_HOME_MOUNT,
    SANDBOX_MARKER_FILE,
)
from mcp_clipboard.errors import AccessDeniedError, ValidationError

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    NATIVE = "native"
    SANDBOX = "sandbox"


def detect_environment(
    environ: Mapping[str, str] | None = None,
    marker: Path = SANDBOX_MARKER_FILE,
) -> Environment:
    """Detect whether the process runs inside a container."""
    env = os.environ if environ is None else environ
    if env.get("DOCKER_CONTAINER") == "true":
        return Environment.SANDBOX
    if env.get("container") == "docker" or env.get("DOCKER_HOST"):
        return Environment.SANDBOX
    if marker.exists():
        return Environment.SANDBOX
    return Environment.NATIVE


class PathResolver(ABC):
    environment: Environment

    @abstractmethod
    def resolve(self, path: str) -> Path:
        """Return a concrete path this process can open for ``path``."""

    @abstractmethod
    def data_dir(self) -> Path:
        """Return the root directory for persisted state."""

    def allowed_roots(self) -> tuple[Path, ...]:
        """Directories a caller-supplied path must live under."""
        return Path.home(), Path.cwd()


def _data_dir_override(environ: Mapping[str, str] | None) -> Path | None:
    env = os.environ if environ is None else environ
    custom = env.get(DATA_DIR_ENV)
    if custom:
        return Path(os.path.abspath(os.path.expanduser(custom)))
    return None


class NativePathResolver(PathResolver):
    environment = Environment.NATIVE

    def __init__(self, environ: Mapping[str, str] | None = None):
        self._environ = environ

    def resolve(self, path: str) -> Path:
        if not path:
            raise ValidationError("Path cannot be empty")
        return Path(os.path.abspath(os.path.expanduser(path)))

    def data_dir(self) -> Path:
        return _data_dir_override(self._environ) or NATIVE_DATA_DIR


class SandboxPathResolver(PathResolver):
    """Maps host paths onto the container's volume mounts.

    The host home directory is expected at ``home_mount`` and the host
    working directory at ``cwd_mount``. Paths under neither, or whose mapped
    location is not visible in the container, are rejected.
    """

    environment = Environment.SANDBOX

    def __init__(
        self,
        home_mount: Path = SANDBOX_HOME_MOUNT,
        cwd_mount: Path = SANDBOX_CWD_MOUNT,
        home: Path | None = None,
        cwd: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self._home_mount = Path(home_mount)
        self._cwd_mount = Path(cwd_mount)
        self._home = home
        self._cwd = cwd
        self._environ = environ

    def resolve(self, path: str) -> Path:
        if not path:
            raise ValidationError("Path cannot be empty")
        host_path = Path(os.path.abspath(os.path.expanduser(path)))
        home = self._home or Path.home()
        cwd = self._cwd or Path.cwd()

        # Home mount takes precedence over the working-directory mount
        for host_base, mount in ((home, self._home_mount), (cwd, self._cwd_mount)):
            mapped = self._map_to_mount(host_path, host_base, mount)
            if mapped is not None:
                return mapped

        logger.warning("Unmappable path in sandbox: %s", host_path)
        raise AccessDeniedError(
            f'Cannot access file "{host_path}" from the container. '
            f"File must be under the home directory ({home}) or the working "
            f"directory ({cwd}) to be reachable through volume mounts."
        )

    def data_dir(self) -> Path:
        return _data_dir_override(self._environ) or SANDBOX_DATA_DIR

    def allowed_roots(self) -> tuple[Path, ...]:
        return self._home or Path.home(), self._cwd or Path.cwd()

    @staticmethod
    def _map_to_mount(host_path: Path, host_base: Path, mount: Path) -> Path | None:
        try:
            relative = host_path.relative_to(host_base)
        except ValueError:
            return None
        mapped = mount / relative
        if mapped.exists():
            return mapped
        return None


def create_path_resolver(environment: Environment | None = None) -> PathResolver:
    env = environment or detect_environment()
    logger.info("Runtime environment: %s", env.value)
    if env is Environment.SANDBOX:
        return SandboxPathResolver()
    return NativePathResolver()
