"""
JDT Language Server launcher

Resolves the Eclipse JDT LS distribution layout, builds the JVM command line,
and spawns the server with piped stdio.

Layout expected under `jdtls_home`:
    plugins/org.eclipse.equinox.launcher_<version>.jar
    config_linux/ | config_mac/ | config_win/
"""

from __future__ import annotations

import asyncio
import contextlib
import re
import sys
from pathlib import Path

from codegraph_lsp.common.observability import get_logger
from codegraph_lsp.config.settings import ServerConfig
from codegraph_lsp.infra.exceptions import ServerStartError

logger = get_logger(__name__)

LAUNCHER_JAR_GLOB = "org.eclipse.equinox.launcher_*.jar"


def platform_config_name(platform: str | None = None) -> str:
    """Name of the per-OS configuration directory shipped with JDT LS."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return "config_win"
    if platform == "darwin":
        return "config_mac"
    return "config_linux"


def launcher_version(jar: Path) -> tuple[int, ...]:
    """Numeric version of a launcher JAR, so 1.10.0 sorts after 1.9.0."""
    _, _, version = jar.stem.partition("launcher_")
    return tuple(int(part) for part in re.findall(r"\d+", version))


class ServerProcess:
    """
    Handle on a running language server.

    stdout/stdin are the two pipes consumed by TransportSession; stderr is
    drained into the log and is not part of the protocol.
    """

    def __init__(self, process: asyncio.subprocess.Process):
        if process.stdin is None or process.stdout is None:
            raise ServerStartError("Server process was started without stdio pipes")
        self.process = process
        self.stdin = process.stdin
        self.stdout = process.stdout
        self._stderr_task: asyncio.Task[None] | None = None
        if process.stderr is not None:
            self._stderr_task = asyncio.get_running_loop().create_task(self._pump_stderr(process.stderr))

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    async def _pump_stderr(self, stream: asyncio.StreamReader) -> None:
        while True:
            line = await stream.readline()
            if not line:
                return
            logger.debug("lsp_server_stderr", line=line.decode("utf-8", errors="replace").rstrip())

    async def terminate(self, timeout: float = 5.0) -> int | None:
        """Wait for a graceful exit, then terminate, then kill."""
        if self.process.returncode is None:
            try:
                await asyncio.wait_for(self.process.wait(), timeout)
            except asyncio.TimeoutError:
                logger.warning("lsp_server_terminate", pid=self.pid)
                with contextlib.suppress(ProcessLookupError):
                    self.process.terminate()
                try:
                    await asyncio.wait_for(self.process.wait(), timeout)
                except asyncio.TimeoutError:
                    logger.warning("lsp_server_kill", pid=self.pid)
                    with contextlib.suppress(ProcessLookupError):
                        self.process.kill()
                    await self.process.wait()

        if self._stderr_task is not None:
            self._stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._stderr_task
            self._stderr_task = None

        logger.info("lsp_server_exited", pid=self.pid, returncode=self.process.returncode)
        return self.process.returncode


class JdtLauncher:
    """Starts Eclipse JDT LS for a workspace."""

    def __init__(self, config: ServerConfig):
        self.config = config

    @property
    def home(self) -> Path:
        if self.config.jdtls_home is None:
            raise ServerStartError(
                "JDT LS home is not configured. Set CODEGRAPH_LSP_SERVER__JDTLS_HOME or pass --jdtls-home."
            )
        return Path(self.config.jdtls_home).expanduser().resolve()

    def find_launcher_jar(self) -> Path:
        plugins_dir = self.home / "plugins"
        if not plugins_dir.is_dir():
            raise ServerStartError(f"Cannot find JDT LS plugins directory: {plugins_dir}")

        jars = sorted(plugins_dir.glob(LAUNCHER_JAR_GLOB), key=launcher_version)
        if not jars:
            raise ServerStartError(f"No JDT LS launcher JAR matching {LAUNCHER_JAR_GLOB} in {plugins_dir}")
        return jars[-1]

    def find_config_dir(self) -> Path:
        config_dir = self.home / platform_config_name()
        if not config_dir.is_dir():
            raise ServerStartError(f"Cannot find JDT LS config directory: {config_dir}")
        return config_dir

    def build_command(self, workspace: Path) -> list[str]:
        launcher_jar = self.find_launcher_jar()
        config_dir = self.find_config_dir()
        data_dir = workspace / self.config.data_dir_name

        return [
            self.config.java_bin,
            "-Declipse.application=org.eclipse.jdt.ls.core.id1",
            "-Dosgi.bundles.defaultStartLevel=4",
            "-Declipse.product=org.eclipse.jdt.ls.core.product",
            f"-Xmx{self.config.heap_size}",
            "--add-modules=ALL-SYSTEM",
            "--add-opens",
            "java.base/java.util=ALL-UNNAMED",
            "--add-opens",
            "java.base/java.lang=ALL-UNNAMED",
            *self.config.extra_jvm_args,
            "-jar",
            str(launcher_jar),
            "-configuration",
            str(config_dir),
            "-data",
            str(data_dir),
        ]

    async def launch(self, workspace: Path | str) -> ServerProcess:
        """
        Spawn the server for `workspace`.

        Raises:
            ServerStartError: Distribution incomplete or process could not be spawned
        """
        workspace = Path(workspace).resolve()
        if not workspace.is_dir():
            raise ServerStartError(f"Workspace is not a directory: {workspace}")

        command = self.build_command(workspace)
        logger.info("lsp_server_starting", command=" ".join(command), workspace=str(workspace))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(workspace),
            )
        except OSError as e:
            raise ServerStartError(f"Failed to start {command[0]}: {e}", {"workspace": str(workspace)}) from e

        logger.info("lsp_server_started", pid=process.pid)
        return ServerProcess(process)
