"""
Process supervisor for stdio tool servers.

Spawns one child process per configured tool server and speaks
newline-delimited JSON-RPC 2.0 over its stdin/stdout:

- Requests carry a monotonically increasing integer id and resolve when
  the matching response line arrives, when the request timeout fires, or
  when the server process goes away.
- Notifications carry no id and complete as soon as they are written.
- stderr is diagnostic output only and is never parsed as protocol data.

Every pending request resolves exactly once: the reader resolves it, the
timeout rejects it, or process exit/stop rejects it with
MCPServerDisconnectedError. The pending entry is removed in all cases.
"""

import asyncio
import codecs
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any

from mcp_orchestrator import __version__
from mcp_orchestrator.configuration.config import Settings, get_settings
from mcp_orchestrator.configuration.server_config import ToolServerConfig
from mcp_orchestrator.domain.exceptions.mcp import (
    MCPConnectionError,
    MCPError,
    MCPProtocolError,
    MCPRequestTimeoutError,
    MCPServerDisconnectedError,
    MCPServerNotConnectedError,
)
from mcp_orchestrator.domain.model.mcp import ResourceDescriptor, ToolDescriptor
from mcp_orchestrator.infrastructure.mcp.line_buffer import LineBuffer

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_NAME = "mcp-orchestrator"

# Seconds to wait for a terminated process before killing it
STOP_GRACE_PERIOD = 5.0
STDOUT_CHUNK_SIZE = 64 * 1024


@dataclass
class _ServerHandle:
    """Runtime state for one running tool server process."""

    name: str
    process: asyncio.subprocess.Process
    buffer: LineBuffer
    pending: dict[int, asyncio.Future] = field(default_factory=dict)
    reader_task: asyncio.Task | None = None
    stderr_task: asyncio.Task | None = None
    server_info: dict[str, Any] = field(default_factory=dict)
    closed: bool = False
    decoder: codecs.IncrementalDecoder = field(
        default_factory=lambda: codecs.getincrementaldecoder("utf-8")(errors="replace")
    )


class ProcessSupervisor:
    """
    Lifecycle and wire protocol for stdio tool servers.

    Usage:
        supervisor = ProcessSupervisor()
        if await supervisor.start_server("agentdb", config):
            tools = await supervisor.list_tools("agentdb")
            result = await supervisor.call_tool("agentdb", "list_databases", {})
        await supervisor.stop_all_servers()
    """

    def __init__(
        self,
        request_timeout: float | None = None,
        startup_delay: float | None = None,
        init_attempts: int | None = None,
        init_retry_delay: float | None = None,
        max_fragment_lines: int | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.request_timeout = (
            request_timeout if request_timeout is not None else settings.mcp_request_timeout
        )
        self.startup_delay = (
            startup_delay if startup_delay is not None else settings.mcp_startup_delay
        )
        self.init_attempts = (
            init_attempts if init_attempts is not None else settings.mcp_init_attempts
        )
        self.init_retry_delay = (
            init_retry_delay if init_retry_delay is not None else settings.mcp_init_retry_delay
        )
        self.max_fragment_lines = (
            max_fragment_lines
            if max_fragment_lines is not None
            else settings.mcp_max_fragment_lines
        )
        self._servers: dict[str, _ServerHandle] = {}
        self._request_id = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start_server(self, name: str, config: ToolServerConfig) -> bool:
        """
        Spawn and initialize a tool server.

        Returns:
            True once the initialize handshake succeeded; False on spawn
            failure, early exit or handshake exhaustion, in which case no
            state remains for ``name``.
        """
        if self.is_server_running(name):
            logger.info(f"MCP server {name} is already running")
            return True
        if not config.command:
            logger.error(f"Failed to start MCP server {name}: no command configured")
            return False

        logger.info(f"Starting MCP server: {name} ({config.command} {' '.join(config.args)})")

        env = os.environ.copy()
        env.update(config.env)

        try:
            process = await asyncio.create_subprocess_exec(
                config.command,
                *config.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                limit=16 * 1024 * 1024,
            )
        except OSError as e:
            logger.error(f"Failed to start MCP server {name}: {e}")
            return False

        handle = _ServerHandle(
            name=name,
            process=process,
            buffer=LineBuffer(source=name, max_fragment_lines=self.max_fragment_lines),
        )
        self._servers[name] = handle
        handle.reader_task = asyncio.create_task(self._read_stdout(handle))
        handle.stderr_task = asyncio.create_task(self._read_stderr(handle))

        try:
            # Let the process settle before the handshake
            await asyncio.sleep(self.startup_delay)
            if self._servers.get(name) is not handle or process.returncode is not None:
                raise MCPConnectionError(message=f"MCP server {name} failed to start")

            handle.server_info = await self._initialize_with_retry(name)
            logger.info(f"MCP server {name} initialized successfully")
            return True
        except MCPError as e:
            logger.error(f"Failed to start MCP server {name}: {e}")
            await self._teardown(handle)
            return False

    async def stop_server(self, name: str) -> None:
        """Terminate a server and reject its pending requests. Idempotent."""
        handle = self._servers.pop(name, None)
        if handle is None:
            return
        await self._teardown(handle)
        logger.info(f"Stopped MCP server: {name}")

    async def stop_all_servers(self) -> None:
        for name in list(self._servers):
            await self.stop_server(name)

    def is_server_running(self, name: str) -> bool:
        handle = self._servers.get(name)
        return handle is not None and handle.process.returncode is None

    def get_running_servers(self) -> list[str]:
        return [name for name in self._servers if self.is_server_running(name)]

    def get_pending_count(self, name: str) -> int:
        handle = self._servers.get(name)
        return len(handle.pending) if handle else 0

    def get_server_info(self, name: str) -> dict[str, Any]:
        handle = self._servers.get(name)
        return dict(handle.server_info) if handle else {}

    # ------------------------------------------------------------------
    # MCP methods
    # ------------------------------------------------------------------

    async def list_tools(self, name: str) -> list[ToolDescriptor]:
        result = await self._send_request(name, "tools/list", {})
        return [ToolDescriptor.from_dict(t) for t in (result or {}).get("tools", [])]

    async def list_resources(self, name: str) -> list[ResourceDescriptor]:
        """List resources; servers without resource support yield []."""
        try:
            result = await self._send_request(name, "resources/list", {})
        except MCPError as e:
            logger.debug(f"Server {name} does not support resources: {e}")
            return []
        return [ResourceDescriptor.from_dict(r) for r in (result or {}).get("resources", [])]

    async def call_tool(self, name: str, tool_name: str, arguments: dict[str, Any]) -> Any:
        logger.debug(f"Calling {name}.{tool_name} with {arguments}")
        return await self._send_request(
            name, "tools/call", {"name": tool_name, "arguments": arguments}
        )

    async def read_resource(self, name: str, uri: str) -> Any:
        return await self._send_request(name, "resources/read", {"uri": uri})

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def _initialize_with_retry(self, name: str) -> dict[str, Any]:
        for attempt in range(1, self.init_attempts + 1):
            try:
                return await self._initialize(name)
            except MCPError as e:
                if attempt >= self.init_attempts or name not in self._servers:
                    raise
                remaining = self.init_attempts - attempt
                logger.warning(
                    f"MCP server {name} initialization failed ({e}), "
                    f"retrying... ({remaining} attempts left)"
                )
                await asyncio.sleep(self.init_retry_delay)
        raise MCPConnectionError(message=f"MCP server {name} could not be initialized")

    async def _initialize(self, name: str) -> dict[str, Any]:
        result = await self._send_request(
            name,
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}, "resources": {}, "prompts": {}},
                "clientInfo": {"name": CLIENT_NAME, "version": __version__},
            },
        )
        await self._send_notification(name, "notifications/initialized", {})
        return (result or {}).get("serverInfo", {})

    async def _send_request(
        self,
        name: str,
        method: str,
        params: dict[str, Any],
        timeout: float | None = None,
    ) -> Any:
        """Send a JSON-RPC request and wait for its response."""
        handle = self._servers.get(name)
        if handle is None or handle.closed:
            raise MCPServerNotConnectedError(name)

        timeout = timeout or self.request_timeout
        request_id = self._next_id()
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        handle.pending[request_id] = future

        try:
            await self._write(
                handle,
                {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params},
            )
            return await asyncio.wait_for(future, timeout=timeout)
        except TimeoutError:
            logger.error(f"MCP request '{method}' to {name} timed out after {timeout}s")
            raise MCPRequestTimeoutError(name, method, timeout) from None
        finally:
            handle.pending.pop(request_id, None)

    async def _send_notification(self, name: str, method: str, params: dict[str, Any]) -> None:
        """Send a JSON-RPC notification (no response expected)."""
        handle = self._servers.get(name)
        if handle is None or handle.closed:
            raise MCPServerNotConnectedError(name)
        await self._write(handle, {"jsonrpc": "2.0", "method": method, "params": params})

    async def _write(self, handle: _ServerHandle, message: dict[str, Any]) -> None:
        stdin = handle.process.stdin
        if stdin is None:
            raise MCPServerNotConnectedError(handle.name)
        data = json.dumps(message) + "\n"
        logger.debug(f"MCP -> {handle.name}: {data.strip()}")
        try:
            stdin.write(data.encode("utf-8"))
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise MCPConnectionError(
                message=f"Failed to write to MCP server {handle.name}", original_error=e
            ) from e

    def _on_data(self, handle: _ServerHandle, text: str) -> None:
        for message in handle.buffer.feed(text):
            self._handle_message(handle, message)

    def _handle_message(self, handle: _ServerHandle, message: dict[str, Any]) -> None:
        msg_id = message.get("id")
        is_response = "result" in message or "error" in message

        if is_response and msg_id in handle.pending:
            future = handle.pending.pop(msg_id)
            if future.done():
                return
            if message.get("error") is not None:
                future.set_exception(MCPProtocolError(message["error"], handle.name))
            else:
                future.set_result(message.get("result"))
        elif "method" in message:
            logger.debug(
                f"Received {message['method']} from {handle.name}: {message.get('params')}"
            )
        else:
            logger.debug(f"Ignoring unmatched message from {handle.name} (id={msg_id})")

    def _handle_exit(self, handle: _ServerHandle, return_code: int | None) -> None:
        """Clean up after process death; runs at most once per handle."""
        if handle.closed:
            return
        handle.closed = True
        logger.info(f"MCP server {handle.name} exited with code {return_code}")
        if self._servers.get(handle.name) is handle:
            del self._servers[handle.name]
        handle.buffer.clear()
        self._reject_pending(handle, return_code)

    @staticmethod
    def _reject_pending(handle: _ServerHandle, return_code: int | None = None) -> None:
        pending = list(handle.pending.values())
        handle.pending.clear()
        for future in pending:
            if not future.done():
                future.set_exception(MCPServerDisconnectedError(handle.name, return_code))

    async def _read_stdout(self, handle: _ServerHandle) -> None:
        stdout = handle.process.stdout
        if stdout is None:
            return
        try:
            while True:
                chunk = await stdout.read(STDOUT_CHUNK_SIZE)
                if not chunk:
                    break
                self._on_data(handle, handle.decoder.decode(chunk))
        except (OSError, ValueError) as e:
            logger.error(f"Error reading from MCP server {handle.name}: {e}")

        return_code = await handle.process.wait()
        self._handle_exit(handle, return_code)

    async def _read_stderr(self, handle: _ServerHandle) -> None:
        stderr = handle.process.stderr
        if stderr is None:
            return
        try:
            while True:
                chunk = await stderr.read(4096)
                if not chunk:
                    break
                message = chunk.decode("utf-8", errors="replace").strip()
                if message:
                    logger.debug(f"MCP server {handle.name} stderr: {message}")
        except (OSError, ValueError) as e:
            logger.debug(f"Stopped reading stderr of {handle.name}: {e}")

    async def _teardown(self, handle: _ServerHandle) -> None:
        """Stop a handle's process and tasks and reject what is still pending."""
        handle.closed = True
        if self._servers.get(handle.name) is handle:
            del self._servers[handle.name]
        self._reject_pending(handle)
        handle.buffer.clear()

        tasks = [t for t in (handle.reader_task, handle.stderr_task) if t and not t.done()]
        for task in tasks:
            task.cancel()

        process = handle.process
        if process.returncode is None:
            try:
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=STOP_GRACE_PERIOD)
                except TimeoutError:
                    logger.warning(f"MCP server {handle.name} did not terminate, killing")
                    process.kill()
                    await process.wait()
            except ProcessLookupError:
                pass

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
