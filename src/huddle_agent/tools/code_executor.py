"""
Python code execution tool using a local subprocess.
"""

import asyncio
import mimetypes
import sys
import tempfile
from pathlib import Path

import httpx
import structlog

from ..chat.formatting import parse_data_uri, to_data_uri
from .base import BaseTool, ToolContext, ToolParameter

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 16.0


class CodeExecutorTool(BaseTool):
    """Tool for executing Python code in a scratch directory."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, python: str | None = None):
        self.timeout = timeout
        self.python = python or sys.executable

    @property
    def name(self) -> str:
        return "run_python_code"

    @property
    def description(self) -> str:
        return "Utilize computing power to execute Python code and get results"

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="code",
                param_type="string",
                description="Python code to execute",
            ),
            ToolParameter(
                name="file_ids",
                param_type="array",
                items="string",
                description="The file or image IDs required to run code",
                required=False,
            ),
            ToolParameter(
                name="output_file",
                param_type="string",
                description="The output file name",
                required=False,
            ),
        ]

    async def execute(
        self,
        context: ToolContext,
        code: str,
        file_ids: list[str] | None = None,
        output_file: str | None = None,
    ) -> str:
        """Execute code with the referenced files available by their IDs."""
        with tempfile.TemporaryDirectory(prefix="huddle-") as workdir:
            work_path = Path(workdir)

            for file_id in file_ids or []:
                error = await self._stage_file(context, file_id, work_path)
                if error:
                    return error

            script = work_path / "__main__.py"
            script.write_text(code, encoding="utf-8")

            process = await asyncio.create_subprocess_exec(
                self.python,
                str(script),
                cwd=workdir,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )

            try:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                return "Timeout!"

            stdout_text = stdout.decode("utf-8", errors="replace")
            stderr_text = stderr.decode("utf-8", errors="replace")

            if output_file and process.returncode == 0:
                output = _read_output_file(work_path, output_file)
                if output is not None:
                    return output

            output_parts = []
            if stdout_text:
                output_parts.append(stdout_text.rstrip())
            if stderr_text:
                output_parts.append(f"Stderr:\n{stderr_text.rstrip()}")
            if output_file and process.returncode == 0:
                output_parts.append(f"Output file {output_file} was not created.")

            return "\n\n".join(output_parts) if output_parts else "(Empty result)"

    async def _stage_file(self, context: ToolContext, file_id: str, work_path: Path) -> str | None:
        """Write a referenced file into the working directory, or return an error text."""
        url = context.file_store.resolve(file_id)
        if url is None:
            return f"File {file_id} not found!"

        decoded = parse_data_uri(url)
        if decoded is not None:
            data = decoded[1]
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await client.get(url, timeout=30.0)
            if response.is_error:
                return f"Fail to download file {file_id}!\nHTTP Status: {response.status_code}"
            data = response.content

        (work_path / file_id).write_bytes(data)
        logger.debug("Staged file for code execution", file_id=file_id, size=len(data))
        return None


def _read_output_file(work_path: Path, output_file: str) -> str | None:
    path = (work_path / output_file).resolve()
    if not path.is_relative_to(work_path.resolve()) or not path.is_file():
        return None

    mime_type, _ = mimetypes.guess_type(path.name)
    return to_data_uri(mime_type or "application/octet-stream", path.read_bytes())
