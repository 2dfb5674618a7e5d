"""
Run challenge snippets in a separate interpreter process.

Python runs under the current interpreter in isolated mode (-I);
JavaScript and TypeScript run under `node` when it is on PATH. Each run
gets a throwaway working directory, an environment holding only PATH,
a wall-clock timeout and a cap on captured output. Problems are reported
in the result's `error` field, never raised.
"""
import asyncio
import os
import shutil
import sys
import tempfile
import time
from typing import Dict, List, Optional, Tuple

from careerpilot.config import get_settings
from careerpilot.utils.logger import logger
from careerpilot.utils.metrics import inc

SUPPORTED_LANGUAGES = ("javascript", "typescript", "python")
MAX_OUTPUT_BYTES = 64 * 1024
READ_CHUNK = 4096


def _result(output: str, error: Optional[str], started: float) -> Dict:
    return {
        "output": output.strip(),
        "error": error,
        "executionTime": round((time.perf_counter() - started) * 1000, 2),
    }


def _command(language: str, code: str) -> Optional[List[str]]:
    if language == "python":
        return [sys.executable, "-I", "-c", code]
    node = shutil.which("node")
    if node is None:
        return None
    return [node, "-e", code]


def sandbox_env(workdir: str) -> Dict[str, str]:
    """Environment for snippets: nothing of the server's own settings or secrets."""
    return {"PATH": os.environ.get("PATH", ""), "HOME": workdir}


def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass


async def _read_capped(stream: asyncio.StreamReader, proc: asyncio.subprocess.Process) -> Tuple[bytes, bool]:
    data = bytearray()
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            return bytes(data), False
        data.extend(chunk)
        if len(data) > MAX_OUTPUT_BYTES:
            _kill(proc)
            return bytes(data[:MAX_OUTPUT_BYTES]), True


async def _collect(proc: asyncio.subprocess.Process) -> Tuple[bytes, bytes, bool]:
    (stdout, out_capped), (stderr, err_capped) = await asyncio.gather(
        _read_capped(proc.stdout, proc),
        _read_capped(proc.stderr, proc),
    )
    await proc.wait()
    return stdout, stderr, out_capped or err_capped


async def execute_code(code: str, language: str, timeout: Optional[float] = None) -> Dict:
    started = time.perf_counter()
    language = (language or "").lower()
    timeout = timeout or get_settings().code_execution_timeout

    if language not in SUPPORTED_LANGUAGES:
        return _result("", f"Unsupported language: {language}", started)

    cmd = _command(language, code)
    if cmd is None:
        return _result("", f"No runtime available for {language}", started)

    inc(f"code_execution.{language}")
    with tempfile.TemporaryDirectory(prefix="careerpilot-run-") as workdir:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=workdir,
            env=sandbox_env(workdir),
        )
        try:
            stdout, stderr, capped = await asyncio.wait_for(_collect(proc), timeout=timeout)
        except asyncio.TimeoutError:
            _kill(proc)
            await proc.wait()
            inc("code_execution.timeout")
            logger.warning(f"Code execution timed out after {timeout}s", extra={"operation": language})
            return _result("", f"Execution timed out after {timeout} seconds", started)

    out_lines = stdout.decode(errors="replace").splitlines()
    err_lines = [line for line in stderr.decode(errors="replace").splitlines() if line.strip()]
    output = "\n".join(out_lines + [f"Error: {line}" for line in err_lines])

    if capped:
        inc("code_execution.output_capped")
        return _result(output, f"Output exceeded {MAX_OUTPUT_BYTES // 1024} KB limit", started)

    error = None
    if proc.returncode != 0:
        error = err_lines[-1] if err_lines else f"Process exited with code {proc.returncode}"
    return _result(output, error, started)
