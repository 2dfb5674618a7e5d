import os
import shutil

import pytest

from careerpilot.services.code_execution import MAX_OUTPUT_BYTES, execute_code


async def test_python_stdout():
    result = await execute_code("print('hello')\nprint(2 + 3)", "python")
    assert result["error"] is None
    assert result["output"] == "hello\n5"
    assert result["executionTime"] >= 0


async def test_python_exception_is_reported():
    result = await execute_code("raise ValueError('bad input')", "Python")
    assert result["error"] == "ValueError: bad input"
    assert "Error: ValueError: bad input" in result["output"]


async def test_timeout():
    result = await execute_code("while True:\n    pass", "python", timeout=0.5)
    assert result["error"] == "Execution timed out after 0.5 seconds"
    assert result["output"] == ""


async def test_unsupported_language():
    result = await execute_code("puts 1", "ruby")
    assert result == {"output": "", "error": "Unsupported language: ruby", "executionTime": result["executionTime"]}


@pytest.mark.skipif(shutil.which("node") is None, reason="node not installed")
async def test_javascript_console_log():
    result = await execute_code("console.log([1, 2].map(x => x * 2).join(','))", "javascript")
    assert result["error"] is None
    assert result["output"] == "2,4"


async def test_missing_node_runtime(monkeypatch):
    monkeypatch.setattr("careerpilot.services.code_execution.shutil.which", lambda name: None)
    result = await execute_code("console.log(1)", "typescript")
    assert result["error"] == "No runtime available for typescript"


async def test_server_environment_is_not_visible(monkeypatch):
    monkeypatch.setenv("AI_API_KEY", "sk-live-secret")
    result = await execute_code("import os\nprint(os.environ.get('AI_API_KEY'))", "python")
    assert result["error"] is None
    assert result["output"] == "None"


async def test_runs_in_a_scratch_directory():
    result = await execute_code("import os\nprint(os.getcwd())", "python")
    assert result["error"] is None
    assert result["output"] != os.getcwd()
    assert os.path.basename(result["output"]).startswith("careerpilot-run-")


async def test_output_is_capped():
    result = await execute_code("import sys\nwhile True:\n    sys.stdout.write('x' * 4096)", "python", timeout=10)
    assert result["error"] == f"Output exceeded {MAX_OUTPUT_BYTES // 1024} KB limit"
    assert len(result["output"]) <= MAX_OUTPUT_BYTES
