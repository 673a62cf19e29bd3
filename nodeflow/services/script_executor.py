"""Script executors for RunCode nodes.

Running user code is a security-sensitive capability, so it sits behind a
small interface with explicit implementations:

- ``PythonSandboxExecutor``: restricted Python (whitelisted builtins, no
  imports, no private or frame attributes, ``math``/``json`` exposed as
  curated function namespaces) run in a worker thread.
- ``NodeScriptExecutor``: JavaScript run by a Node.js subprocess with a
  timeout.
- ``DisabledScriptExecutor``: refuses to run anything.

Every executor receives a ``ConsoleSink`` from the caller. Scripts log through
the sink (``log(...)`` / ``console.log(...)``); nothing is intercepted
globally. The script body behaves like a function body: ``return value``
sets the returned value.
"""

import ast
import asyncio
import json
import math
import os
import tempfile
import textwrap
from contextlib import suppress
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any, Dict, List, Protocol

from nodeflow.core.exceptions import ScriptExecutionError
from nodeflow.core.logging import get_logger

logger = get_logger(__name__)

CONSOLE_LEVELS = ("log", "info", "warn", "error", "debug")


def _format_arg(arg: Any) -> str:
    if isinstance(arg, (dict, list, tuple)):
        try:
            return json.dumps(arg, default=str)
        except (TypeError, ValueError):
            return str(arg)
    return str(arg)


class ConsoleSink:
    """Collects log lines emitted by one script run."""

    def __init__(self):
        self.records: List[Dict[str, Any]] = []

    def write(self, level: str, *args: Any) -> None:
        self.records.append({"type": level, "line": " ".join(_format_arg(a) for a in args)})

    def log(self, *args: Any) -> None:
        self.write("log", *args)

    def info(self, *args: Any) -> None:
        self.write("info", *args)

    def warn(self, *args: Any) -> None:
        self.write("warn", *args)

    def error(self, *args: Any) -> None:
        self.write("error", *args)

    def debug(self, *args: Any) -> None:
        self.write("debug", *args)

    @property
    def lines(self) -> List[str]:
        return [r["line"] for r in self.records]


@dataclass
class ScriptResult:
    returned_value: Any = None
    console_output: List[str] = field(default_factory=list)


class ScriptExecutor(Protocol):
    """Runs ``code`` and reports its return value; logs go to ``sink``."""

    name: str

    async def execute(self, code: str, sink: ConsoleSink) -> ScriptResult:
        ...


# =============================================================================
# PYTHON SANDBOX
# =============================================================================

class _Console:
    """``console`` object exposed to sandboxed scripts."""

    def __init__(self, sink: ConsoleSink):
        for level in CONSOLE_LEVELS:
            setattr(self, level, getattr(sink, level))


_SAFE_BUILTINS: Dict[str, Any] = {
    'abs': abs, 'all': all, 'any': any, 'bool': bool,
    'dict': dict, 'enumerate': enumerate, 'filter': filter,
    'float': float, 'int': int, 'isinstance': isinstance, 'len': len, 'list': list,
    'map': map, 'max': max, 'min': min, 'range': range, 'reversed': reversed,
    'round': round, 'set': set, 'sorted': sorted, 'str': str, 'sum': sum,
    'tuple': tuple, 'zip': zip,
    'Exception': Exception, 'ValueError': ValueError, 'TypeError': TypeError,
    'KeyError': KeyError, 'RuntimeError': RuntimeError,
    'True': True, 'False': False, 'None': None,
}

_SAFE_MATH = SimpleNamespace(
    pi=math.pi, e=math.e, inf=math.inf,
    sqrt=math.sqrt, floor=math.floor, ceil=math.ceil, trunc=math.trunc,
    fabs=math.fabs, exp=math.exp, log=math.log, log10=math.log10,
    sin=math.sin, cos=math.cos, tan=math.tan, hypot=math.hypot,
    isclose=math.isclose, isnan=math.isnan, isinf=math.isinf,
)

_SAFE_JSON = SimpleNamespace(dumps=json.dumps, loads=json.loads)

_BLOCKED_NODES = (ast.Import, ast.ImportFrom, ast.Global, ast.Nonlocal)

# Private names and the frame/code introspection attributes of
# generators, coroutines, tracebacks and frames
_BLOCKED_ATTR_PREFIXES = ("_", "gi_", "cr_", "ag_", "f_", "tb_", "co_")


def _check_script(tree: ast.AST) -> None:
    for node in ast.walk(tree):
        if isinstance(node, _BLOCKED_NODES):
            raise ScriptExecutionError(f"{type(node).__name__} statements are not allowed")
        if isinstance(node, ast.Attribute) and node.attr.startswith(_BLOCKED_ATTR_PREFIXES):
            raise ScriptExecutionError(f"Access to '{node.attr}' is not allowed")
        if isinstance(node, ast.Name) and node.id.startswith("__"):
            raise ScriptExecutionError(f"Access to '{node.id}' is not allowed")


class PythonSandboxExecutor:
    """Restricted in-process Python executor."""

    name = "python"

    def compile(self, code: str):
        body = textwrap.indent(code, "    ") if code.strip() else "    pass"
        source = f"def _script():\n{body}\n"
        try:
            tree = ast.parse(source, filename="<script>")
        except SyntaxError as e:
            raise ScriptExecutionError(f"SyntaxError: {e.msg} (line {max((e.lineno or 1) - 1, 1)})")
        _check_script(tree)
        return compile(tree, "<script>", "exec")

    def run(self, code: str, sink: ConsoleSink) -> ScriptResult:
        compiled = self.compile(code)
        namespace = {
            '__builtins__': {**_SAFE_BUILTINS, 'print': sink.log},
            'console': _Console(sink),
            'log': sink.log,
            'math': _SAFE_MATH,
            'json': _SAFE_JSON,
        }
        exec(compiled, namespace)
        try:
            value = namespace['_script']()
        except ScriptExecutionError:
            raise
        except Exception as e:
            raise ScriptExecutionError(str(e) or type(e).__name__, sink.lines) from e
        return ScriptResult(returned_value=value, console_output=sink.lines)

    async def execute(self, code: str, sink: ConsoleSink) -> ScriptResult:
        return await asyncio.to_thread(self.run, code, sink)


# =============================================================================
# NODE.JS SUBPROCESS
# =============================================================================

_NODE_WRAPPER = '''
const __logs = [];
const __fmt = (args) => args.map(a => typeof a === 'object' ? JSON.stringify(a) : String(a)).join(' ');
const console = {{
  log: (...args) => __logs.push({{type: 'log', line: __fmt(args)}}),
  info: (...args) => __logs.push({{type: 'info', line: __fmt(args)}}),
  warn: (...args) => __logs.push({{type: 'warn', line: __fmt(args)}}),
  error: (...args) => __logs.push({{type: 'error', line: __fmt(args)}}),
  debug: (...args) => __logs.push({{type: 'debug', line: __fmt(args)}}),
}};
const log = console.log;
(async () => {{
  const __result = await (async function () {{
{code}
  }})();
  process.stdout.write(JSON.stringify({{__output__: __result === undefined ? null : __result, __logs__: __logs}}));
}})().catch((e) => {{
  process.stdout.write(JSON.stringify({{__error__: String(e && e.message !== undefined ? e.message : e), __logs__: __logs}}));
  process.exitCode = 1;
}});
'''


class NodeScriptExecutor:
    """Runs JavaScript with a Node.js subprocess."""

    name = "node"

    def __init__(self, node_binary: str = "node", timeout: int = 30):
        self.node_binary = node_binary
        self.timeout = timeout

    async def execute(self, code: str, sink: ConsoleSink) -> ScriptResult:
        wrapper_code = _NODE_WRAPPER.format(code=code)

        with tempfile.NamedTemporaryFile(mode='w', suffix='.js', delete=False, encoding='utf-8') as f:
            f.write(wrapper_code)
            temp_file = f.name

        try:
            try:
                process = await asyncio.create_subprocess_exec(
                    self.node_binary, temp_file,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=tempfile.gettempdir(),
                )
            except FileNotFoundError:
                raise ScriptExecutionError(f"Script runtime not found: {self.node_binary}")

            try:
                stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                logger.warning("Script execution timed out", timeout=self.timeout)
                raise ScriptExecutionError(f"Execution timed out after {self.timeout} seconds")
        finally:
            with suppress(OSError):
                os.unlink(temp_file)

        payload = self._parse_payload(stdout.decode('utf-8', errors='replace'))
        for record in payload.get('__logs__', []):
            sink.write(record.get('type', 'log'), record.get('line', ''))

        if '__error__' in payload:
            raise ScriptExecutionError(payload['__error__'], sink.lines)
        if process.returncode != 0:
            message = stderr.decode('utf-8', errors='replace').strip() or "Script execution failed"
            raise ScriptExecutionError(message, sink.lines)

        return ScriptResult(returned_value=payload.get('__output__'), console_output=sink.lines)

    @staticmethod
    def _parse_payload(stdout: str) -> Dict[str, Any]:
        stdout = stdout.strip()
        if not stdout:
            return {}
        try:
            payload = json.loads(stdout)
        except json.JSONDecodeError:
            return {}
        return payload if isinstance(payload, dict) else {}


class DisabledScriptExecutor:
    """Refuses to run scripts."""

    name = "disabled"

    async def execute(self, code: str, sink: ConsoleSink) -> ScriptResult:
        raise ScriptExecutionError("Script execution is disabled")


def create_script_executor(engine: str, node_binary: str = "node",
                           timeout: int = 30) -> ScriptExecutor:
    """Build the executor selected by the ``SCRIPT_ENGINE`` setting."""
    if engine == "node":
        return NodeScriptExecutor(node_binary=node_binary, timeout=timeout)
    if engine == "disabled":
        return DisabledScriptExecutor()
    return PythonSandboxExecutor()
