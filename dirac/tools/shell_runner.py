"""
DIRAC — tools/shell_runner.py
Command execution against a persistent working directory.
  - DirectoryState: lock-guarded cwd, shared with the worker thread that runs commands
  - CommandValidator: `cd` or anything resolvable on PATH
  - CommandExecutor: `cd` bookkeeping, or `<shell> -c` under a fixed timeout
"""

from __future__ import annotations
import errno, logging, os, shutil, signal, subprocess, threading, time
from dataclasses import dataclass
from typing import Dict, List, Optional

from dirac.errors import CommandExecutionError, DiracError, InputError

log = logging.getLogger(__name__)

COMMAND_TIMEOUT = 30   # seconds, for every external command

# Monitoring tools that tend to run long; same bound as everything else.
MONITOR_COMMANDS = {"lsof", "netstat", "ss", "top", "iostat", "vmstat", "watch"}

_INHERITED_ENV = ("PATH", "HOME", "TERM", "USER", "LOGNAME", "LANG", "LC_ALL", "SHELL")


def _os_cwd() -> Optional[str]:
    try:
        return os.getcwd()
    except OSError:
        return None


def _require_absolute(path: str) -> str:
    if not path or not os.path.isabs(path):
        raise InputError(f"Working directory must be an absolute path, got {path!r}")
    return path


def _decode(payload) -> str:
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload
    return payload.decode("utf-8", errors="replace")


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"signal {signum}"


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


# ── Data structures ────────────────────────────────────────────────────────────

class DirectoryState:
    """The shell's current working directory.

    Starts from the process directory (``/`` if that is gone) and only ever
    holds an absolute path. Reads and writes are serialized by a lock; last
    writer wins.
    """

    def __init__(self, path: str = None):
        self._lock = threading.Lock()
        self._path = _require_absolute(path if path is not None else (_os_cwd() or "/"))

    def read(self) -> str:
        with self._lock:
            return self._path

    def write(self, path: str) -> None:
        path = _require_absolute(path)
        with self._lock:
            self._path = path

    def sync(self) -> str:
        """Adopt the OS working directory, keeping the current value if it is unavailable."""
        cwd = _os_cwd()
        if cwd:
            self.write(cwd)
        return self.read()


@dataclass(frozen=True)
class CommandInvocation:
    raw_text: str
    head: str
    tail: str

    @classmethod
    def parse(cls, raw_text: str) -> "CommandInvocation":
        text = (raw_text or "").strip()
        parts = text.split(None, 1)
        head = parts[0] if parts else ""
        tail = parts[1].strip() if len(parts) > 1 else ""
        return cls(raw_text=text, head=head, tail=tail)


@dataclass
class ExecutionOutcome:
    success: bool
    command: str = ""
    directory: str = ""
    output: str = ""
    warning: str = ""
    error: Optional[DiracError] = None
    exit_code: Optional[int] = None
    suggestion: str = ""
    timed_out: bool = False
    signal: Optional[int] = None
    is_cd: bool = False
    duration_ms: int = 0

    @property
    def message(self) -> str:
        return self.error.message if self.error else ""

    def render(self) -> str:
        if self.success:
            parts = [self.output.rstrip("\n")] if self.output.strip() else []
            if self.warning.strip():
                parts.append(f"Warning: {self.warning.strip()}")
            return "\n".join(parts)
        text = str(self.error)
        if self.suggestion:
            text += f"\n\nℹ️ Suggestion:\n{self.suggestion}"
        return text

    def diagnostic_context(self) -> str:
        lines = [f"Command failed: {self.command}", f"Error: {self.message}"]
        if self.exit_code is not None:
            lines.append(f"Exit code: {self.exit_code}")
        lines.append(f"Current directory: {self.directory}")
        return "\n".join(lines)


# ── Validation ─────────────────────────────────────────────────────────────────

class CommandValidator:
    def is_executable(self, head: str) -> bool:
        words = (head or "").split()
        if not words:
            return False
        if words[0] == "cd":
            return True
        return shutil.which(words[0]) is not None


# ── Directory listing ──────────────────────────────────────────────────────────

def list_directory(path: str, limit: int = None) -> List[str]:
    """Shallow, sorted listing of ``path``; directories get a trailing slash."""
    try:
        names = sorted(os.listdir(path))
    except OSError:
        return []
    if limit is not None:
        names = names[:limit]
    return [n + "/" if os.path.isdir(os.path.join(path, n)) else n for n in names]


# ── Executor ───────────────────────────────────────────────────────────────────

class CommandExecutor:
    timeout = COMMAND_TIMEOUT

    def __init__(self, state: DirectoryState = None, validator: CommandValidator = None,
                 shell: str = None):
        self.state = state or DirectoryState()
        self.validator = validator or CommandValidator()
        self.shell = shell or os.environ.get("SHELL") or "/bin/sh"

    def execute(self, raw_text: str) -> ExecutionOutcome:
        inv = CommandInvocation.parse(raw_text)
        if not inv.raw_text:
            return ExecutionOutcome(False, directory=self.state.read(),
                                    error=InputError("Empty command provided"))
        if inv.head == "cd":
            return self.change_directory(inv.tail)
        return self._run(inv)

    # ── cd ─────────────────────────────────────────────────────────────────────

    def change_directory(self, target: str) -> ExecutionOutcome:
        prior = self.state.read()
        target = _unquote(target.strip())
        command = f"cd {target}".rstrip()
        if not target:
            return ExecutionOutcome(
                False, command=command, directory=prior, is_cd=True,
                error=InputError("No path specified for cd"),
                suggestion="Use 'cd ~' to go to your home directory.",
            )

        resolved = self.resolve_path(target)
        try:
            os.chdir(resolved)
        except OSError as exc:
            reason = exc.strerror or str(exc)
            log.info("cd failed | target=%s | resolved=%s | %s", target, resolved, reason)
            return ExecutionOutcome(
                False, command=command, directory=prior, is_cd=True,
                error=InputError(f"Failed to change directory to '{target}': {reason}"),
                suggestion=self.cd_suggestion(target),
            )
        self.state.write(resolved)
        log.debug("cd %s -> %s", target, resolved)
        return ExecutionOutcome(True, command=command, directory=resolved, is_cd=True)

    def resolve_path(self, target: str) -> str:
        if target.startswith("~"):
            target = os.path.expanduser(target)
        if not os.path.isabs(target):
            target = os.path.join(self.state.read(), target)
        return os.path.realpath(target)

    def cd_suggestion(self, target: str) -> str:
        if target == "back":
            return "Use 'cd ..' to navigate to the parent directory."
        if "/" in target or os.sep in target:
            return "Make sure the directory exists and you have permission to access it."
        hint = "Use 'cd ..' to go up one directory or 'cd ~' to go to your home directory."
        similar = self.similar_directories(target)
        if similar:
            hint += "\nDid you mean: " + ", ".join(similar)
        return hint

    def similar_directories(self, target: str, limit: int = 8) -> List[str]:
        if len(target) < 2:
            return []
        cwd = self.state.read()
        found = [
            e[:-1] for e in list_directory(cwd)
            if e.endswith("/") and len(e) > 2 and e[0] == target[0]
        ]
        return found[:limit]

    # ── external commands ──────────────────────────────────────────────────────

    def build_env(self) -> Dict[str, str]:
        env = {k: os.environ[k] for k in _INHERITED_ENV if k in os.environ}
        home = env.setdefault("HOME", os.path.expanduser("~"))
        env.setdefault("PATH", os.defpath)
        shell_name = os.path.basename(self.shell)
        if shell_name == "zsh":
            env["ZDOTDIR"] = home
            env["HISTFILE"] = os.path.join(home, ".zsh_history")
        elif shell_name == "bash":
            env["HISTFILE"] = os.path.join(home, ".bash_history")
        return env

    def _run(self, inv: CommandInvocation) -> ExecutionOutcome:
        cwd = self.state.sync()
        if not self.validator.is_executable(inv.head):
            return ExecutionOutcome(
                False, command=inv.raw_text, directory=cwd,
                error=InputError(f"Command '{inv.head}' not found or not executable"),
                suggestion="Check that it is installed, or describe what you want in plain words.",
            )

        if inv.head in MONITOR_COMMANDS:
            log.debug("monitoring command %s, timeout=%ss", inv.head, self.timeout)
        log.info("running | cwd=%s | cmd=%s", cwd, inv.raw_text)

        t0 = time.perf_counter()
        try:
            proc = subprocess.run(
                [self.shell, "-c", inv.raw_text],
                capture_output=True,
                cwd=cwd,
                env=self.build_env(),
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            log.warning("timeout after %ss | cmd=%s", self.timeout, inv.raw_text)
            outcome = ExecutionOutcome(
                False, command=inv.raw_text, directory=cwd, timed_out=True,
                error=CommandExecutionError(
                    f"Command '{inv.raw_text}' timed out after {self.timeout}s"),
                suggestion="The process was stopped. Narrow the command or run it outside dirac.",
            )
        except OSError as exc:
            log.warning("spawn failed | cmd=%s | %s", inv.raw_text, exc)
            outcome = ExecutionOutcome(
                False, command=inv.raw_text, directory=cwd,
                error=CommandExecutionError(f"Failed to start {self.shell}: {exc.strerror or exc}"),
                suggestion=self._spawn_suggestion(inv.raw_text, exc),
            )
        else:
            outcome = self._classify(inv, cwd, proc)

        outcome.duration_ms = int((time.perf_counter() - t0) * 1000)
        log.info("finished | rc=%s | %sms", outcome.exit_code, outcome.duration_ms)
        self.state.sync()
        return outcome

    def _classify(self, inv: CommandInvocation, cwd: str, proc) -> ExecutionOutcome:
        stdout = _decode(proc.stdout)
        stderr = _decode(proc.stderr)
        rc = proc.returncode

        if rc < 0:
            return ExecutionOutcome(
                False, command=inv.raw_text, directory=cwd, output=stdout, signal=-rc,
                error=CommandExecutionError(
                    f"Command '{inv.raw_text}' was terminated by a signal ({_signal_name(-rc)})"),
            )
        if rc != 0:
            message = stderr.strip() or stdout.strip() or "Command failed"
            return ExecutionOutcome(
                False, command=inv.raw_text, directory=cwd, output=stdout,
                exit_code=rc, error=CommandExecutionError(message),
            )
        # exit status decides; stderr on success is only advisory
        return ExecutionOutcome(True, command=inv.raw_text, directory=cwd, output=stdout,
                                warning=stderr.strip(), exit_code=0)

    @staticmethod
    def _spawn_suggestion(command: str, exc: OSError) -> str:
        if exc.errno == errno.ENOENT:
            return (f"Command '{command}' not found. Check if it's installed or try "
                    "using natural language to describe what you want to do.")
        if exc.errno in (errno.EACCES, errno.EPERM):
            return (f"Permission denied for command '{command}'. Try using 'sudo' "
                    "if you have the necessary permissions.")
        return "Try rephrasing the command or check its syntax."
