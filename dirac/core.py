"""
DIRAC — core.py
Resolution engine.
- Lines that name a runnable command execute directly
- Everything else goes to the oracle and must come back as COMMAND:/EXPLANATION:
- Suggested commands run only after the operator confirms
- Failed runs get a diagnosis: the local hint for cd, a second oracle call otherwise
"""
from __future__ import annotations

import asyncio, logging, re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from dirac.errors import AIProcessingError
from dirac.tools import CommandExecutor, CommandValidator, ExecutionOutcome

log = logging.getLogger(__name__)

SAFE_DEFAULT_COMMAND = "ls"
SAFE_DEFAULT_EXPLANATION = (
    "Lists files and directories in the current directory. "
    "This is a safe default command when the request is unclear."
)
GENERIC_EXPLANATION = "Executes the specified command."

CONFIRM_PROMPT = "Would you like to execute this command? [y/N/e(explain)]: "
CONFIRM_AGAIN_PROMPT = "Would you like to execute this command now? [y/N]: "

_NAV_PREFIX = re.compile(r"^(?:go\s+to|open|change\s+to)\s+(.+)$", re.I)


# ── Response contract ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ResolutionResponse:
    command: str
    explanation: str


def _field(text: str, prefix: str) -> str:
    for line in text.splitlines():
        line = line.strip()
        if line.startswith(prefix):
            return line[len(prefix):].strip()
    return ""


def parse_response(raw: str) -> ResolutionResponse:
    """Pull the first COMMAND: and EXPLANATION: lines out of model text.

    Never raises. A missing command falls back to ``ls``, a missing
    explanation to a fixed sentence, so both fields are always non-empty.
    """
    text = raw or ""
    if not text.strip():
        return ResolutionResponse(SAFE_DEFAULT_COMMAND, SAFE_DEFAULT_EXPLANATION)

    command = _field(text, "COMMAND:")
    if len(command) >= 2 and command[0] == command[-1] == "`":
        command = command[1:-1].strip()
    explanation = _field(text, "EXPLANATION:")

    if not command:
        return ResolutionResponse(SAFE_DEFAULT_COMMAND, explanation or SAFE_DEFAULT_EXPLANATION)
    return ResolutionResponse(command, explanation or GENERIC_EXPLANATION)


def rewrite_navigation(text: str) -> Optional[str]:
    """'go to X', 'open X', 'change to X' -> 'cd X'."""
    m = _NAV_PREFIX.match(text.strip())
    return f"cd {m.group(1).strip()}" if m else None


# ── Session ────────────────────────────────────────────────────────────────────

class SessionState(str, Enum):
    IDLE                   = "idle"
    CLASSIFYING            = "classifying"
    DIRECT_EXECUTING       = "direct_executing"
    AWAITING_ORACLE        = "awaiting_oracle"
    AWAITING_CONFIRMATION  = "awaiting_confirmation"
    EXPLAINING             = "explaining"
    AWAITING_CONFIRMATION2 = "awaiting_confirmation2"
    EXECUTING              = "executing"
    CANCELLED              = "cancelled"


@dataclass
class PendingConfirmation:
    response: ResolutionResponse
    explained: bool = False


class ResolutionSession:
    """
    Takes one input line from classification to a displayed result.

    ``terminal`` is the operator-facing collaborator: an async
    ``read_line(prompt)`` plus ``display_output``, ``display_error``,
    ``display_status``, ``display_suggestion`` and ``display_explanation``.
    Executor and oracle calls run on worker threads so the event loop keeps
    servicing signals.
    """

    def __init__(self, executor: CommandExecutor, oracle, terminal,
                 validator: CommandValidator = None):
        self.executor  = executor
        self.oracle    = oracle
        self.terminal  = terminal
        self.validator = validator or executor.validator
        self.state     = SessionState.IDLE
        self.pending: Optional[PendingConfirmation] = None

    def _enter(self, state: SessionState) -> None:
        log.debug("session %s -> %s", self.state.value, state.value)
        self.state = state

    def classify(self, line: str) -> Optional[str]:
        """Return the command to run directly, or None if the line needs the oracle."""
        nav = rewrite_navigation(line)
        if nav:
            return nav
        words = line.split()
        if words and self.validator.is_executable(words[0]):
            return line.strip()
        return None

    async def process(self, line: str) -> None:
        text = (line or "").strip()
        if not text:
            return
        try:
            self._enter(SessionState.CLASSIFYING)
            command = self.classify(text)
            if command is not None:
                self._enter(SessionState.DIRECT_EXECUTING)
                await self.execute(command)
            else:
                await self.resolve(text)
        finally:
            self.pending = None
            self._enter(SessionState.IDLE)

    async def resolve(self, request: str) -> Optional[ResolutionResponse]:
        self._enter(SessionState.AWAITING_ORACLE)
        self.terminal.display_status(f"🤖 Processing with AI... Request: {request}")
        try:
            raw = await asyncio.to_thread(self.oracle.resolve, request, "")
        except AIProcessingError as exc:
            self.terminal.display_error(str(exc))
            self.terminal.display_status("Please ensure the Ollama service is running correctly.")
            return None
        response = parse_response(raw)
        self.pending = PendingConfirmation(response)
        await self.confirm()
        return response

    async def confirm(self) -> Optional[ExecutionOutcome]:
        pending = self.pending
        self._enter(SessionState.AWAITING_CONFIRMATION)
        self.terminal.display_suggestion(pending.response)
        answer = await self._ask(CONFIRM_PROMPT)

        if answer == "y":
            return await self._run_confirmed(pending)
        if answer == "e":
            self._enter(SessionState.EXPLAINING)
            pending.explained = True
            self.terminal.display_explanation(pending.response)
            self._enter(SessionState.AWAITING_CONFIRMATION2)
            if await self._ask(CONFIRM_AGAIN_PROMPT) == "y":
                return await self._run_confirmed(pending)

        self._enter(SessionState.CANCELLED)
        self.terminal.display_status("Command execution cancelled.")
        return None

    async def _ask(self, prompt: str) -> str:
        try:
            answer = await self.terminal.read_line(prompt)
        except (EOFError, KeyboardInterrupt):
            return ""
        return (answer or "").strip().lower()

    async def _run_confirmed(self, pending: PendingConfirmation) -> ExecutionOutcome:
        self._enter(SessionState.EXECUTING)
        return await self.execute(pending.response.command)

    async def execute(self, command: str) -> ExecutionOutcome:
        outcome = await asyncio.to_thread(self.executor.execute, command)
        if outcome.success:
            rendered = outcome.render()
            if rendered:
                self.terminal.display_output(rendered)
            return outcome

        self.terminal.display_error(outcome.render())
        # cd failures already carry a deterministic hint
        if not outcome.is_cd:
            await self.diagnose(outcome)
        return outcome

    async def diagnose(self, outcome: ExecutionOutcome) -> Optional[ResolutionResponse]:
        request = (f"Command '{outcome.command}' failed. "
                   "Please explain what went wrong and suggest a solution.")
        try:
            raw = await asyncio.to_thread(
                self.oracle.resolve, request, outcome.diagnostic_context())
        except AIProcessingError as exc:
            self.terminal.display_error(f"Failed to get AI feedback: {exc}")
            return None
        if not _field(raw or "", "COMMAND:"):
            # prose reply, the text itself is the diagnosis
            feedback = (raw or "").strip() or "No feedback returned."
            self.terminal.display_output(f"🤖 AI Feedback:\n{feedback}")
            return None
        diagnosis = parse_response(raw)
        self.terminal.display_suggestion(diagnosis, title="🤖 AI Feedback")
        return diagnosis
