#!/usr/bin/env python3
"""
DIRAC — AI-powered terminal
Type shell commands as usual, or describe what you want in plain words.

  dirac              — start the shell in the current directory
  dirac --version    — print the version
"""

import asyncio, logging, os, shutil, sys
from typing import Iterable, Optional

import click
from rich.console import Console
from rich.panel   import Panel
from rich.table   import Table
from rich.markup  import escape
from rich          import box
from prompt_toolkit              import PromptSession
from prompt_toolkit.history      import FileHistory, History
from prompt_toolkit.completion   import Completer, Completion
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.patch_stdout import patch_stdout

from dirac            import __version__
from dirac.config     import cfg
from dirac.core       import ResolutionResponse, ResolutionSession
from dirac.log        import setup_logging
from dirac.oracle     import OllamaOracle
from dirac.plugins    import PluginRegistry, default_registry
from dirac.signals    import INTERRUPT, RESUME, SUSPEND, SignalBridge
from dirac.tools      import CommandExecutor, DirectoryState, list_directory

log = logging.getLogger(__name__)

# ── Console & palette ──────────────────────────────────────────────────────────
console = Console(highlight=False)
VERSION = __version__

CYAN   = "#00f5ff"
BLUE   = "#0088ff"
GREEN  = "#00ff9f"
YELLOW = "#ffe600"
RED    = "#ff4444"
WHITE  = "#e8eaf6"
DIM    = "#3d4a5c"

def W(): return shutil.get_terminal_size().columns
def ok(m):    console.print(f"  [{GREEN}]✔[/]  [{WHITE}]{m}[/]")
def warn(m):  console.print(f"  [{YELLOW}]⚠[/]  [{WHITE}]{m}[/]")
def err(m):   console.print(f"  [{RED}]✖[/]  [{RED}]{m}[/]")
def info(m):  console.print(f"  [{CYAN}]⬡[/]  [{DIM}]{m}[/]")

EXIT_HINT = "Use 'exit' or 'quit' to exit properly."

FEATURES = [
    "Natural language command processing",
    "Smart command completion and suggestions",
    "File path completion",
    "Command history with search",
    "Plugin system for extended functionality",
]

def show_banner():
    console.print()
    console.print(f"[bold {GREEN}]=== Welcome to Dirac - Your AI-powered terminal! ===[/]")
    console.print(f"[{BLUE}]Available features:[/]")
    for feature in FEATURES:
        console.print(f"[{BLUE}] - {feature}[/]")
    console.print()
    console.print(f"[{YELLOW}]Type 'help' for more information or start typing your commands.[/]")
    console.print()


def prompt_text(path: str) -> str:
    """`dirac[<parent>/<leaf>]> ` from the last two components of ``path``."""
    parts = [p for p in path.split(os.sep) if p]
    where = "/".join(parts[-2:]) if parts else "/"
    return f"dirac[{where}]> "


# ── Completion ─────────────────────────────────────────────────────────────────

class DiracCompleter(Completer):
    """Paths relative to the shell's directory first, then earlier lines."""

    def __init__(self, state: DirectoryState, history: History):
        self.state   = state
        self.history = history

    def get_completions(self, document, complete_event) -> Iterable[Completion]:
        text = document.text_before_cursor
        if not text.strip():
            return
        word = document.get_word_before_cursor(WORD=True)
        paths = list(self.path_completions(word))
        if paths:
            yield from paths
            return
        yield from self.history_completions(text)

    def path_completions(self, word: str) -> Iterable[Completion]:
        dirname, prefix = os.path.split(os.path.expanduser(word))
        base = dirname if os.path.isabs(dirname) else os.path.join(self.state.read(), dirname)
        for entry in list_directory(base):
            if not entry.startswith(prefix):
                continue
            if entry.startswith(".") and not prefix.startswith("."):
                continue
            yield Completion(entry, start_position=-len(prefix), display=entry)

    def history_completions(self, text: str) -> Iterable[Completion]:
        seen = set()
        for line in reversed(self.history.get_strings()):
            if line.startswith(text) and line != text and line not in seen:
                seen.add(line)
                yield Completion(line, start_position=-len(text))


# ── Terminal ───────────────────────────────────────────────────────────────────

class DiracTerminal:
    """Operator-facing side of the shell: line input plus rich output."""

    def __init__(self, state: DirectoryState, registry: PluginRegistry):
        self.state    = state
        self.registry = registry
        path = cfg.history_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        history = FileHistory(str(path))
        self._session = PromptSession(
            history=history,
            auto_suggest=AutoSuggestFromHistory(),
            completer=DiracCompleter(state, history),
            complete_while_typing=False,
        )
        self._confirm = PromptSession()

    async def read_command(self) -> str:
        return await self._session.prompt_async(
            prompt_text(self.state.read()), handle_sigint=False)

    async def read_line(self, prompt: str) -> str:
        return await self._confirm.prompt_async(prompt, handle_sigint=False)

    def add_history(self, line: str) -> None:
        plugin = self.registry.lookup_by_name("history")
        if plugin is not None:
            plugin.record(line)

    def display_output(self, text: str) -> None:
        console.print(text, markup=False)

    def display_error(self, text: str) -> None:
        err(escape(text))

    def display_status(self, text: str) -> None:
        info(escape(text))

    def display_suggestion(self, response: ResolutionResponse, title: str = "🤖 AI Suggestion") -> None:
        body = (
            f"[{DIM}]command      [/][bold {CYAN}]{escape(response.command)}[/]\n"
            f"[{DIM}]explanation  [/][{WHITE}]{escape(response.explanation)}[/]"
        )
        console.print(Panel(
            body, title=f"[bold {CYAN}]{title}[/]",
            border_style=CYAN, box=box.ROUNDED, padding=(0, 2), width=min(88, W() - 2),
        ))

    def display_explanation(self, response: ResolutionResponse) -> None:
        console.print(Panel(
            f"[{WHITE}]{escape(response.explanation)}[/]",
            title=f"[bold {BLUE}]Command Explanation[/]",
            border_style=BLUE, box=box.ROUNDED, padding=(0, 2), width=min(88, W() - 2),
        ))


# ── Built-ins ──────────────────────────────────────────────────────────────────

def cmd_help():
    console.print()
    t = Table(box=box.SIMPLE_HEAD, border_style=DIM, header_style=f"bold {CYAN}",
              show_edge=False, padding=(0, 2))
    t.add_column("COMMAND", style=f"bold {CYAN}", min_width=24)
    t.add_column("DESCRIPTION", style=WHITE)
    rows = [
        ("── SHELL ──", ""),
        ("<command>",            "Runs directly when it is on PATH (cd included)"),
        ("<plain words>",        "Ask the AI for a command; you confirm before it runs"),
        ("go to / open <dir>",   "Change directory"),
        ("── BUILT-INS ──", ""),
        ("history",              "Lines entered this session"),
        ("plugins",              "Registered plugins"),
        ("config",               "View all settings"),
        ("setconfig <k> <v>",    "Change a setting (e.g. setconfig model llama3)"),
        ("clear",                "Clear the screen and show the banner"),
        ("help / ?",             "This table"),
        ("exit / quit",          "Quit"),
    ]
    for cmd, desc in rows:
        if cmd.startswith("──"): t.add_row(f"[{DIM}]{cmd}[/]", "")
        else: t.add_row(escape(cmd), desc)
    console.print(t)
    console.print()


def cmd_plugins(registry: PluginRegistry):
    console.print()
    if not len(registry):
        warn("No plugins registered."); console.print(); return
    for name, description in registry.list():
        console.print(f"  [bold {CYAN}]{name:<12}[/] [{DIM}]{description}[/]")
    console.print()


def cmd_history(registry: PluginRegistry):
    plugin = registry.lookup_by_name("history")
    out = plugin.execute("history") if plugin else ""
    if out: console.print(out, markup=False)
    else: info("History is empty.")


def cmd_config():
    console.print()
    lines = []
    for k, v in cfg.all().items():
        lines.append(f"  [{DIM}]{k:<22}[/] [bold {CYAN}]{escape(str(v))}[/]")
    console.print(Panel(
        "\n".join(lines), title=f"[bold {CYAN}]⬡  CONFIG v{VERSION}[/]",
        subtitle=f"[{DIM}]{cfg.path()}[/]",
        border_style=CYAN, box=box.ROUNDED, padding=(0, 2), width=min(82, W() - 4),
    ))
    console.print()


def cmd_setconfig(key: str, val: str):
    old = cfg.get(key, "<unset>")
    try: cfg.set(key, val)
    except ValueError as e: err(escape(str(e))); return
    ok(f"[{DIM}]{key}[/]  [{DIM}]{escape(str(old))}[/]  [{CYAN}]→[/]  "
       f"[bold {WHITE}]{escape(str(cfg.get(key)))}[/]")
    if key in ("model", "api_url", "request_timeout", "shell"):
        info("Takes effect the next time dirac starts.")


ALIASES = {"?": "help", "h": "help", "q": "exit", "quit": "exit", "cls": "clear", "cfg": "config"}
BUILTINS = {"exit", "help", "clear", "plugins", "history", "config", "setconfig"}

EXIT    = "EXIT"
HANDLED = "HANDLED"

def dispatch(raw: str, registry: PluginRegistry) -> Optional[str]:
    """Run a built-in. Returns EXIT, HANDLED, or None when ``raw`` is not a built-in."""
    parts = raw.strip().split()
    if not parts: return HANDLED
    cmd  = ALIASES.get(parts[0].lower(), parts[0].lower())
    args = parts[1:]
    if cmd not in BUILTINS: return None

    if cmd == "exit":        return EXIT
    elif cmd == "help":      cmd_help()
    elif cmd == "clear":     console.clear(); show_banner()
    elif cmd == "plugins":   cmd_plugins(registry)
    elif cmd == "history":   cmd_history(registry)
    elif cmd == "config":    cmd_config()
    elif cmd == "setconfig":
        if len(args) >= 2: cmd_setconfig(args[0], " ".join(args[1:]))
        else: err("Usage: setconfig <key> <value>")
    return HANDLED


# ── Main loop ──────────────────────────────────────────────────────────────────

INTERRUPTED = object()
END_OF_INPUT = object()


class InputFailure:
    """The line reader broke; the loop reports it and stops."""

    def __init__(self, error: Exception):
        self.error = error


async def _next_line(terminal: DiracTerminal):
    # KeyboardInterrupt must not escape a task, it would tear down the loop
    try:
        return await terminal.read_command()
    except KeyboardInterrupt:
        return INTERRUPTED
    except EOFError:
        return END_OF_INPUT
    except Exception as exc:
        log.exception("line input failed")
        return InputFailure(exc)


def on_signal(tag: str) -> None:
    if tag == INTERRUPT:
        console.print(f"\n[{YELLOW}]CTRL-C pressed. {EXIT_HINT}[/]")
    elif tag == SUSPEND:
        console.print(f"\n[{YELLOW}]CTRL-Z pressed. Terminal will continue running.[/]")
    elif tag == RESUME:
        console.clear(); show_banner()


async def shell_loop(terminal: DiracTerminal = None, session: ResolutionSession = None,
                     registry: PluginRegistry = None, bridge: SignalBridge = None) -> None:
    registry = registry or default_registry()
    if terminal is None or session is None:
        state    = DirectoryState()
        executor = CommandExecutor(state=state, shell=cfg.shell())
        terminal = terminal or DiracTerminal(state, registry)
        session  = session or ResolutionSession(executor, OllamaOracle(state=state), terminal)
    bridge = bridge or SignalBridge()
    bridge.start()

    if cfg.get("splash_on_start", True): show_banner()
    interactive = sys.stdin.isatty()
    read_task = signal_task = None
    try:
        with patch_stdout(raw=True):
            while True:
                if read_task is None:
                    read_task = asyncio.ensure_future(_next_line(terminal))
                if signal_task is None:
                    signal_task = asyncio.ensure_future(bridge.next_signal())
                done, _ = await asyncio.wait(
                    {read_task, signal_task}, return_when=asyncio.FIRST_COMPLETED)

                if signal_task in done:
                    on_signal(signal_task.result())
                    signal_task = None
                if read_task not in done:
                    continue
                line = read_task.result()
                read_task = None

                if line is INTERRUPTED:
                    warn(f"CTRL-C pressed. {EXIT_HINT}"); continue
                if line is END_OF_INPUT:
                    if interactive:
                        warn(f"CTRL-D pressed. {EXIT_HINT}"); continue
                    log.info("input stream closed")
                    break
                if isinstance(line, InputFailure):
                    err(escape(f"Error: {line.error}")); break

                line = line.strip()
                if not line: continue
                terminal.add_history(line)
                result = dispatch(line, registry)
                if result == EXIT:
                    ok("Goodbye."); break
                if result == HANDLED: continue
                await session.process(line)
    finally:
        for task in (read_task, signal_task):
            if task is not None: task.cancel()
        bridge.stop()


# ── Entry point ────────────────────────────────────────────────────────────────

@click.command(context_settings={"help_option_names": ["--help"]})
@click.option("--version", is_flag=True, help="Show version.")
def main(version):
    """DIRAC — AI-powered terminal.

    \b
    Shell commands run as usual; anything else is turned into a command
    by a local Ollama model and shown to you before it runs.
      dirac[home/me]> show me the biggest files here
    """
    if version:
        console.print(f"dirac {VERSION}", style=f"bold {CYAN}"); return
    setup_logging(cfg.get("log_level") or "WARNING")
    log.info("dirac %s starting in %s", VERSION, os.getcwd())
    asyncio.run(shell_loop())


if __name__ == "__main__":
    main()
