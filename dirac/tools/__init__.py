from dirac.tools.shell_runner import (
    COMMAND_TIMEOUT, MONITOR_COMMANDS,
    DirectoryState, CommandInvocation, ExecutionOutcome,
    CommandValidator, CommandExecutor, list_directory,
)
__all__ = [
    "COMMAND_TIMEOUT", "MONITOR_COMMANDS",
    "DirectoryState", "CommandInvocation", "ExecutionOutcome",
    "CommandValidator", "CommandExecutor", "list_directory",
]
