"""External command execution for every pipeline stage."""

from clipshare.executor.exceptions import (
    ProcessExitFailure,
    ProcessFailure,
    ProcessTimeout,
    SpawnFailure,
)
from clipshare.executor.interface import CommandRunner, ProcessResult, RunOptions
from clipshare.executor.process import ProcessExecutor, terminate_process

__all__ = [
    "CommandRunner",
    "ProcessExecutor",
    "ProcessExitFailure",
    "ProcessFailure",
    "ProcessResult",
    "ProcessTimeout",
    "RunOptions",
    "SpawnFailure",
    "terminate_process",
]
