"""Process exit codes for the clipshare CLI."""

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    GENERAL_ERROR = 1
    INVALID_ARGUMENTS = 2
    NOT_FOUND = 3
    JOB_FAILED = 4
    DATABASE_ERROR = 5
