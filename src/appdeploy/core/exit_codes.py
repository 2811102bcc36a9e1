"""Process exit codes reported to the orchestrating management system."""

SUCCESS = 0
CONFIG_ERROR = 1
USAGE_ERROR = 2
INTERRUPTED = 130

# Passed through to the management system only when reboot pass-through is allowed
RESTART_REQUIRED = 3010
RESTART_INITIATED = 1641

# Built-in failures, from the reserved 60000-68999 block
FATAL_ERROR = 60001
TOOLKIT_LOAD_FAILURE = 60008


def is_restart(code: int) -> bool:
    """Check whether an exit code asks for a restart."""
    return code in (RESTART_REQUIRED, RESTART_INITIATED)
