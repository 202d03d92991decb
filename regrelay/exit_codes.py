"""
Standard exit codes for regrelay commands.

Following Unix/POSIX conventions for command-line tools.
"""
# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
TOOL_UNAVAILABLE = 64    # skopeo could not be executed
REGISTRY_ERROR = 65      # Registry API call failed (tag listing)
CONFIG_ERROR = 66        # Configuration file error
PARTIAL_FAILURE = 71     # Some tags synced, some failed


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class ToolUnavailableError(CommandError):
    """Raised when the skopeo version probe fails."""
    def __init__(self, message: str):
        super().__init__(message, TOOL_UNAVAILABLE)


class TagExpansionError(CommandError):
    """Raised when the source tag list cannot be fetched."""
    def __init__(self, message: str):
        super().__init__(message, REGISTRY_ERROR)


class InvalidPlatformError(CommandError):
    """Raised when a platform string is not 'all' or os/arch[/variant]."""
    def __init__(self, message: str):
        super().__init__(message, USAGE_ERROR)


class PartialFailureError(CommandError):
    """
    Raised when at least one tag of a sync batch failed.

    Every tag was still attempted. The full per-tag outcome list is
    available on ``result``.
    """
    def __init__(self, message: str, result=None, succeeded: int = 0, failed: int = 0):
        super().__init__(message, PARTIAL_FAILURE)
        self.result = result
        self.succeeded = succeeded
        self.failed = failed
