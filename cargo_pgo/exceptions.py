"""
Custom exceptions for build orchestration, profile handling and external tools.
"""


class CargoPgoError(Exception):
    """Base exception for all cargo-pgo errors.

    Anything derived from this is reported to the user and terminates the
    process with exit code 1.
    """

    pass


class ResolutionError(CargoPgoError):
    """Default host target triple cannot be determined."""

    pass


class ArgumentError(CargoPgoError):
    """Invalid Cargo arguments (currently only warnings are emitted)."""

    pass


class BuildError(CargoPgoError):
    """Wrapped Cargo invocation exited with a non-zero status."""

    def __init__(self, returncode: int, stderr: str, transcript: str):
        self.returncode = returncode
        self.stderr = stderr
        self.transcript = transcript
        super().__init__(
            f"Cargo error (exit status {returncode})\n{stderr}\n{transcript}"
        )


class DecodeError(CargoPgoError):
    """Cargo JSON message stream is malformed."""

    pass


class DirectoryError(CargoPgoError):
    """Profile directory cannot be prepared."""

    pass


class InstrumentationError(CargoPgoError):
    """External binary rewriting tool failed for an artifact."""

    pass


class ToolNotFoundError(CargoPgoError):
    """Required external tool is not installed or not on PATH."""

    def __init__(self, tool: str, hint: str | None = None):
        self.tool = tool
        self.hint = hint
        message = f"Cannot find `{tool}`"
        if hint:
            message += f"\nHint: {hint}"
        super().__init__(message)


class WorkspaceError(CargoPgoError):
    """Cargo workspace metadata cannot be obtained."""

    pass


class ProfileError(CargoPgoError):
    """Gathered profiles are missing or cannot be merged."""

    pass
