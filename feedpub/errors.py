"""
Pipeline error taxonomy.

Every stage wraps the exceptions of the library it drives into one of these
types, so the orchestrator can log a cycle failure by category. None of them
is retried inside a cycle: the cursor is left untouched and the next tick
starts over.
"""


class PipelineError(Exception):
    """Base class for every error that aborts a publishing cycle."""


class SourceError(PipelineError):
    """Feed query, media download or transcode failure."""


class ProbeParseError(PipelineError):
    """The prober's diagnostic output no longer matches the expected patterns."""


class UploadError(PipelineError):
    """Content store rejected an upload or could not be reached.

    Safe to retry on the next cycle: the store is addressed by content, so a
    re-upload of identical bytes returns the identical digest.
    """


class CursorError(PipelineError):
    """The persisted cursor is absent or its store is unavailable."""


class AnchorError(PipelineError):
    """Identity derivation, signing, broadcast or receipt failure on the ledger."""
