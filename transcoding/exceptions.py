class TranscodeError(Exception):
    """Base class for failures that end a transcode job."""


class SourceRejected(TranscodeError):
    """The source is outside what the pipeline accepts (e.g. above the height cap)."""


class NoRenditionsProduced(TranscodeError):
    """Every rendition in the ladder failed to encode."""
