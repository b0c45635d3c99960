"""Exceptions raised when a document cannot be processed at all.

Recoverable problems never raise; they are counted by
:class:`api_codegen_universal.diagnostics.WarningsCollector` instead.
"""


class CodegenError(Exception):
    """Base exception for fatal pipeline errors."""

    def __init__(self, message: str, location: str | None = None) -> None:
        self.location = location
        full_message = message if not location else f"[{location}] {message}"
        super().__init__(full_message)


class DocumentShapeError(CodegenError):
    """Raised when the input is not a recognizable document shape."""


class InvalidDocumentError(CodegenError):
    """Raised by structural validation when a required key is missing."""


class UnknownFormatError(CodegenError):
    """Raised when a document matches none of the supported formats."""


class ReferenceNotFound(CodegenError):
    """Raised when a pointer cannot be resolved against the document root."""

    def __init__(self, pointer: str, segment: str | None = None) -> None:
        self.pointer = pointer
        self.segment = segment
        if segment is None:
            message = f"Cannot resolve reference '{pointer}'"
        else:
            message = f"Cannot resolve reference '{pointer}': missing segment '{segment}'"
        super().__init__(message)
