"""Errors raised while converting an archive of documents into a spreadsheet."""


class ArchiveProcessingError(Exception):
    """Base class for every failure that aborts a conversion."""

    kind = "processing_failure"


class InputFormatError(ArchiveProcessingError):
    """The uploaded content is not a ZIP archive."""

    kind = "not_an_archive"


class NoDataError(ArchiveProcessingError):
    """The archive has no matching documents, or they produced no rows."""

    kind = "no_data"


class DocumentParseError(ArchiveProcessingError):
    """An archive entry is not valid JSON text."""

    kind = "document_parse_failure"

    def __init__(self, message: str, entry_name: str = ""):
        super().__init__(message)
        self.entry_name = entry_name


class OutputWriteError(ArchiveProcessingError):
    """The spreadsheet could not be written to its destination."""

    kind = "output_write_failure"
