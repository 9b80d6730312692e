"""Exceptions raised by the import pipeline."""

from __future__ import annotations


class ImportPipelineError(Exception):
    """Base class for failures that stop a whole pipeline phase."""


class JobNotFoundError(ImportPipelineError, LookupError):
    def __init__(self, job_id: str):
        super().__init__(f"Import job {job_id} not found")
        self.job_id = job_id


class FileLoadError(ImportPipelineError, ValueError):
    """The uploaded export could not be read back from storage."""


class EmptyFileError(ImportPipelineError, ValueError):
    """The export has no header row."""


class UnsupportedDialectError(ImportPipelineError):
    def __init__(self, dialect: str):
        super().__init__(f"Upserts need ON CONFLICT support; {dialect!r} is not supported")
        self.dialect = dialect
