"""Error kinds raised by the pipeline stages.

Per-architecture errors (hashing, packaging, upload) are caught by the
orchestrator and recorded; they never abort the other architectures.
"""


class PipelineError(Exception):
    """Base class for every pipeline failure."""


class HashError(PipelineError):
    """The source binary could not be read to completion."""


class RegistryUnavailable(PipelineError):
    """The registry could not answer; callers treat this as "not found"."""


class PackagingError(PipelineError):
    """The archive for one architecture could not be built."""


class UploadFailure(PipelineError):
    """Transport error, non-2xx status, or a malformed upload response."""


class WriteError(PipelineError):
    """The manifest could not be persisted."""


class ConfigInvalid(PipelineError, ValueError):
    """A library policy was rejected before the pipeline ran."""
