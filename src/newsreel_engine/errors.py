"""Pipeline exception hierarchy.

Fatal errors (preconditions, data integrity) are never retried by the step
runner; everything else is treated as transient.
"""


class PipelineError(Exception):
    """Base class for pipeline failures."""


class PreconditionError(PipelineError):
    """The video is not in a state that allows this pipeline to run."""


class PipelineBusyError(PreconditionError):
    """Another pipeline instance already holds the video."""


class DataIntegrityError(PipelineError):
    """Persisted or generated data is missing or malformed."""


class GridDecodeError(DataIntegrityError):
    """A composite grid image could not be decoded."""


class RenderError(PipelineError):
    """The composition renderer failed or produced an invalid file."""


class PublishError(PipelineError):
    """The publisher rejected the upload or failed to complete it."""


class TaskBatchError(PipelineError):
    """One or more tasks in a bounded batch failed.

    Attributes:
        errors: Failed task index mapped to its exception
    """

    def __init__(self, message: str, errors: dict[int, BaseException]) -> None:
        super().__init__(message)
        self.errors = errors

    @property
    def failed_indices(self) -> list[int]:
        return sorted(self.errors)


FATAL_ERRORS: tuple[type[Exception], ...] = (PreconditionError, DataIntegrityError)
