"""
Exception hierarchy for the job engine and its collaborators.
"""


class JobError(Exception):
    """Base error for job execution."""
    pass


class JobNotFoundError(JobError):
    """Raised for a job name that is not in the registry."""

    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(f"{job_name} is not a valid job")


class OutputReadError(JobError):
    """A cached job output exists but could not be read or parsed."""
    pass


class PublishError(JobError):
    """Publishing a job output to the remote store failed."""

    def __init__(self, message: str, errors=None):
        self.errors = errors or []
        super().__init__(message)


class UpstreamError(JobError):
    """Source data could not be fetched from an upstream provider."""
    pass


class CyclicCategoryError(Exception):
    """The item parent graph loops back on itself."""

    def __init__(self, path):
        self.path = list(path)
        super().__init__(f"Cyclic category graph: {' -> '.join(self.path)}")
