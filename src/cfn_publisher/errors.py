"""Exceptions raised by the packaging pipeline."""


class PublisherError(Exception):
    """Base class for pipeline failures. Any of these aborts the run."""
    pass


class BucketProvisioningError(PublisherError):
    """The target bucket could not be verified or created"""
    pass


class PreprocessError(PublisherError):
    """A template listed for substitution could not be rewritten"""
    pass


class ArchiveError(PublisherError):
    """An archive could not be built"""
    pass


class PackagingError(PublisherError):
    """The template packaging service failed for a template"""

    def __init__(self, message: str, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr


class PublishError(PublisherError):
    """An upload, delete or tagging call against S3 failed"""
    pass


class StackError(PublisherError):
    """A CloudFormation stack operation failed"""
    pass
