"""Errors raised by the thread service and its collaborators."""


class ThreadError(Exception):
    """Base error for comment-thread operations."""

    pass


class InvalidRequest(ThreadError):
    """The request combines references or parameters in a way that cannot be served."""

    pass


class NotFound(ThreadError):
    """A referenced user, media item or comment does not exist."""

    def __init__(self, resource: str, identifier: object):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class Forbidden(ThreadError):
    """The requester is not the author of the resource."""

    pass
