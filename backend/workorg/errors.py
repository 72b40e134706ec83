class WorkorgError(Exception):
    """Base class for errors raised by the shared video subsystem."""


class VideoNotFound(WorkorgError):
    pass


class ProjectNotFound(WorkorgError):
    pass


class InvalidVideoReference(WorkorgError):
    def __init__(self, locator: str):
        super().__init__(f"Unrecognised video locator: {locator!r}")
        self.locator = locator


class AccessDenied(WorkorgError):
    pass


class StoreUnavailable(WorkorgError):
    pass


class TransportUnavailable(WorkorgError):
    pass
