"""Exceptions raised by the Modula client."""


class ModulaError(Exception):
    """Base class for Modula client errors."""


class NotAuthenticatedError(ModulaError):
    """No bearer token is stored locally."""

    def __init__(self, message: str = 'You need to log in first with "modula login".'):
        super().__init__(message)


class TreeError(ModulaError):
    """A node tree is malformed."""


class TreeDepthError(TreeError):
    """A directory tree nests deeper than the allowed maximum."""

    def __init__(self, path: str, max_depth: int):
        self.path = path
        self.max_depth = max_depth
        super().__init__(f"Directory tree deeper than {max_depth} levels at: {path}")
