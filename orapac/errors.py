"""Exceptions raised by orapac. rc is the exit code the command line tools use."""


class OrapacError(Exception):
    """Base class. Carries a message and an exit code."""

    def __init__(self, message, rc=1):
        super(OrapacError, self).__init__(message)
        self.message = message
        self.rc = rc

    def __str__(self):
        return self.message


class LoggyError(OrapacError):
    pass


class DiscoveryError(OrapacError):
    pass


class SshError(OrapacError):
    pass


class SqlError(OrapacError):
    pass


class JsonValueError(OrapacError):
    pass


class OratabError(OrapacError):
    pass


class LockError(OratabError):
    pass


class RelocationError(OrapacError):
    pass
