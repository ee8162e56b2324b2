

class PreviewError(Exception):
    """ Base class for all codepreview errors"""
    pass

class PreviewConfigError(PreviewError):
    """ Raised when language configuration data is malformed"""
    pass

class PreviewUnboundName(PreviewError):
    """ Raised when a variable is read before it is assigned"""

class InputProtocolError(PreviewError):
    """ Raised when an input request is issued while another is still pending"""

class BackendUnavailable(PreviewError):
    """ Raised when the full-fidelity runtime cannot be loaded"""

class RunCancelled(PreviewError):
    """ Raised inside a backend run once the user has stopped it"""
