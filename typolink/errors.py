class TypoLinkError(Exception):
    pass

class ConfigurationError(TypoLinkError, ValueError):
    """Invalid training input or kernel parameter. Raised before any work is done."""

class UnsupportedKernelError(TypoLinkError, ValueError):
    """A model whose kernel cannot be written, or a stored model with an unknown kernel tag."""

class DetectorNotReadyError(TypoLinkError, RuntimeError):
    pass
