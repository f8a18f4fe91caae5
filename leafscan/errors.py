class LeafScanError(ValueError):
    pass


class FatalError(LeafScanError):
    """Aborts the whole scan."""


class BadMagic(FatalError):
    pass


class UnsupportedPageSize(FatalError):
    pass


class UnreadableFile(FatalError):
    pass


class StructuralError(LeafScanError):
    """
    Raised by the decoders for a page or cell that cannot be read.
    The scanner skips the offending unit and keeps going.
    """


class TruncatedInput(StructuralError):
    pass


class OverflowNotSupported(StructuralError):
    pass


class InvalidCellPointer(StructuralError):
    pass


class MalformedRecord(StructuralError):
    pass


class NotAccessible(Exception):
    """Raised by a secret-reveal callable that cannot recover the plaintext."""
