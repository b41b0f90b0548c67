"""Exception hierarchy for the fixed-layout codec."""

from __future__ import annotations


class CodecError(Exception):
    """
    Base exception for all codec errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class CodecTypeError(CodecError):
    """Raised when a codec type is incorrectly defined."""


class CodecValueError(CodecError):
    """Raised when a value does not fit the type it is assigned to."""


class CodecDecodeError(CodecError):
    """
    Raised when a byte buffer cannot be decoded into the requested type.

    Attributes:
        type_name: The type that was being decoded.
        expected: The number of bytes the type requires.
        actual: The number of bytes that were supplied.
    """

    def __init__(
        self,
        type_name: str,
        *,
        expected: int | None = None,
        actual: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.type_name = type_name
        self.expected = expected
        self.actual = actual

        if detail is not None:
            msg = f"Cannot decode {type_name}: {detail}"
        else:
            msg = f"{type_name} requires exactly {expected} bytes, got {actual}"

        super().__init__(msg)
