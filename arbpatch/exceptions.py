"""This module contains general exceptions used by arbpatch."""


class ArbPatchBaseException(Exception):
    """The arbpatch exception base type."""

    pass


class CriticalError(ArbPatchBaseException):
    """An arbpatch exception denoting an invalid configuration or setup."""

    pass


class DuplicatePrecompileError(ArbPatchBaseException):
    """An arbpatch exception denoting that a precompile address was registered
    twice."""

    pass


class PrecompileError(ArbPatchBaseException):
    """The base type of all errors a precompile call can fail with.

    These are reported to the caller as a failed call, they never abort the
    host.
    """

    pass


class UnknownPrecompile(PrecompileError):
    """No handler is registered at the called address."""

    pass


class UnknownSelector(PrecompileError):
    """The 4-byte selector does not match any function of the handler."""

    pass


class InvalidCalldata(PrecompileError):
    """The calldata is too short or has the wrong number of fields."""

    pass


class InvalidArgument(PrecompileError):
    """An argument (address, value) could not be decoded."""

    pass


class InvalidTupleLength(PrecompileError):
    """A price tuple with other than six elements was supplied."""

    pass


class DepositCodecError(ArbPatchBaseException):
    """The base type of errors raised by the deposit transaction codec."""

    pass


class MalformedEnvelope(DepositCodecError):
    """The envelope marker is missing or the payload is not valid RLP."""

    pass


class FieldCountMismatch(DepositCodecError):
    """The RLP payload does not hold exactly eight fields."""

    pass


class FieldTypeMismatch(DepositCodecError):
    """A field could not be coerced to its expected type or width."""

    pass


class ValidationError(DepositCodecError):
    """A decoded deposit transaction violates one or more semantic rules."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("Validation failed: {}".format(", ".join(self.errors)))


class ConfigFetchFailed(ArbPatchBaseException):
    """Fetching configuration from a live network failed.

    The config resolver recovers from this by falling through to the next
    source.
    """

    pass
