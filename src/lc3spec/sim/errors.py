class LC3Error(Exception):
    """Base class for everything raised by lc3spec."""


class NormalizationError(LC3Error, ValueError):
    pass


class InvalidRegister(LC3Error, ValueError):
    pass


class InvalidValue(LC3Error, ValueError):
    pass


class InvalidConditionCode(InvalidValue):
    pass


class InvalidAddress(LC3Error, ValueError):
    pass


class InvalidFilename(LC3Error, ValueError):
    pass


class LabelExistsError(LC3Error, ValueError):
    pass


class DoesNotAssembleError(LC3Error):
    """Staging failure: missing file, empty object file or assembler error."""


class ExecutionTimeout(LC3Error, TimeoutError):
    pass


class SimulatorError(LC3Error):
    """The simulator process could not be started, exited, or never connected back."""


class ClientDesynchronized(LC3Error):
    """A command was issued after a timeout left the reply stream mid-command."""
