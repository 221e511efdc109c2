"""
Typed exception hierarchy for the close kernel.

The schedule engines themselves never raise for degenerate numbers or
dates: an asset with no depreciable basis depreciates 0, a contract with
no overlap earns 0.  Exceptions exist only at the boundaries around the
engines, where plain persistence rows become typed instruments and where
engine settings are loaded.

    CloseKernelError (base)
    |
    +-- InstrumentError
    |   +-- InvalidInstrumentError
    |   +-- UnknownMethodError
    |
    +-- ConfigError
        +-- ConfigLoadError
        +-- InvalidSettingError

Code                  | When raised
----------------------|------------------------------------------------
INVALID_INSTRUMENT    | Record field missing or not parseable
UNKNOWN_METHOD        | Method/type tag outside the closed set
CONFIG_LOAD_FAILED    | Settings file missing or not valid YAML
INVALID_SETTING       | Unknown settings key or value out of range

Every exception carries a ``code`` class attribute and stores its context
as attributes, so callers catch by type and report structured data.
"""


class CloseKernelError(Exception):
    """
    Base exception for all close kernel errors.

    All subclasses have a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "CLOSE_KERNEL_ERROR"


# Instrument record exceptions


class InstrumentError(CloseKernelError):
    """Base exception for instrument record problems."""

    code: str = "INSTRUMENT_ERROR"


class InvalidInstrumentError(InstrumentError):
    """A record field is missing or cannot be converted."""

    code: str = "INVALID_INSTRUMENT"

    def __init__(self, instrument: str, field: str, reason: str):
        self.instrument = instrument
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {instrument} field '{field}': {reason}")


class UnknownMethodError(InstrumentError):
    """A method or type tag is not one of the supported values."""

    code: str = "UNKNOWN_METHOD"

    def __init__(self, kind: str, value: str, allowed: tuple[str, ...]):
        self.kind = kind
        self.value = value
        self.allowed = allowed
        super().__init__(
            f"Unknown {kind} '{value}'; expected one of: {', '.join(allowed)}"
        )


# Configuration exceptions


class ConfigError(CloseKernelError):
    """Base exception for engine settings problems."""

    code: str = "CONFIG_ERROR"


class ConfigLoadError(ConfigError):
    """Settings file could not be read or parsed."""

    code: str = "CONFIG_LOAD_FAILED"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load settings from {path}: {reason}")


class InvalidSettingError(ConfigError):
    """A settings key is unknown or its value is out of range."""

    code: str = "INVALID_SETTING"

    def __init__(self, key: str, value: object, reason: str):
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid setting {key}={value!r}: {reason}")
