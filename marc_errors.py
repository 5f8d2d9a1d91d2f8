class MxError(Exception):
    """Base class for every error raised by the mxtool modules."""


class ParseFailure(MxError):
    """The input could not be parsed into an XML tree."""


class SchemaMismatch(MxError):
    """The input parsed but did not validate against the MARCXML schema."""


class SchemaLoadError(MxError):
    """The schema file is missing or is not a usable XML schema."""


class ContractViolation(MxError, ValueError):
    """A function was called with an element it does not accept.

    Raised for example when a record query receives an element whose tag is
    not ``record``. This points to a bug in the caller.
    """


class WriteFailure(MxError):
    """The output sink rejected a write."""


class SelectorError(MxError, ValueError):
    """A ``<field>=<regex>`` selection pattern is malformed."""
