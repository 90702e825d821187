"""Exception hierarchy.

Catalog and configuration errors are defects in the deployment and are
raised. Bad client input is never raised here: it travels as an
``Outcome`` error value (see ``contract_guard.validation.outcome``).
"""


class ContractGuardError(Exception):
    """Base class for every error raised by contract_guard."""


class ConfigurationError(ContractGuardError):
    """Invalid startup configuration (e.g. an unsupported schema draft)."""


class SchemaParseError(ConfigurationError):
    """The schema document is not valid structured data."""


class CatalogError(ContractGuardError):
    """The rule catalog does not match the way it is being used."""


class CatalogFormatError(CatalogError):
    """A declarative catalog entry could not be parsed."""


class UnknownOperationError(CatalogError):
    def __init__(self, operation: str):
        super().__init__(f"unknown operation {operation!r}")
        self.operation = operation


class UnknownParameterError(CatalogError):
    def __init__(self, operation: str, name: str):
        super().__init__(f"unknown parameter {name!r} for operation {operation!r}")
        self.operation = operation
        self.name = name


class UnknownRuleError(CatalogError):
    def __init__(self, rule):
        super().__init__(f"unknown validation rule {rule!r}")
        self.rule = rule


class BodyDecodeError(ContractGuardError):
    """The request body could not be decoded as JSON."""

    def __init__(self, body: bytes, reason: str):
        super().__init__(f"invalid JSON body: {reason}")
        self.body = body
        self.reason = reason


class ParamValidationError(ContractGuardError):
    """Raised by ``Outcome.unwrap()`` when the outcome carries an error."""

    def __init__(self, error):
        super().__init__(str(error))
        self.error = error
