"""Exceptions raised by the readmission risk pipeline."""


class ValidationError(ValueError):
    """
    Raised when a patient record cannot be turned into features.

    Covers missing or non-numeric required fields, negative counts,
    unparseable timestamps and a discharge that precedes admission.
    Callers scoring a batch are expected to catch it per record.
    """

    def __init__(self, message, field=None):
        self.field = field
        super().__init__(message)
