"""
Taxonomía de errores del libro de combustible.

Cada error conoce su código HTTP; main.py registra un único handler
que los convierte en {"detail": ..., "code": ...}.
"""


class FuelLedgerError(Exception):
    status_code = 500
    code = "fuel_ledger_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FuelLedgerError):
    status_code = 400
    code = "validation_error"


class InvalidOperation(FuelLedgerError):
    status_code = 400
    code = "invalid_operation"


class NotFound(FuelLedgerError):
    status_code = 404
    code = "not_found"


class CapacityExceeded(FuelLedgerError):
    status_code = 409
    code = "capacity_exceeded"


class InsufficientFuel(FuelLedgerError):
    status_code = 409
    code = "insufficient_fuel"


class FuelTypeMismatch(FuelLedgerError):
    status_code = 409
    code = "fuel_type_mismatch"


class TankNotActive(FuelLedgerError):
    status_code = 409
    code = "tank_not_active"


class Busy(FuelLedgerError):
    """Contención de locks: el cliente puede reintentar."""
    status_code = 503
    code = "busy"
    retry_after_seconds = 1


class LedgerInconsistency(FuelLedgerError):
    status_code = 500
    code = "ledger_inconsistency"
