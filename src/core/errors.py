# src/core/errors.py — v1
"""Error taxonomy for per-shipment and run-level failures.

Every per-shipment error carries the three attributes the aggregator
copies onto an orphaned shipment:

  - error_type:     stable machine name (ValidationError, MappingError, ...)
  - error_category: human-readable group shown next to the reason
  - retryable:      whether the retry handler may re-invoke the quote call

Run-level errors (NoCarrierConfiguredError) abort before any shipment
is processed. Everything else is recorded and the batch continues.
"""

from __future__ import annotations

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 503})


class RateShopError(Exception):
    """Base class for all engine errors."""

    error_type: str = "ProcessingError"
    error_category: str = "Unknown"
    retryable: bool = False


# === SHIPMENT DATA ===


class ShipmentValidationError(RateShopError):
    """Missing or invalid shipment fields. Fatal for the shipment, never retried."""

    error_type = "ValidationError"
    error_category = "Data Validation"

    def __init__(self, message: str, missing_fields: list[str] | None = None):
        self.missing_fields = list(missing_fields or [])
        super().__init__(message)


class MissingFieldsError(ShipmentValidationError):
    """One aggregated error for every required field that is absent or unusable."""

    def __init__(self, missing_fields: list[str]):
        super().__init__(
            f"Missing required fields: {', '.join(missing_fields)}",
            missing_fields=missing_fields,
        )


class InvalidZipError(ShipmentValidationError):
    """ZIP code has fewer than 4 digits once non-digits are stripped."""

    error_category = "ZIP Code Format"

    def __init__(self, field_label: str, raw_value: str):
        self.field_label = field_label
        self.raw_value = raw_value
        super().__init__(
            f"Invalid {field_label} ZIP code {raw_value!r}: must contain at least 4 digits",
        )


class MappingError(RateShopError):
    """No confirmed service mapping for the shipment's service name."""

    error_type = "MappingError"
    error_category = "Service Mapping"

    def __init__(self, service: str):
        self.service = service
        super().__init__(
            f"No confirmed service mapping found for {service!r}. "
            "Confirm the service mapping before analysis."
        )


# === CARRIER RESPONSES ===


class CarrierAPIError(RateShopError):
    """A carrier integration answered with an error."""

    error_type = "CarrierAPIError"
    error_category = "Carrier API Communication"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        carrier_id: str | None = None,
    ):
        self.status_code = status_code
        self.carrier_id = carrier_id
        super().__init__(message)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code in RETRYABLE_STATUS_CODES


class NetworkError(CarrierAPIError):
    """Timeout or transport failure talking to a carrier."""

    error_type = "NetworkError"
    error_category = "Network/Timeout"

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return True


class NoRatesReturnedError(RateShopError):
    """Carriers responded, but with zero usable rates."""

    error_type = "NoRatesReturned"
    error_category = "Carrier Rate Response"

    def __init__(self, message: str = "No rates returned from any carrier"):
        super().__init__(message)


class InvalidRateDataError(RateShopError):
    """A returned rate has no price."""

    error_type = "InvalidRateData"
    error_category = "Data Format"


# === RUN LEVEL ===


class NoCarrierConfiguredError(RateShopError):
    """Zero valid carrier configurations — the run cannot start."""

    error_type = "NoCarrierConfigured"
    error_category = "Configuration"


class InvalidTransitionError(RateShopError):
    """Illegal state machine transition for a shipment or a run."""


class AnalysisStopped(RateShopError):
    """Raised inside a shipment task when the run was stopped before its quote call."""


class RetryExhausted(RateShopError):
    """Quote call failed terminally, either non-retryable or out of attempts."""

    def __init__(self, last_error: Exception, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(
            f"Failed after {attempts} attempt(s): {last_error}"
        )

    @property
    def error_type(self) -> str:  # type: ignore[override]
        return getattr(self.last_error, "error_type", "ProcessingError")

    @property
    def error_category(self) -> str:  # type: ignore[override]
        return getattr(self.last_error, "error_category", "Unknown")
