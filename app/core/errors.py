from __future__ import annotations


class BillingError(Exception):
    """Base class for billing failures. `status_code` is the HTTP status a route answers with."""

    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ConfigurationError(BillingError):
    status_code = 500


class AuthenticationFailure(BillingError):
    status_code = 400


class MissingSignature(AuthenticationFailure):
    pass


class InvalidSignature(AuthenticationFailure):
    pass


class MalformedEvent(BillingError):
    status_code = 400


class CorrelationMissing(BillingError):
    status_code = 500


class RecordNotFound(BillingError):
    status_code = 500


class StoreReadFailure(BillingError):
    status_code = 500


class StoreWriteFailure(BillingError):
    status_code = 500


class ProviderError(BillingError):
    status_code = 502
