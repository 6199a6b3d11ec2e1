from typing import Hashable, Optional


class PaymentError(Exception):
    """Base for provider selection failures.

    Operation failures reported by a provider travel as results, never as
    these exceptions.
    """

    error_code = "PAYMENT_ERROR"
    status_code = 500
    transient = False

    def __init__(self, message: str, provider: Optional[Hashable] = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider


class ProviderNotFound(PaymentError):
    error_code = "PROVIDER_NOT_FOUND"
    status_code = 500

    def __init__(self, provider: Hashable) -> None:
        super().__init__(f"Provider {provider} is not registered", provider)


class ProviderUnavailable(PaymentError):
    error_code = "PROVIDER_UNAVAILABLE"
    status_code = 503
    transient = True

    def __init__(self, provider: Hashable) -> None:
        super().__init__(f"Provider {provider} is unavailable", provider)


class AllProvidersUnavailable(PaymentError):
    error_code = "ALL_PROVIDERS_UNAVAILABLE"
    status_code = 503
    transient = True

    def __init__(self) -> None:
        super().__init__("No payment providers are available")
