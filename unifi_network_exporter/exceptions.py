class UnifiExporterError(Exception):
    """Base exception for unifi_network_exporter errors."""

    pass


class UnifiAuthenticationError(UnifiExporterError):
    """Raised when logging in to the UniFi Controller fails or a session cannot be renewed."""

    pass


class UnifiAPIError(UnifiExporterError):
    """Raised when the UniFi Controller answers with an error status."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        message = f"Controller responded with HTTP {status}"
        if body:
            message = f"{message}: {body}"
        super().__init__(message)


class UnifiTransportError(UnifiExporterError):
    """Raised when the UniFi Controller cannot be reached (network, TLS or timeout)."""

    pass


class UnifiDataError(UnifiExporterError):
    """Raised when a response from the UniFi Controller cannot be parsed."""

    pass


class UnifiConfigError(UnifiExporterError):
    """Raised when the exporter configuration is invalid."""

    pass
