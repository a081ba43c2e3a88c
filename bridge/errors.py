"""Error taxonomy shared by the server, the dispatchers and the command builder."""


class BridgeError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BridgeError):
    """Missing printer name, missing or ambiguous payload. Never dispatched."""

    status_code = 400


class ImageDecodeError(BridgeError):
    """Logo could not be fetched or decoded. Handled by the command builder."""


class PrintDispatchError(BridgeError):
    """The OS (or the network printer) refused or failed the raw job."""

    status_code = 500


class EnumerationFailure(BridgeError):
    """Printer query failed. Dispatchers turn this into an empty list."""
