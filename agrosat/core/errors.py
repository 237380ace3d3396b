class AgroSatError(Exception):
    """Base error; rendered as {"success": false, "message": ...}."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequest(AgroSatError):
    status_code = 400


class NotFoundError(AgroSatError):
    status_code = 404


class CredentialsNotConfigured(AgroSatError):
    """Raised when a vendor section of the credential store is missing or disabled."""

    def __init__(self, vendor: str):
        super().__init__(f"{vendor} credentials not configured")
        self.vendor = vendor


class VendorError(AgroSatError):
    """A third-party API answered with an error or could not be reached."""
