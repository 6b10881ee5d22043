class ConfigurationError(Exception):
    """Raised at startup when the process cannot serve requests as configured."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
