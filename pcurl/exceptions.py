class PcurlError(Exception):
    """Base class for failures that end the process with exit code 1."""

    def error_line(self) -> str:
        return f"Error: {self}"


class UsageError(PcurlError):
    """The command line could not be parsed."""


class RequestSetupError(PcurlError):
    """The request failed before it could be dispatched."""


class NoResponseError(PcurlError):
    """The request was sent but no response came back."""

    def error_line(self) -> str:
        return "Error: No response received from server."


class ResponseError(PcurlError):
    """The server answered but the HTTP library still reported a failure."""

    def __init__(self, status_code: int, status_text: str):
        super().__init__(f"{status_code} {status_text}")
        self.status_code = status_code
        self.status_text = status_text
