class BitlyError(Exception):
    """Base class for everything this package raises"""


class RequestError(BitlyError):
    """The API answered with a non-success status, or not at all"""

    def __init__(self, status: str | None, body: str, message: str | None = None):
        self.status = status
        self.body = body
        self.message = message or body or "request failed"
        super().__init__(self.message)

    def __str__(self):
        if self.status is None:
            return self.message
        return f"[{self.status}] {self.message}"
