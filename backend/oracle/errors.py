from __future__ import annotations


class OracleUnavailableError(Exception):
    """Provider could not answer: timeout, transport failure or rate limit."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
