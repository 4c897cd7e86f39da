from __future__ import annotations


class InvalidFeedError(ValueError):
    """Raised when a document cannot be read as an Atom, RSS or RDF feed."""

    code = "INVALID_FEED"

    def __init__(
        self, message: str = "The XML document could not be parsed as a feed"
    ) -> None:
        super().__init__(message)
        self.message = message
