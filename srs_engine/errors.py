"""Errors raised around the scheduling core."""


class StoreUnavailable(RuntimeError):
    """Loading from or saving to the review store failed."""


class ImportFormatInvalid(ValueError):
    """A progress snapshot could not be imported; nothing was applied."""
