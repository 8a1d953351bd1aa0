"""Caller-visible error types raised by services and the search engine."""


class InvalidParameter(ValueError):
    """A request parameter is missing, malformed or refers to nothing."""
    code = "INVALID_PARAMETER"


class InvalidRequest(ValueError):
    """The parameters are well formed but the operation is not allowed."""
    code = "INVALID_REQUEST"
