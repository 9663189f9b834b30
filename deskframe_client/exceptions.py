"""Exception hierarchy for the display client.

None of these ever reach the display: the playback engine turns them into
state transitions (fall back, retry, back off, reconnect).
"""


class DeviceClientError(Exception):
    """Base exception for display client errors."""


class FetchError(DeviceClientError):
    """A request to the server did not produce a usable response.

    Raised when:
    - The connection fails or is reset
    - The request exceeds its timeout
    - The server answers with a non-2xx status
    """


class ParseError(FetchError):
    """The response body was malformed.

    Raised when:
    - The body is not JSON or not a JSON object
    - A bulk response announces animation but carries no usable frame

    A subclass of FetchError so callers handle both the same way.
    """


class LinkLossError(DeviceClientError):
    """The link to the server dropped. Forces the engine back to Connecting."""
