"""Exception hierarchy for the deskframe server.

Route handlers translate these into JSON error responses; everything else
propagates so failures stay visible in the logs.
"""


class DeskFrameError(Exception):
    """Base exception for all deskframe server errors.

    Carries the HTTP status a route handler should answer with when the
    error reaches the API layer.
    """

    status_code = 500


class DecodeError(DeskFrameError):
    """Uploaded media could not be parsed.

    Raised when:
    - The payload is not a supported image container
    - The image header is valid but pixel data is truncated or corrupt
    - An animated container yields no decodable frame

    Should result in HTTP 400 Bad Request response.
    """

    status_code = 400


class ContentValidationError(DeskFrameError):
    """A content request was structurally invalid.

    Raised when:
    - JSON body is missing or malformed
    - Field values fail model validation
    - A multipart upload has no file part

    Should result in HTTP 400 Bad Request response.
    """

    status_code = 400


class ResampleBoundsError(DeskFrameError):
    """A requested frame cap is outside the supported range.

    Raised by the strict validator only; the public resampling entry points
    clamp the cap instead, so this never reaches a client.
    """

    status_code = 400


class NoContentError(DeskFrameError):
    """No frame is available to serve yet.

    Should result in HTTP 503 Service Unavailable response.
    """

    status_code = 503
