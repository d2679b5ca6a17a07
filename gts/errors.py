# gts/errors.py


class GoodsTrackingError(Exception):
    """Base class for failures raised by the goods-tracking core."""
    status_code = 500


class Unauthenticated(GoodsTrackingError):
    """No caller identity is available."""
    status_code = 401


class InvalidInput(GoodsTrackingError):
    status_code = 400


class NotFound(GoodsTrackingError):
    status_code = 404


class StorageUnavailable(GoodsTrackingError):
    """The local store could not be read or written."""
    status_code = 503


class RemoteUnavailable(GoodsTrackingError):
    status_code = 503
