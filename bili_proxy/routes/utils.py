import logging

from flask import jsonify, Response

from bili_proxy.api.errors import BilibiliError, InvalidIdentifier, NoStreamsAvailable, UpstreamError, UpstreamTimeout


def log_error(err):
    """
    Logs errors raised while resolving a video
    """
    if isinstance(err, UpstreamError):
        status = f" [{err.status}]" if err.status is not None else ""
        logging.error(f"Upstream error in step '{err.step}'{status} -> {err.message}")
    elif isinstance(err, BilibiliError):
        logging.error(f"{err.__class__.__name__} -> {err}")
    else:
        logging.exception(f"An unexpected error occurred: {err}")


def status_for_error(err) -> int:
    if isinstance(err, InvalidIdentifier):
        return 400
    if isinstance(err, NoStreamsAvailable):
        return 404
    if isinstance(err, UpstreamTimeout):
        return 504
    if isinstance(err, BilibiliError):
        return 502
    return 500


# Enable CORS
def respond_with(data: dict, status: int = 200, cache_time: int = None) -> Response:
    """
    Respond with CORS headers to the client
    """
    resp = jsonify(data)
    resp.status_code = status
    if cache_time:
        resp.headers['Cache-Control'] = f'public, max-age={cache_time}'
    else:
        resp.headers['Cache-Control'] = 'no-store'
    resp.headers['Access-Control-Allow-Origin'] = "*"
    resp.headers['Access-Control-Allow-Headers'] = '*'
    return resp


def ok(data, message: str = "success") -> Response:
    return respond_with({'code': 0, 'message': message, 'data': data})


def fail(message: str, status: int = 500, data=None) -> Response:
    return respond_with({'code': status, 'message': message, 'data': data}, status=status)
