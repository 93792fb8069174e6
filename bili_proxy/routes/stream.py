"""
Passthrough endpoint for the media urls written into the manifests.
Bilibili's CDN rejects requests without its Referer, so players fetch every segment through here.
Status, headers and body are relayed unchanged apart from hop-by-hop and origin-identifying headers.
"""

import logging
from urllib.parse import urlsplit

import requests
from flask import Blueprint, Response, abort, request, stream_with_context

from bili_proxy.utils.url_utils import unwrap_proxy_url
from config import Config

stream_bp = Blueprint('stream', __name__)

FORWARDED_REQUEST_HEADERS = ('Range', 'If-Range', 'If-None-Match', 'If-Modified-Since')

HOP_BY_HOP_HEADERS = {
    'connection', 'keep-alive', 'proxy-authenticate', 'proxy-authorization', 'proxy-connection',
    'te', 'trailer', 'trailers', 'transfer-encoding', 'upgrade',
}
ORIGIN_HEADERS = {'server', 'via', 'set-cookie', 'x-served-by', 'x-powered-by'}
ORIGIN_HEADER_PREFIXES = ('x-cache', 'x-upstream', 'bili-', 'access-control-')


def filter_response_headers(headers) -> dict:
    """Drop hop-by-hop and origin-identifying headers from an upstream response"""
    filtered = {}
    # requests decodes compressed bodies, so encoding and length no longer describe what is relayed
    encoded = any(name.lower() == 'content-encoding' for name in headers)
    for name, value in headers.items():
        lower = name.lower()
        if lower in HOP_BY_HOP_HEADERS or lower in ORIGIN_HEADERS:
            continue
        if lower.startswith(ORIGIN_HEADER_PREFIXES):
            continue
        if encoded and lower in ('content-encoding', 'content-length'):
            continue
        filtered[name] = value
    filtered['Access-Control-Allow-Origin'] = '*'
    filtered['Access-Control-Allow-Headers'] = 'Range, Content-Type'
    filtered['Access-Control-Expose-Headers'] = 'Content-Length, Content-Range, Accept-Ranges'
    return filtered


def is_allowed_host(url: str) -> bool:
    """Check the url points at one of the configured media hosts"""
    hostname = (urlsplit(url).hostname or '').lower()
    if not hostname:
        return False
    for suffix in Config.STREAM_ALLOWED_HOSTS:
        if hostname == suffix.lstrip('.') or (suffix.startswith('.') and hostname.endswith(suffix)):
            return True
    return False


def build_upstream_headers(incoming) -> dict:
    headers = {
        'User-Agent': Config.USER_AGENT,
        'Referer': Config.BILIBILI_REFERER,
        'Accept-Encoding': 'identity',
    }
    for name in FORWARDED_REQUEST_HEADERS:
        if name in incoming:
            headers[name] = incoming[name]
    return headers


@stream_bp.route('/proxy/bilibili/stream')
def stream():
    """
    Relay a media url produced by the manifest generator
    Query params:
    - url: the wrapped upstream url
    - id: the bvid the media belongs to
    """
    url, bvid = unwrap_proxy_url(request.query_string.decode('latin-1'))
    if not url:
        abort(400, 'Missing url parameter')
    if not url.startswith(('http://', 'https://')):
        abort(400, 'Wrong url')
    if not is_allowed_host(url):
        logging.warning(f"Refused stream target for {bvid}: {url}")
        abort(403, 'Forbidden host')

    try:
        upstream = requests.get(url, headers=build_upstream_headers(request.headers), stream=True,
                                timeout=(Config.UPSTREAM_TIMEOUT, Config.STREAM_TIMEOUT))
    except requests.exceptions.Timeout as e:
        logging.warning(f"Upstream timeout for {bvid}: {e}")
        abort(504, 'Upstream timeout')
    except requests.exceptions.RequestException as e:
        logging.error(f"Upstream error for {bvid}: {e}")
        abort(502, 'Upstream connection failed')

    def generate():
        try:
            for chunk in upstream.iter_content(chunk_size=Config.STREAM_CHUNK_SIZE):
                if chunk:
                    yield chunk
        finally:
            upstream.close()

    return Response(
        stream_with_context(generate()),
        status=upstream.status_code,
        headers=filter_response_headers(upstream.headers),
        direct_passthrough=True,
    )
