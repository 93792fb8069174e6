"""
Percent-encoding helpers and the proxy url codec used to route media traffic back through this service.
"""

import re
from urllib.parse import quote, unquote

# encodeURIComponent leaves these unescaped on top of alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"
_MALFORMED_ESCAPE = re.compile(r'%(?![0-9A-Fa-f]{2})')


def encode_uri_component(value: str) -> str:
    return quote(str(value), safe=_URI_COMPONENT_SAFE)


def decode_uri_component(value: str) -> str:
    """
    Strict percent-decoding
    :raises ValueError: on a malformed escape or on bytes that are not UTF-8
    """
    if _MALFORMED_ESCAPE.search(value):
        raise ValueError(f"Malformed percent escape in {value!r}")
    return unquote(value, errors='strict')


def encode_url_for_query(url: str) -> str:
    """
    Encode url for use as a query value without double-encoding.
    A url that changes when decoded is taken as already encoded and returned unchanged.
    """
    try:
        if decode_uri_component(url) != url:
            return url
    except ValueError:
        pass
    return encode_uri_component(url)


def wrap_as_proxy_url(raw_url: str, proxy_base_url: str, identifier: str) -> str:
    """
    Build the same-origin url the player fetches media from
    :param raw_url: upstream media url, raw or already encoded
    :param proxy_base_url: public base of the proxy routes, e.g. https://host/api/proxy/bilibili
    :param identifier: video identifier (bvid) the media belongs to
    :return: {proxy_base_url}/stream?url=...&id=...
    """
    encoded_url = encode_url_for_query(raw_url)
    encoded_id = encode_uri_component(identifier)
    return f"{proxy_base_url.rstrip('/')}/stream?url={encoded_url}&id={encoded_id}"


def unwrap_proxy_url(query_string: str) -> tuple:
    """
    Recover (url, identifier) from the query string of a url built by wrap_as_proxy_url.
    The url value runs up to the last '&id=' since a passed-through url may carry its own '&'.
    :return: (url, identifier), either may be None when absent
    """
    if query_string.startswith('?'):
        query_string = query_string[1:]
    if not query_string.startswith('url='):
        return None, None

    value, separator, identifier = query_string[len('url='):].rpartition('&id=')
    if not separator:
        value, identifier = identifier, None
    if identifier is not None:
        identifier = unquote(identifier)

    if '://' in value:
        # passed through unencoded
        return value, identifier
    try:
        return decode_uri_component(value), identifier
    except ValueError:
        return unquote(value), identifier
