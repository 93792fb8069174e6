"""
Request helpers shared by the proxy routes.
"""

from urllib.parse import urlsplit

from config import Config


def get_cookie_value(cookie_header: str, name: str) -> str:
    """Value of cookie name in a raw Cookie header, "" when absent"""
    if not cookie_header:
        return ""
    for cookie in cookie_header.split(';'):
        key, _, value = cookie.strip().partition('=')
        if key == name:
            return value
    return ""


def get_public_base_url(host_url: str) -> str:
    """
    Public origin of this service as seen by the player.
    Config.PUBLIC_URL wins; otherwise the request's scheme and host, where plain http on
    port 443 is assumed to sit behind a TLS terminator.
    :param host_url: request.host_url, e.g. http://localhost:5000/
    """
    if Config.PUBLIC_URL:
        return Config.PUBLIC_URL.rstrip('/')

    parts = urlsplit(host_url)
    scheme = parts.scheme or 'http'
    host = parts.netloc or f'{Config.FLASK_HOST}:{Config.FLASK_PORT}'

    if scheme == 'http' and host.endswith(':443'):
        return f"https://{host.rsplit(':', 1)[0]}"
    if scheme == 'http' and host.endswith(':80'):
        return f"http://{host.rsplit(':', 1)[0]}"
    return f"{scheme}://{host}"


def get_proxy_base_url(host_url: str) -> str:
    """Base of the proxy routes, the /stream passthrough lives right below it"""
    return f"{get_public_base_url(host_url)}{Config.API_PREFIX.rstrip('/')}/proxy/bilibili"
