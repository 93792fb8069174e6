"""
WBI request signing for Bilibili's web APIs.

The nav endpoint hands out two rotating keys (img_key, sub_key). They are shuffled through a fixed
permutation table into a 32 character mixin key, which salts an MD5 over the sorted query string.
The table and the character filter are dictated by Bilibili's validator and must not change.
"""

import hashlib
import logging
import re
import time

from bili_proxy.api.errors import KeyFetchError
from bili_proxy.dash.models import KeyPair
from bili_proxy.utils.url_utils import encode_uri_component
from config import Config


NAV_PATH = "/x/web-interface/nav"

MIXIN_KEY_ENC_TAB = (
    46, 47, 18, 2, 53, 8, 23, 32, 15, 50, 10, 31, 58, 3, 45, 35, 27, 43, 5, 49,
    33, 9, 42, 19, 29, 28, 14, 39, 12, 38, 41, 13, 37, 48, 7, 16, 24, 55, 40,
    61, 26, 17, 0, 1, 60, 51, 30, 4, 22, 25, 54, 21, 56, 59, 6, 63, 57, 62, 11,
    36, 20, 34, 44, 52,
)

_CHR_FILTER = re.compile(r"[!()'*]")


def build_headers(sessdata: str = None) -> dict:
    headers = {
        'User-Agent': Config.USER_AGENT,
        'Referer': Config.BILIBILI_REFERER,
    }
    if sessdata:
        headers['Cookie'] = f'SESSDATA={sessdata};'
    return headers


def get_mixin_key(img_key: str, sub_key: str) -> str:
    orig = img_key + sub_key
    return ''.join(orig[n] for n in MIXIN_KEY_ENC_TAB if n < len(orig))[:32]


def _to_js_string(value) -> str:
    # match String(value) on the browser side
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def enc_wbi(params: dict, img_key: str, sub_key: str, now: int = None) -> tuple:
    """
    Compute the WBI signature of params
    :param params: query parameters to sign, left untouched
    :param img_key: key from nav's wbi_img.img_url
    :param sub_key: key from nav's wbi_img.sub_url
    :param now: unix time in seconds, defaults to the current time
    :return: (wts, w_rid)
    """
    mixin_key = get_mixin_key(img_key, sub_key)
    wts = int(time.time()) if now is None else int(now)

    signed = dict(params, wts=wts)
    query = '&'.join(
        f"{encode_uri_component(key)}={encode_uri_component(_CHR_FILTER.sub('', _to_js_string(signed[key])))}"
        for key in sorted(signed)
    )
    w_rid = hashlib.md5((query + mixin_key).encode()).hexdigest()
    return wts, w_rid


def sign_params(params: dict, key_pair: KeyPair, now: int = None) -> dict:
    """Return a copy of params with wts and w_rid added"""
    wts, w_rid = enc_wbi(params, key_pair.img_key, key_pair.sub_key, now)
    return {**params, 'wts': wts, 'w_rid': w_rid}


def _key_from_url(url: str) -> str:
    return url.rsplit('/', 1)[-1].split('.', 1)[0]


async def fetch_wbi_keys(client, sessdata: str = None) -> KeyPair:
    """
    Fetch the current WBI keys
    :param client: HttpClient (or anything with the same get_json)
    :param sessdata: optional SESSDATA cookie value of the viewer
    :raises KeyFetchError: when the nav response carries no usable keys
    """
    res = await client.get_json('nav', f'{Config.BILIBILI_API_URL}{NAV_PATH}', headers=build_headers(sessdata))

    wbi_img = ((res or {}).get('data') or {}).get('wbi_img')
    if not wbi_img:
        raise KeyFetchError("Unable to obtain WBI keys: missing wbi_img in nav response")

    img_key = _key_from_url(wbi_img.get('img_url') or '')
    sub_key = _key_from_url(wbi_img.get('sub_url') or '')
    if not img_key or not sub_key:
        raise KeyFetchError("Invalid WBI keys returned by nav API")

    logging.debug(f"Fetched WBI keys img_key={img_key} sub_key={sub_key}")
    return KeyPair(img_key, sub_key)
