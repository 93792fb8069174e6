import logging

from flask import Blueprint, request

from bili_proxy.api.bilibili import BilibiliAPI
from bili_proxy.api.client import HttpClient
from bili_proxy.api.errors import BilibiliError, InvalidIdentifier
from bili_proxy.dash.formats import build_format_list
from bili_proxy.dash.mpd import generate_mpd, generate_unified_mpd
from bili_proxy.routes.utils import fail, log_error, ok, status_for_error
from bili_proxy.utils.common_utils import get_cookie_value, get_proxy_base_url

video_bp = Blueprint('video', __name__)


async def build_video_manifest(client, bvid: str, proxy_base_url: str, cid=None, sessdata: str = None,
                               video_index: int = None) -> dict:
    """
    Resolve a video and synthesize both manifests
    :param client: HttpClient for the upstream calls
    :param bvid: Bilibili BV id
    :param proxy_base_url: public base of the proxy routes
    :param cid: optional page cid
    :param sessdata: optional SESSDATA cookie of the viewer
    :param video_index: pick this video stream for the legacy manifest instead of the best one
    :return: dict with xml, unifiedMpd, formatList and pages
    """
    media_set, pages = await BilibiliAPI(client).resolve(bvid, cid, sessdata)
    bvid = bvid.strip()
    return {
        'xml': generate_mpd(media_set, proxy_base_url, bvid, video_index),
        'unifiedMpd': generate_unified_mpd(media_set, proxy_base_url, bvid),
        'formatList': build_format_list(media_set),
        'pages': [page.to_json() for page in pages],
    }


def _parse_video_index(value):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except ValueError:
        raise InvalidIdentifier(f"Invalid video_index: {value!r}")


@video_bp.route('/proxy/bilibili/video-manifest')
async def video_manifest():
    """
    Generate DASH manifests (MPD) for a Bilibili video
    Query params:
    - bvid: Bilibili BV id
    - cid: (optional) page cid, selects a part of a multi-part video
    - video_index: (optional) position of the video stream used by the legacy manifest
    :return: JSON response with xml, unifiedMpd, formatList and pages
    """
    bvid = request.args.get('bvid', '')
    if not bvid.strip():
        return fail("bvid parameter is required", 400)

    sessdata = get_cookie_value(request.headers.get('Cookie', ''), 'SESSDATA')
    proxy_base_url = get_proxy_base_url(request.host_url)

    try:
        video_index = _parse_video_index(request.args.get('video_index'))
        async with HttpClient() as client:
            data = await build_video_manifest(client, bvid, proxy_base_url,
                                              cid=request.args.get('cid'),
                                              sessdata=sessdata or None,
                                              video_index=video_index)
    except BilibiliError as e:
        log_error(e)
        return fail(str(e), status_for_error(e))

    logging.info(f"Manifest generated for {bvid} ({len(data['formatList'])} formats)")
    return ok(data)
