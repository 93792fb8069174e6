import asyncio
import logging
import math

from bili_proxy.api.errors import InvalidIdentifier, NoStreamsAvailable, UpstreamError
from bili_proxy.api.wbi import build_headers, fetch_wbi_keys, sign_params
from bili_proxy.dash.models import MediaSet, Page, StreamDescriptor, SupportFormat
from config import Config


VIEW_PATH = "/x/web-interface/view"
PLAYURL_PATH = "/x/player/wbi/playurl"

# fnval 80 = DASH (16) | HDR/4K capable (64)
PLAY_PARAMS = {
    'fnval': 80,
    'fnver': 0,
    'fourk': 1,
}


class BilibiliAPI:
    """
    Bilibili API wrapper resolving a bvid into its DASH streams
    """

    def __init__(self, client):
        """
        Initialize the Bilibili API wrapper
        :param client: HttpClient used for every upstream call
        """
        self.client = client

    async def resolve(self, bvid: str, cid=None, sessdata: str = None) -> tuple:
        """
        Resolve a video page into its DASH media
        :param bvid: Bilibili BV id
        :param cid: page cid, the default page of the video is used when missing
        :param sessdata: SESSDATA cookie of the viewer, unlocks higher qualities
        :return: (MediaSet, list of Page)
        """
        if not bvid or not str(bvid).strip():
            raise InvalidIdentifier("bvid is required")
        bvid = str(bvid).strip()
        cid = self._validate_cid(cid)

        tasks = [
            asyncio.ensure_future(self.get_view(bvid, sessdata)),
            asyncio.ensure_future(fetch_wbi_keys(self.client, sessdata)),
        ]
        try:
            view, key_pair = await asyncio.gather(*tasks)
        except BaseException:
            # the sibling call must not outlive the client session
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        if not cid:
            cid = view.get('cid')
            if not cid:
                raise UpstreamError('view', 'Failed to fetch video cid')
        pages = [Page.from_json(page) for page in view.get('pages') or []]

        params = sign_params({'bvid': bvid, 'cid': cid, **PLAY_PARAMS}, key_pair)
        play = await self.get_play_url(params, sessdata)

        logging.info(f"Resolved {bvid} cid={cid}")
        return normalize_play_data(play), pages

    async def get_view(self, bvid: str, sessdata: str = None) -> dict:
        """
        Get video details (default cid and pages)
        :param bvid: Bilibili BV id
        :return: the "data" object of the view response
        """
        res = await self.client.get_json('view', f'{Config.BILIBILI_API_URL}{VIEW_PATH}',
                                         params={'bvid': bvid}, headers=build_headers(sessdata))
        return _unwrap('view', res)

    async def get_play_url(self, signed_params: dict, sessdata: str = None) -> dict:
        """
        Get play metadata
        :param signed_params: query parameters carrying wts and w_rid
        :return: the "data" object of the playurl response
        """
        res = await self.client.get_json('playurl', f'{Config.BILIBILI_API_URL}{PLAYURL_PATH}',
                                         params=signed_params, headers=build_headers(sessdata))
        return _unwrap('playurl', res)

    @staticmethod
    def _validate_cid(cid):
        if cid is None or cid == '':
            return None
        try:
            cid = int(cid)
        except (TypeError, ValueError):
            raise InvalidIdentifier(f"Invalid cid: {cid!r}")
        if cid <= 0:
            raise InvalidIdentifier(f"Invalid cid: {cid!r}")
        return cid


def _unwrap(step: str, res: dict) -> dict:
    if not isinstance(res, dict):
        raise UpstreamError(step, 'Unexpected response shape')
    code = res.get('code', 0)
    if code != 0:
        raise UpstreamError(step, res.get('message') or f'code {code}', code)
    return res.get('data') or {}


def normalize_play_data(data: dict) -> MediaSet:
    """
    Turn the playurl "data" object into a MediaSet.
    Depending on the API variant the payload sits directly in data or in a nested data field.
    """
    nested = data.get('data') or {}
    dash = data.get('dash') or nested.get('dash')
    support_formats = data.get('support_formats') or nested.get('support_formats') or []

    if not dash or not dash.get('video') or not dash.get('audio'):
        raise NoStreamsAvailable('Unable to obtain DASH playurl (no audio/video streams)')

    # sorted() is stable, equal bandwidths keep their order
    video = sorted((StreamDescriptor.from_json(v) for v in dash['video']),
                   key=lambda s: s.bandwidth or 0, reverse=True)
    audio = sorted((StreamDescriptor.from_json(a) for a in dash['audio']),
                   key=lambda s: s.bandwidth or 0, reverse=True)

    timelength = _first_present(dash.get('timelength'), data.get('timelength'), nested.get('timelength'), 0)
    duration = _first_present(dash.get('duration'), math.floor((timelength or 0) / 1000))
    min_buffer_time = _first_present(dash.get('minBufferTime'), dash.get('min_buffer_time'), 1)

    return MediaSet(
        video=video,
        audio=audio,
        duration=duration,
        min_buffer_time=min_buffer_time,
        timelength=timelength,
        support_formats=[SupportFormat.from_json(f) for f in support_formats],
    )


def _first_present(*values):
    return next((value for value in values if value is not None), None)
