import asyncio
import copy

IMG_KEY = '7cd084941338484aae1ad9425b84077c'
SUB_KEY = '4932caff0ff746eab6f01bf08b70ac45'


def nav_response(img_key: str = IMG_KEY, sub_key: str = SUB_KEY) -> dict:
    # anonymous callers get code -101 but still receive the keys
    return {
        'code': -101,
        'message': '账号未登录',
        'data': {
            'isLogin': False,
            'wbi_img': {
                'img_url': f'https://i0.hdslb.com/bfs/wbi/{img_key}.png',
                'sub_url': f'https://i0.hdslb.com/bfs/wbi/{sub_key}.png',
            },
        },
    }


def view_response(cid: int = 1176840) -> dict:
    return {
        'code': 0,
        'message': '0',
        'data': {
            'bvid': 'BV1xx411c7mD',
            'cid': cid,
            'pages': [
                {'cid': cid, 'page': 1, 'part': 'Part 1', 'duration': 212},
                {'cid': cid + 1, 'page': 2, 'part': 'Part 2', 'duration': 180},
            ],
        },
    }


def video_stream(stream_id, bandwidth, codecs='avc1.640032', width=1920, height=1080):
    return {
        'id': stream_id,
        'baseUrl': f'https://upos-sz-mirror.bilivideo.com/v/{stream_id}-{bandwidth}.m4s?e=ig8&uipk=5',
        'base_url': f'https://upos-sz-mirror.bilivideo.com/v/{stream_id}-{bandwidth}.m4s?e=ig8&uipk=5',
        'backup_url': [f'https://upos-hz-mirrorakam.akamaized.net/v/{stream_id}-{bandwidth}.m4s?e=ig8'],
        'bandwidth': bandwidth,
        'mime_type': 'video/mp4',
        'codecs': codecs,
        'width': width,
        'height': height,
        'frame_rate': '29.970',
        'sar': '1:1',
        'start_with_sap': 1,
        'segment_base': {'initialization': '0-1000', 'index_range': '1001-1500'},
        'codecid': 7,
    }


def audio_stream(stream_id, bandwidth, codecs='mp4a.40.2'):
    return {
        'id': stream_id,
        'base_url': f'https://upos-sz-mirror.bilivideo.com/a/{stream_id}-{bandwidth}.m4s?e=ig8',
        'backup_url': [],
        'bandwidth': bandwidth,
        'mime_type': 'audio/mp4',
        'codecs': codecs,
        'start_with_sap': 0,
        'segment_base': {'initialization': '0-900', 'index_range': '901-1200'},
    }


def play_response(video=None, audio=None, nested=False) -> dict:
    dash = {
        'duration': 212,
        'minBufferTime': 1.5,
        'video': video if video is not None else [
            video_stream(80, 500),
            video_stream(80, 1000),
            video_stream(64, 800, codecs='hev1.1.6.L120.90', width=1280, height=720),
        ],
        'audio': audio if audio is not None else [
            audio_stream(30216, 128, codecs='mp4a.40.5'),
            audio_stream(30280, 256),
        ],
    }
    payload = {
        'timelength': 212345,
        'accept_quality': [80, 64],
        'support_formats': [
            {'quality': 80, 'format': 'flv', 'new_description': '1080P 高清', 'display_desc': '1080P'},
            {'quality': 64, 'format': 'flv720', 'new_description': '720P 准高清', 'display_desc': '720P'},
        ],
        'dash': dash,
    }
    if nested:
        payload = {'data': payload}
    return {'code': 0, 'message': '0', 'data': payload}


class FakeClient:
    """Stands in for HttpClient, answering per pipeline step and recording every call"""

    def __init__(self, responses: dict = None, delays: dict = None):
        self.responses = {
            'nav': nav_response(),
            'view': view_response(),
            'playurl': play_response(),
        }
        self.responses.update(responses or {})
        self.delays = delays or {}
        self.calls = []
        self.finished = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def get_json(self, step, url, params=None, headers=None):
        self.calls.append({'step': step, 'url': url, 'params': params, 'headers': headers})
        if step in self.delays:
            await asyncio.sleep(self.delays[step])
        self.finished.append(step)
        response = self.responses[step]
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)

    def calls_for(self, step):
        return [call for call in self.calls if call['step'] == step]
