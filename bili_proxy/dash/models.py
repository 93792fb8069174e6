"""
Data model for the DASH metadata returned by Bilibili's play API.
"""

import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

_STRAY_CHARS = re.compile(r'["\'\\]')


def sanitize_codec(value: Any) -> Optional[str]:
    """Strip stray quotes and backslashes; empty result means absent"""
    if not value or not isinstance(value, str):
        return None
    return _STRAY_CHARS.sub('', value).strip() or None


sanitize_mime = sanitize_codec


@dataclass(frozen=True)
class KeyPair:
    img_key: str
    sub_key: str


@dataclass
class SegmentBase:
    index_range: str
    initialization: str

    @classmethod
    def from_json(cls, data: dict | None) -> 'SegmentBase':
        data = data or {}
        return cls(
            index_range=data.get('index_range') or data.get('indexRange') or '',
            initialization=data.get('initialization') or data.get('Initialization') or '',
        )


@dataclass
class StreamDescriptor:
    """One audio or video rendition"""
    id: int
    base_url: str
    backup_urls: List[str] = field(default_factory=list)
    bandwidth: Optional[int] = None
    mime_type: Optional[str] = None
    codecs: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    frame_rate: Optional[str] = None
    sar: Optional[str] = None
    start_with_sap: Optional[int] = None
    audio_sampling_rate: Optional[int] = None
    size: Optional[int] = None
    segment_base: SegmentBase = field(default_factory=lambda: SegmentBase('', ''))
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_json(cls, data: dict) -> 'StreamDescriptor':
        """
        Build a descriptor from a play API entry.
        The API sends most fields twice, snake_case and camelCase, and sometimes only one of them.
        """
        def pick(*keys):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        return cls(
            id=data.get('id'),
            base_url=pick('base_url', 'baseUrl') or '',
            backup_urls=list(pick('backup_url', 'backupUrl') or []),
            bandwidth=pick('bandwidth'),
            mime_type=pick('mime_type', 'mimeType'),
            codecs=pick('codecs'),
            width=pick('width'),
            height=pick('height'),
            frame_rate=pick('frame_rate', 'frameRate'),
            sar=pick('sar'),
            start_with_sap=pick('start_with_sap', 'startWithSap', 'startWithSAP'),
            audio_sampling_rate=pick('audioSamplingRate', 'audio_sampling_rate'),
            size=pick('size'),
            segment_base=SegmentBase.from_json(pick('segment_base', 'SegmentBase')),
            raw=dict(data),
        )

    @property
    def clean_codecs(self) -> Optional[str]:
        return sanitize_codec(self.codecs)

    @property
    def clean_mime_type(self) -> Optional[str]:
        return sanitize_mime(self.mime_type)

    def to_json(self) -> dict:
        """Upstream fields of the stream, as sent by the play API"""
        if self.raw:
            return dict(self.raw)
        return {
            'id': self.id,
            'base_url': self.base_url,
            'backup_url': list(self.backup_urls),
            'bandwidth': self.bandwidth,
            'mime_type': self.mime_type,
            'codecs': self.codecs,
            'width': self.width,
            'height': self.height,
            'frame_rate': self.frame_rate,
            'sar': self.sar,
            'start_with_sap': self.start_with_sap,
            'audioSamplingRate': self.audio_sampling_rate,
            'size': self.size,
            'segment_base': {
                'index_range': self.segment_base.index_range,
                'initialization': self.segment_base.initialization,
            },
        }


@dataclass
class SupportFormat:
    quality: int
    format: str = ''
    new_description: str = ''
    display_desc: str = ''

    @classmethod
    def from_json(cls, data: dict) -> 'SupportFormat':
        return cls(
            quality=data.get('quality'),
            format=data.get('format', ''),
            new_description=data.get('new_description', ''),
            display_desc=data.get('display_desc', ''),
        )


@dataclass
class Page:
    """One part of a multi-page video, as listed by the view API"""
    cid: Optional[int] = None
    page: Optional[int] = None
    part: str = ''
    duration: Optional[int] = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_json(cls, data: dict) -> 'Page':
        return cls(
            cid=data.get('cid'),
            page=data.get('page'),
            part=data.get('part') or '',
            duration=data.get('duration'),
            raw=dict(data),
        )

    def to_json(self) -> dict:
        # vid, weblink, dimension, first_frame... are handed back untouched
        if self.raw:
            return dict(self.raw)
        page = {'cid': self.cid, 'page': self.page, 'part': self.part}
        if self.duration is not None:
            page['duration'] = self.duration
        return page


@dataclass
class MediaSet:
    """All DASH streams of one video page"""
    video: List[StreamDescriptor]
    audio: List[StreamDescriptor]
    duration: int
    min_buffer_time: float = 1
    timelength: int = 0
    support_formats: List[SupportFormat] = field(default_factory=list)
