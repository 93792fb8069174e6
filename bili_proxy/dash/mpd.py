"""
DASH manifest (MPD) synthesis.

The manifest is first built as a tree of XmlElement records and only then serialized, so the
structure can be inspected in tests without parsing XML back. Every BaseURL points at this
service's /stream route, never at Bilibili's CDN.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bili_proxy.dash.models import MediaSet, StreamDescriptor
from bili_proxy.utils.url_utils import wrap_as_proxy_url

MPD_NAMESPACE = 'urn:mpeg:dash:schema:mpd:2011'
ON_DEMAND_PROFILE = 'urn:mpeg:dash:profile:isoff-on-demand:2011'
AUDIO_CHANNEL_SCHEME = 'urn:mpeg:dash:23003:3:audio_channel_configuration:2011'

PREFERRED_VIDEO_CODEC = 'avc1.64'  # H.264 High profile
PREFERRED_AUDIO_CODEC = 'mp4a.40.2'  # AAC-LC

ADAPTATION_SET_ATTRIBUTES = {
    'segmentAlignment': 'true',
    'subsegmentAlignment': 'true',
    'subsegmentStartsWithSAP': '1',
}


@dataclass
class XmlElement:
    tag: str
    attrib: Dict[str, str] = field(default_factory=dict)
    text: Optional[str] = None
    children: List['XmlElement'] = field(default_factory=list)

    def add(self, tag: str, attrib: dict = None, text: str = None) -> 'XmlElement':
        child = XmlElement(tag, dict(attrib or {}), text)
        self.children.append(child)
        return child

    def find_all(self, tag: str) -> List['XmlElement']:
        """All descendants (depth first, document order) with the given tag"""
        found = []
        for child in self.children:
            if child.tag == tag:
                found.append(child)
            found.extend(child.find_all(tag))
        return found


# Video selection policies

@dataclass(frozen=True)
class SingleBest:
    """First stream of the preferred codec family, or every stream when none matches"""
    prefix: str = PREFERRED_VIDEO_CODEC

    def select(self, streams: List[StreamDescriptor]) -> List[StreamDescriptor]:
        preferred = next((s for s in streams if (s.clean_codecs or '').startswith(self.prefix)), None)
        # TODO: confirm with the player team whether mixing codecs in one AdaptationSet is acceptable here
        return [preferred] if preferred else list(streams)


@dataclass(frozen=True)
class ExplicitIndex:
    """The stream at a given list position; out of range gives no stream"""
    index: int

    def select(self, streams: List[StreamDescriptor]) -> List[StreamDescriptor]:
        if 0 <= self.index < len(streams):
            return [streams[self.index]]
        return []


@dataclass(frozen=True)
class AllMatchingCodec:
    """Every stream whose codec starts with prefix"""
    prefix: str = PREFERRED_VIDEO_CODEC

    def select(self, streams: List[StreamDescriptor]) -> List[StreamDescriptor]:
        return [s for s in streams if (s.clean_codecs or '').startswith(self.prefix)]


def select_audio(streams: List[StreamDescriptor]) -> List[StreamDescriptor]:
    preferred = next((s for s in streams if s.clean_codecs == PREFERRED_AUDIO_CODEC), None)
    return [preferred] if preferred else list(streams)


def _iso_duration(seconds) -> str:
    return f'PT{seconds}S'


def _representation_attributes(stream: StreamDescriptor, video: bool) -> dict:
    attrib = {'id': str(stream.id)}
    if stream.clean_mime_type:
        attrib['mimeType'] = stream.clean_mime_type
    if stream.clean_codecs:
        attrib['codecs'] = stream.clean_codecs
    if video:
        if stream.width:
            attrib['width'] = str(stream.width)
        if stream.height:
            attrib['height'] = str(stream.height)
        if stream.frame_rate:
            attrib['frameRate'] = str(stream.frame_rate)
        if stream.sar:
            attrib['sar'] = str(stream.sar)
    if stream.start_with_sap is not None:
        attrib['startWithSAP'] = str(stream.start_with_sap)
    if stream.bandwidth is not None:
        attrib['bandwidth'] = str(stream.bandwidth)
    if not video and stream.audio_sampling_rate is not None:
        attrib['audioSamplingRate'] = str(stream.audio_sampling_rate)
    return attrib


def _add_representation(adaptation_set: XmlElement, stream: StreamDescriptor, video: bool,
                        proxy_base_url: str, identifier: str):
    rep = adaptation_set.add('Representation', _representation_attributes(stream, video))
    if not video:
        rep.add('AudioChannelConfiguration', {'schemeIdUri': AUDIO_CHANNEL_SCHEME, 'value': '2'})
    rep.add('BaseURL', text=wrap_as_proxy_url(stream.base_url, proxy_base_url, identifier))
    for backup_url in stream.backup_urls:
        rep.add('BaseURL', {'serviceLocation': 'backup'}, wrap_as_proxy_url(backup_url, proxy_base_url, identifier))
    segment_base = rep.add('SegmentBase', {'indexRange': stream.segment_base.index_range})
    segment_base.add('Initialization', {'range': stream.segment_base.initialization})


def build_manifest(media_set: MediaSet, proxy_base_url: str, identifier: str, policy=None) -> XmlElement:
    """
    Build the MPD tree of a media set
    :param media_set: normalized streams
    :param proxy_base_url: public base of the proxy routes
    :param identifier: bvid, carried by every proxy url
    :param policy: SingleBest (default), ExplicitIndex or AllMatchingCodec
    :return: the MPD root element
    """
    policy = policy or SingleBest()
    duration = _iso_duration(media_set.duration)

    root = XmlElement('MPD', {
        'xmlns': MPD_NAMESPACE,
        'type': 'static',
        'mediaPresentationDuration': duration,
        'minBufferTime': _iso_duration(media_set.min_buffer_time),
        'profiles': ON_DEMAND_PROFILE,
    })
    period = root.add('Period', {'duration': duration})

    video_set = period.add('AdaptationSet', ADAPTATION_SET_ATTRIBUTES)
    for stream in policy.select(media_set.video):
        _add_representation(video_set, stream, True, proxy_base_url, identifier)

    audio_set = period.add('AdaptationSet', ADAPTATION_SET_ATTRIBUTES)
    for stream in select_audio(media_set.audio):
        _add_representation(audio_set, stream, False, proxy_base_url, identifier)

    return root


def _to_etree(element: XmlElement) -> ET.Element:
    node = ET.Element(element.tag, element.attrib)
    node.text = element.text
    for child in element.children:
        node.append(_to_etree(child))
    return node


def serialize_manifest(root: XmlElement) -> str:
    """Pretty printed XML text of an MPD tree"""
    tree = ET.ElementTree(_to_etree(root))
    ET.indent(tree, space='  ')
    body = ET.tostring(tree.getroot(), encoding='unicode')
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}'


def generate_mpd(media_set: MediaSet, proxy_base_url: str, identifier: str, video_index: int = None) -> str:
    """Legacy single quality manifest"""
    policy = ExplicitIndex(video_index) if video_index is not None and video_index >= 0 else SingleBest()
    return serialize_manifest(build_manifest(media_set, proxy_base_url, identifier, policy))


def generate_unified_mpd(media_set: MediaSet, proxy_base_url: str, identifier: str) -> str:
    """Manifest with every quality of the preferred video codec family"""
    policy = AllMatchingCodec(PREFERRED_VIDEO_CODEC)
    return serialize_manifest(build_manifest(media_set, proxy_base_url, identifier, policy))
