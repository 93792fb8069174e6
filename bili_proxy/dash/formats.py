from bili_proxy.dash.models import MediaSet
from bili_proxy.dash.mpd import PREFERRED_VIDEO_CODEC


def build_format_list(media_set: MediaSet) -> list:
    """
    Quality options for the player UI.
    Declared quality tiers come first, in their order. Every stream of the preferred codec family is then
    merged into the tier with the same id (stream fields win) or appended after the tiers.
    :param media_set: normalized streams
    :return: list of JSON-ready dicts, each with an empty "xml" placeholder
    """
    format_list = [
        {
            'id': tier.quality,
            'format': tier.format,
            'new_description': tier.new_description,
            'display_desc': tier.display_desc,
            'xml': '',
        }
        for tier in media_set.support_formats
    ]
    by_id = {entry['id']: entry for entry in reversed(format_list)}

    for stream in media_set.video:
        if not (stream.clean_codecs or '').startswith(PREFERRED_VIDEO_CODEC):
            continue
        entry = by_id.get(stream.id)
        if entry is not None:
            entry.update(stream.to_json())
        else:
            entry = {**stream.to_json(), 'xml': ''}
            format_list.append(entry)
            by_id[stream.id] = entry

    return format_list
