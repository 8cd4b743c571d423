"""Presenter: render a Transcript as plain text, SRT, WebVTT, or JSON."""

from __future__ import annotations

from offline_scribe.l1_entities.transcript import Segment, Transcript

FORMATS = ('text', 'srt', 'vtt', 'json')


def format_timestamp(seconds: float, *, decimal: str = ',') -> str:
    """Format seconds as HH:MM:SS,mmm (SRT) or HH:MM:SS.mmm (VTT)."""
    millis = int(round(seconds * 1000))
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)
    return f'{hours:02d}:{minutes:02d}:{secs:02d}{decimal}{millis:03d}'


def _label(seg: Segment) -> str:
    text = seg.text.strip()
    return f'{seg.speaker}: {text}' if seg.speaker else text


def to_text(transcript: Transcript) -> str:
    return '\n'.join(_label(seg) for seg in transcript.segments if seg.text.strip()) + '\n'


def to_srt(transcript: Transcript) -> str:
    blocks = []
    for i, seg in enumerate(transcript.segments, start=1):
        start = format_timestamp(seg.start_sec)
        stop = format_timestamp(seg.stop_sec)
        blocks.append(f'{i}\n{start} --> {stop}\n{_label(seg)}\n')
    return '\n'.join(blocks)


def to_vtt(transcript: Transcript) -> str:
    blocks = ['WEBVTT\n']
    for seg in transcript.segments:
        start = format_timestamp(seg.start_sec, decimal='.')
        stop = format_timestamp(seg.stop_sec, decimal='.')
        blocks.append(f'{start} --> {stop}\n{_label(seg)}\n')
    return '\n'.join(blocks)


def format_transcript(transcript: Transcript, fmt: str) -> str:
    if fmt == 'text':
        return to_text(transcript)
    if fmt == 'srt':
        return to_srt(transcript)
    if fmt == 'vtt':
        return to_vtt(transcript)
    if fmt == 'json':
        return transcript.model_dump_json(indent=2) + '\n'
    raise ValueError(f'Unknown format {fmt!r}; expected one of {", ".join(FORMATS)}')
