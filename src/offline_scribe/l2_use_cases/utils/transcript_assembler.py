"""Assemble extracted segments into a Transcript and merge diarization spans."""

from __future__ import annotations

from offline_scribe.l1_entities.transcript import Segment, SpeakerSpan, Transcript


def assemble_transcript(segments: list[Segment], processing_time_sec: float) -> Transcript:
    """Wrap *segments* as-is (emission order) with the inference duration."""
    return Transcript(segments=list(segments), processing_time_sec=processing_time_sec)


def _overlap(seg_start: float, seg_stop: float, span: SpeakerSpan) -> float:
    return max(0.0, min(seg_stop, span.stop) - max(seg_start, span.start))


def assign_speaker(segment: Segment, spans: list[SpeakerSpan]) -> str | None:
    """Speaker of the span overlapping *segment* the most.

    Ties go to the span that starts earliest, then to the earlier one in
    *spans*. No overlap with any span gives None.
    """
    best: SpeakerSpan | None = None
    best_overlap = 0.0
    for span in spans:
        overlap = _overlap(segment.start_sec, segment.stop_sec, span)
        if overlap <= 0.0:
            continue
        if best is None or overlap > best_overlap or (overlap == best_overlap and span.start < best.start):
            best = span
            best_overlap = overlap
    return best.speaker if best is not None else None


def merge_diarization(transcript: Transcript, spans: list[SpeakerSpan]) -> Transcript:
    """Return a copy of *transcript* with each segment's speaker assigned from *spans*."""
    segments = [seg.model_copy(update={'speaker': assign_speaker(seg, spans)}) for seg in transcript.segments]
    return transcript.model_copy(update={'segments': segments})
