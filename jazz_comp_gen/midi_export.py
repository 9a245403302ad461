"""
MIDI export for rendered comping.

Converts NoteEvents (positions in beats) into an in-memory mido.MidiFile
with a meta track and a single piano track. Saving is left to the caller
(`MidiFile.save(path)`).
"""

import logging
from typing import List, Sequence, Tuple

from mido import Message, MetaMessage, MidiFile, MidiTrack

from .chord_model import ChordProgression, NoteEvent
from .utils import (
    DEFAULT_TEMPO,
    TICKS_PER_BEAT,
    beats_to_ticks,
    bpm_to_microseconds_per_beat,
    clamp,
    clamp_midi_note,
    split_time_signature,
)

logger = logging.getLogger(__name__)


def _meta_track(tempo: float, time_signature: Tuple[int, int], end_tick: int) -> MidiTrack:
    """Track 0: name, meter and tempo."""
    numerator, denominator = split_time_signature(*time_signature)
    track = MidiTrack()
    track.append(MetaMessage('track_name', name='Meta', time=0))
    track.append(MetaMessage(
        'time_signature',
        numerator=numerator,
        denominator=denominator,
        clocks_per_click=24,
        notated_32nd_notes_per_beat=8,
        time=0,
    ))
    track.append(MetaMessage('set_tempo', tempo=bpm_to_microseconds_per_beat(tempo), time=0))
    track.append(MetaMessage('end_of_track', time=end_tick))
    return track


def _note_messages(events: Sequence[NoteEvent]) -> List[Tuple[int, int, str, int, int, int]]:
    """Absolute-time (tick, order, type, note, velocity, channel) tuples."""
    messages = []
    for event in events:
        start = beats_to_ticks(max(0.0, event.position))
        end = max(start + 1, beats_to_ticks(max(0.0, event.end)))
        note = clamp_midi_note(event.midi_note)
        velocity = int(clamp(event.velocity, 1, 127))
        channel = int(clamp(event.channel, 0, 15))
        messages.append((start, 1, 'note_on', note, velocity, channel))
        messages.append((end, 0, 'note_off', note, 0, channel))
    # note-offs before note-ons at the same tick
    messages.sort(key=lambda m: (m[0], m[1], m[3]))
    return messages


def events_to_midi(
    events: Sequence[NoteEvent],
    tempo: float = DEFAULT_TEMPO,
    time_signature: Tuple[int, int] = (4, 4),
    track_name: str = "Piano",
    program: int = 0,
) -> MidiFile:
    """
    Build a type 1 MIDI file from note events.

    Args:
        events: Rendered notes (beats); negative positions are clamped to 0
        tempo: BPM
        time_signature: (numerator, denominator)
        track_name: Name of the note track
        program: General MIDI program (0 = Acoustic Grand Piano)

    Returns:
        mido.MidiFile at 480 ticks per beat
    """
    mid = MidiFile(type=1, ticks_per_beat=TICKS_PER_BEAT)
    messages = _note_messages(events)
    end_tick = messages[-1][0] if messages else 0

    mid.tracks.append(_meta_track(tempo, time_signature, end_tick))

    track = MidiTrack()
    track.append(MetaMessage('track_name', name=track_name, time=0))
    track.append(Message('program_change', program=int(clamp(program, 0, 127)), channel=0, time=0))

    prev_tick = 0
    for tick, _, kind, note, velocity, channel in messages:
        track.append(Message(kind, note=note, velocity=velocity, channel=channel, time=tick - prev_tick))
        prev_tick = tick
    track.append(MetaMessage('end_of_track', time=0))
    mid.tracks.append(track)

    logger.debug(f"Exported {len(events)} notes over {end_tick} ticks at {tempo} BPM")
    return mid


def progression_to_midi(progression: ChordProgression, events: Sequence[NoteEvent], **kwargs) -> MidiFile:
    """events_to_midi with tempo and meter taken from the progression."""
    ts = progression.time_signature
    return events_to_midi(
        events,
        tempo=progression.tempo,
        time_signature=(ts.beats, ts.beat_type),
        **kwargs,
    )
