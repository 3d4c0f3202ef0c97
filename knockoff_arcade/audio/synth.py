#
# Every sound effect is synthesized from scratch: oscillators and noise, shaped by parameter curves and biquad
# filters, mixed into a single mono buffer. Renderers are pure functions of their definition, volume, sample
# rate and random generator; nothing is cached or shared between calls.
#
# Copyright (c) 2025, 7th software Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations
import math
from typing import TYPE_CHECKING, Callable

import numpy as np
from scipy import signal

from knockoff_arcade.config import AudioLevels

if TYPE_CHECKING:
    from knockoff_arcade.audio.sounds import Envelope, SoundDefinition

SAMPLE_RATE = AudioLevels.SAMPLE_RATE

# Level every exponential fade-out lands on
SILENCE = 0.001

# Swept filters recompute their coefficients once per block of this many samples
FILTER_BLOCK = 128

# Canyon echo on the gunshot
ECHO_DELAY = 0.15
ECHO_FEEDBACK = 0.3
ECHO_TAIL = 0.6

WAVEFORMS = ("sine", "triangle", "sawtooth", "square")
FILTERS = ("lowpass", "highpass", "bandpass", "peaking")


class Automation():
    """
    A parameter curve built from timed events and evaluated over a whole buffer by `render()`.

    `set_value_at` jumps to a value; the ramps run from the previous event's time and value to their own. Before
    the first event the initial value applies, and after the last event its value holds. Events are ordered by
    time when rendered, so one scheduled out of order slots in where it belongs.
    """

    def __init__(self, value: float = 0.0) -> None:
        self.initial = value
        self._events: list[tuple[str, float, float]] = []

    def set_value_at(self, value: float, time: float) -> Automation:
        self._events.append(("set", time, value))
        return self

    def linear_ramp_to(self, value: float, time: float) -> Automation:
        self._events.append(("linear", time, value))
        return self

    def exponential_ramp_to(self, value: float, time: float) -> Automation:
        self._events.append(("exponential", time, value))
        return self

    def render(self, t: np.ndarray) -> np.ndarray:
        """
        Evaluate the curve.

        Args:
            t: Times in seconds, relative to the start of the sound.

        Returns:
            np.ndarray: The parameter value at each time.

        Notes:
            An exponential ramp between values of different sign (or touching zero) can't be computed, so the
            previous value is held until the ramp's end time instead.
        """

        t = np.asarray(t, dtype=np.float64)
        values = np.full(t.shape, self.initial, dtype=np.float64)
        prev_time, prev_value = 0.0, self.initial

        for kind, time, value in sorted(self._events, key=lambda event: event[1]):
            span = (t >= prev_time) & (t < time)
            if kind == "set" or time <= prev_time:
                values[span] = prev_value
            elif kind == "linear":
                frac = (t[span] - prev_time) / (time - prev_time)
                values[span] = prev_value + (value - prev_value) * frac
            elif prev_value * value > 0:
                frac = (t[span] - prev_time) / (time - prev_time)
                values[span] = prev_value * (value / prev_value) ** frac
            else:
                values[span] = prev_value
            prev_time, prev_value = time, value

        values[t >= prev_time] = prev_value
        return values


def sample_count(seconds: float, sample_rate: int = SAMPLE_RATE) -> int:
    return max(0, int(round(seconds * sample_rate)))


def times(count: int, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    return np.arange(count, dtype=np.float64) / sample_rate


def envelope_gain(t: np.ndarray, envelope: Envelope, peak: float, duration: float, start: float = 0.0) -> np.ndarray:
    """
    Attack/decay/sustain/release gain curve.

    Args:
        t: Times in seconds.
        envelope: Attack, decay and release times (seconds) and the sustain level (fraction of `peak`).
        peak: Gain reached at the end of the attack.
        duration: Total length of the note; the curve lands on `SILENCE` exactly here.
        start: Time the note starts.

    Returns:
        np.ndarray: Gain at each time.

    Behaviour:
        - Linear rise from 0 to `peak` over the attack, then linear fall to the sustain level over the decay.
        - Holds the sustain level until the release begins (never before the decay has finished).
        - Exponential fall to `SILENCE` over the release.
    """

    sustain = peak * envelope.sustain
    decayed = start + envelope.attack + envelope.decay
    release = max(start + duration - envelope.release, decayed)

    return (Automation(0.0)
            .set_value_at(0.0, start)
            .linear_ramp_to(peak, start + envelope.attack)
            .linear_ramp_to(sustain, decayed)
            .set_value_at(sustain, release)
            .exponential_ramp_to(SILENCE, start + duration)
            .render(t))


def apply_envelope(samples: np.ndarray, envelope: Envelope, peak: float, duration: float,
                   sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    return samples * envelope_gain(times(len(samples), sample_rate), envelope, peak, duration)


def oscillator(kind: str, frequency: np.ndarray, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """
    Generate a waveform following a per-sample frequency curve.

    Args:
        kind: One of `WAVEFORMS`.
        frequency: Frequency in Hz for every output sample.
        sample_rate: Samples per second.

    Returns:
        np.ndarray: Samples in -1..1, starting at phase 0.

    Raises:
        ValueError: For an unknown waveform.
    """

    frequency = np.asarray(frequency, dtype=np.float64)
    if len(frequency) == 0:
        return np.zeros(0)

    # Accumulate phase so frequency sweeps stay continuous
    phase = 2 * np.pi * np.concatenate(([0.0], np.cumsum(frequency[:-1]))) / sample_rate

    if kind == "sine":
        return np.sin(phase)
    if kind == "triangle":
        return signal.sawtooth(phase, width=0.5)
    if kind == "sawtooth":
        return signal.sawtooth(phase)
    if kind == "square":
        return signal.square(phase)
    raise ValueError(f"Unknown waveform '{kind}'")


def noise(count: int, rng: np.random.Generator) -> np.ndarray:
    return rng.uniform(-1.0, 1.0, count)


def biquad_coefficients(kind: str, frequency: float, q: float, gain_db: float = 0.0,
                        sample_rate: int = SAMPLE_RATE) -> tuple[np.ndarray, np.ndarray]:
    """
    Second order filter coefficients (Robert Bristow-Johnson's cookbook).

    Args:
        kind: One of `FILTERS`.
        frequency: Cut-off or centre frequency in Hz, clamped below Nyquist.
        q: Resonance. For lowpass and highpass it is given in dB, as browsers do.
        gain_db: Boost (or cut) at the centre frequency; peaking only.
        sample_rate: Samples per second.

    Returns:
        tuple[np.ndarray, np.ndarray]: Numerator and denominator, normalised so `a[0] == 1`.

    Raises:
        ValueError: For an unknown filter type.
    """

    frequency = min(max(frequency, 1.0), sample_rate * 0.49)
    w0 = 2 * math.pi * frequency / sample_rate
    cos_w0 = math.cos(w0)

    if kind in ("lowpass", "highpass"):
        alpha = math.sin(w0) / (2 * 10 ** (q / 20))
    else:
        alpha = math.sin(w0) / (2 * q)

    if kind == "lowpass":
        b = [(1 - cos_w0) / 2, 1 - cos_w0, (1 - cos_w0) / 2]
        a = [1 + alpha, -2 * cos_w0, 1 - alpha]
    elif kind == "highpass":
        b = [(1 + cos_w0) / 2, -(1 + cos_w0), (1 + cos_w0) / 2]
        a = [1 + alpha, -2 * cos_w0, 1 - alpha]
    elif kind == "bandpass":
        b = [alpha, 0.0, -alpha]
        a = [1 + alpha, -2 * cos_w0, 1 - alpha]
    elif kind == "peaking":
        amp = 10 ** (gain_db / 40)
        b = [1 + alpha * amp, -2 * cos_w0, 1 - alpha * amp]
        a = [1 + alpha / amp, -2 * cos_w0, 1 - alpha / amp]
    else:
        raise ValueError(f"Unknown filter '{kind}'")

    return np.array(b) / a[0], np.array(a) / a[0]


def biquad(samples: np.ndarray, kind: str, frequency: float | np.ndarray, q: float = 1.0, gain_db: float = 0.0,
           sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """
    Run samples through a biquad filter.

    A scalar `frequency` filters in one pass. A per-sample curve is applied block by block, carrying the filter
    state across blocks so the sweep doesn't click.
    """

    if np.isscalar(frequency):
        b, a = biquad_coefficients(kind, float(frequency), q, gain_db, sample_rate)
        return signal.lfilter(b, a, samples)

    frequency = np.asarray(frequency, dtype=np.float64)
    out = np.empty(len(samples), dtype=np.float64)
    state = np.zeros(2)
    for start in range(0, len(samples), FILTER_BLOCK):
        stop = start + FILTER_BLOCK
        b, a = biquad_coefficients(kind, float(frequency[start]), q, gain_db, sample_rate)
        out[start:stop], state = signal.lfilter(b, a, samples[start:stop], zi=state)
    return out


def feedback_delay(samples: np.ndarray, delay: float, feedback: float, tail: float,
                   sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """
    Echo line: `y[n] = x[n - d] + feedback * y[n - d]`.

    Args:
        samples: Input.
        delay: Delay time in seconds.
        feedback: Fraction of the output fed back into the line each pass.
        tail: Seconds of silence appended so the echoes can ring out.
        sample_rate: Samples per second.

    Returns:
        np.ndarray: The wet signal only, `tail` seconds longer than the input.
    """

    lag = max(1, sample_count(delay, sample_rate))
    padded = np.concatenate((samples, np.zeros(sample_count(tail, sample_rate))))
    out = np.zeros(len(padded))
    out[lag:] = padded[:len(padded) - lag]

    # Each block of `lag` samples only depends on the block before it
    for start in range(lag, len(out), lag):
        stop = min(start + lag, len(out))
        out[start:stop] += feedback * out[start - lag:stop - lag]
    return out


def mix_into(out: np.ndarray, part: np.ndarray, offset: int) -> None:
    """Add `part` into `out` starting at sample `offset`, dropping whatever runs past the end."""

    if offset >= len(out):
        return
    part = part[:len(out) - offset]
    out[offset:offset + len(part)] += part


def _tone(kind: str, frequency: np.ndarray, t: np.ndarray, envelope: Envelope, volume: float, duration: float,
          sample_rate: int) -> np.ndarray:
    return oscillator(kind, frequency, sample_rate) * envelope_gain(t, envelope, volume, duration)


def _gunshot_bang(volume: float, sample_rate: int, rng: np.random.Generator) -> np.ndarray:
    count = sample_count(0.1, sample_rate)
    x = np.arange(count) / count
    crack = np.sin(x * np.pi * 200) * np.exp(-x * 30)
    body = (noise(count, rng) * 0.7 + crack * 0.3) * np.exp(-x * 50) * (1 - x)

    gain = Automation().set_value_at(volume, 0.0).exponential_ramp_to(SILENCE, 0.1)
    return biquad(body, "highpass", 400, 1.0, sample_rate=sample_rate) * gain.render(times(count, sample_rate))


def _gunshot_echo(volume: float, sample_rate: int) -> np.ndarray:
    t = times(sample_count(0.8, sample_rate), sample_rate)
    frequency = Automation().set_value_at(100, 0.0).linear_ramp_to(50, 0.8).render(t)
    gain = Automation().set_value_at(0.0, 0.0).linear_ramp_to(volume * 0.3, 0.1).exponential_ramp_to(SILENCE, 0.8)

    dry = oscillator("sawtooth", frequency, sample_rate) * gain.render(t)
    return feedback_delay(dry, ECHO_DELAY, ECHO_FEEDBACK, ECHO_TAIL, sample_rate) * volume


def _ricochet(volume: float, sample_rate: int) -> np.ndarray:
    t = times(sample_count(0.6, sample_rate), sample_rate)
    frequency = (Automation()
                 .set_value_at(800, 0.0)
                 .exponential_ramp_to(200, 0.4)
                 .linear_ramp_to(150, 0.6)
                 .render(t))
    gain = Automation().set_value_at(0.0, 0.0).linear_ramp_to(volume, 0.05).exponential_ramp_to(SILENCE, 0.6)
    return oscillator("sine", frequency, sample_rate) * gain.render(t)


def render_gunshot(definition: SoundDefinition, volume: float, sample_rate: int = SAMPLE_RATE,
                   rng: np.random.Generator | None = None) -> np.ndarray:
    """Bang, then a ricochet whine and a sawtooth rumble echoing down the canyon."""

    rng = rng or np.random.default_rng()
    out = np.zeros(sample_count(0.1 + 0.8 + ECHO_TAIL, sample_rate))
    mix_into(out, _gunshot_bang(volume, sample_rate, rng), 0)
    mix_into(out, _gunshot_echo(volume * 0.4, sample_rate), sample_count(0.1, sample_rate))
    mix_into(out, _ricochet(volume * 0.6, sample_rate), sample_count(0.05, sample_rate))
    return out


def render_spittoon(definition: SoundDefinition, volume: float, sample_rate: int = SAMPLE_RATE,
                    rng: np.random.Generator | None = None) -> np.ndarray:
    """Metallic ping: a falling triangle with a sharp resonance an octave up."""

    duration, frequency = definition.duration, definition.frequency
    t = times(sample_count(duration, sample_rate), sample_rate)
    sweep = Automation().set_value_at(frequency, 0.0).exponential_ramp_to(frequency * 0.7, duration).render(t)

    ping = biquad(oscillator("triangle", sweep, sample_rate), "peaking", frequency * 2, 15, 6, sample_rate)
    return ping * envelope_gain(t, definition.envelope, volume, duration)


def render_saloon_door(definition: SoundDefinition, volume: float, sample_rate: int = SAMPLE_RATE,
                       rng: np.random.Generator | None = None) -> np.ndarray:
    duration = definition.duration
    t = times(sample_count(duration, sample_rate), sample_rate)
    creak = (Automation()
             .set_value_at(definition.start_freq, 0.0)
             .linear_ramp_to(definition.end_freq, duration * 0.3)
             .set_value_at(definition.end_freq, duration * 0.3)
             .linear_ramp_to(definition.start_freq * 0.9, duration)
             .render(t))
    return _tone("sawtooth", creak, t, definition.envelope, volume, duration, sample_rate)


def render_whistle_down(definition: SoundDefinition, volume: float, sample_rate: int = SAMPLE_RATE,
                        rng: np.random.Generator | None = None) -> np.ndarray:
    duration = definition.duration
    t = times(sample_count(duration, sample_rate), sample_rate)
    fall = (Automation()
            .set_value_at(definition.start_freq, 0.0)
            .exponential_ramp_to(definition.end_freq, duration)
            .render(t))
    return _tone("sine", fall, t, definition.envelope, volume, duration, sample_rate)


def _harmonica_note(frequency: float, volume: float, duration: float, sample_rate: int) -> np.ndarray:
    t = times(sample_count(duration, sample_rate), sample_rate)

    # 5.5Hz wobble, 2% deep, on the fundamental and first overtone
    vibrato = np.sin(2 * np.pi * 5.5 * t) * frequency * 0.02

    # Reeds start slightly flat and bend up
    bend = (Automation()
            .set_value_at(frequency, 0.0)
            .linear_ramp_to(frequency * 0.98, 0.05)
            .linear_ramp_to(frequency, 0.1)
            .render(t))

    reed = (oscillator("sawtooth", bend + vibrato, sample_rate)
            + oscillator("triangle", frequency * 2 + vibrato, sample_rate) * 0.3
            + oscillator("sine", np.full(len(t), frequency * 3), sample_rate) * 0.15)
    reed = biquad(reed, "bandpass", frequency * 2, 3, sample_rate=sample_rate)

    gain = (Automation()
            .set_value_at(0.0, 0.0)
            .linear_ramp_to(volume, 0.1)
            .set_value_at(volume * 0.9, duration * 0.7)
            .linear_ramp_to(volume * 0.3, duration * 0.9)
            .exponential_ramp_to(SILENCE, duration))
    return reed * gain.render(t)


def render_harmonica(definition: SoundDefinition, volume: float, sample_rate: int = SAMPLE_RATE,
                     rng: np.random.Generator | None = None) -> np.ndarray:
    """The notes played one after another, sharing the duration equally."""

    note_duration = definition.duration / len(definition.notes)
    out = np.zeros(sample_count(definition.duration, sample_rate))
    for index, frequency in enumerate(definition.notes):
        note = _harmonica_note(frequency, volume * 0.8, note_duration, sample_rate)
        mix_into(out, note, sample_count(index * note_duration, sample_rate))
    return out


def render_western_chord(definition: SoundDefinition, volume: float, sample_rate: int = SAMPLE_RATE,
                         rng: np.random.Generator | None = None) -> np.ndarray:
    chord_duration = definition.duration / len(definition.chords)
    t = times(sample_count(chord_duration, sample_rate), sample_rate)
    out = np.zeros(sample_count(definition.duration, sample_rate))

    for index, chord in enumerate(definition.chords):
        offset = sample_count(index * chord_duration, sample_rate)
        for frequency in chord:
            note = _tone("sawtooth", np.full(len(t), frequency), t, definition.envelope, volume / len(chord),
                         chord_duration, sample_rate)
            mix_into(out, note, offset)
    return out


def _formant_voice(definition: SoundDefinition, volume: float, sample_rate: int, base: float, step: float,
                   vibrato: float, q: float, gain_db: float) -> np.ndarray:
    duration = definition.duration
    t = times(sample_count(duration, sample_rate), sample_rate)
    wobble = np.sin(2 * np.pi * 5 * t) * vibrato
    out = np.zeros(len(t))

    for index, formant in enumerate(definition.formants):
        buzz = oscillator("sawtooth", base + index * step + wobble, sample_rate)
        voiced = biquad(buzz, "peaking", formant, q, gain_db, sample_rate)
        out += voiced * envelope_gain(t, definition.envelope, volume / len(definition.formants), duration)
    return out


def render_yeehaw(definition: SoundDefinition, volume: float, sample_rate: int = SAMPLE_RATE,
                  rng: np.random.Generator | None = None) -> np.ndarray:
    """A buzzy sawtooth per formant, each pushed through a resonant peak at that formant."""

    return _formant_voice(definition, volume, sample_rate, base=150, step=50, vibrato=0.0, q=5, gain_db=10)


def render_yeehaw_big(definition: SoundDefinition, volume: float, sample_rate: int = SAMPLE_RATE,
                      rng: np.random.Generator | None = None) -> np.ndarray:
    return _formant_voice(definition, volume, sample_rate, base=120, step=60, vibrato=10.0, q=8, gain_db=15)


def render_spur(definition: SoundDefinition, volume: float, sample_rate: int = SAMPLE_RATE,
                rng: np.random.Generator | None = None) -> np.ndarray:
    duration, frequency = definition.duration, definition.frequency
    t = times(sample_count(duration, sample_rate), sample_rate)
    jingle = (Automation()
              .set_value_at(frequency, 0.0)
              .linear_ramp_to(frequency * 1.2, duration * 0.3)
              .linear_ramp_to(frequency, duration)
              .render(t))
    return _tone("triangle", jingle, t, definition.envelope, volume, duration, sample_rate)


def _whinny_sweep(t: np.ndarray, start: float, end: float, duration: float, lift: float) -> np.ndarray:
    return (Automation()
            .set_value_at(start * (1 + lift), 0.0)
            .linear_ramp_to(end * (1 + lift), 0.1)
            .linear_ramp_to(start * (0.7 + lift), 0.15)
            .linear_ramp_to(end * (1.2 + lift), 0.2)
            .exponential_ramp_to(start * (0.6 + lift), duration)
            .render(t))


def _whinny_call(definition: SoundDefinition, volume: float, sample_rate: int) -> np.ndarray:
    duration = definition.duration
    start, end = definition.start_freq, definition.end_freq
    t = times(sample_count(duration, sample_rate), sample_rate)

    # Two voices, the second 2% sharp
    voice = (oscillator("sawtooth", _whinny_sweep(t, start, end, duration, 0.0), sample_rate)
             + oscillator("triangle", _whinny_sweep(t, start, end, duration, 0.02), sample_rate))

    cutoff = Automation().set_value_at(800, 0.0).linear_ramp_to(1200, 0.1).linear_ramp_to(600, duration).render(t)
    voice = biquad(voice, "lowpass", cutoff, 2, sample_rate=sample_rate)

    gain = (Automation()
            .set_value_at(0.0, 0.0)
            .linear_ramp_to(volume, 0.03)
            .set_value_at(volume * 0.8, 0.1)
            .linear_ramp_to(volume * 0.9, 0.15)
            .set_value_at(volume * 0.6, 0.2)
            .exponential_ramp_to(SILENCE, duration))
    return voice * gain.render(t)


def _whinny_breath(volume: float, sample_rate: int, rng: np.random.Generator) -> np.ndarray:
    count = sample_count(0.15, sample_rate)
    x = np.arange(count) / count
    breath = noise(count, rng) * np.sin(x * np.pi) * 0.7
    return biquad(breath, "bandpass", 300, 0.5, sample_rate=sample_rate) * volume


def _whinny_tail(volume: float, sample_rate: int) -> np.ndarray:
    t = times(sample_count(0.3, sample_rate), sample_rate)
    fall = Automation().set_value_at(200, 0.0).exponential_ramp_to(120, 0.3).render(t)
    gain = Automation().set_value_at(0.0, 0.0).linear_ramp_to(volume, 0.05).exponential_ramp_to(SILENCE, 0.3)
    return oscillator("sine", fall, sample_rate) * gain.render(t)


def render_whinny(definition: SoundDefinition, volume: float, sample_rate: int = SAMPLE_RATE,
                  rng: np.random.Generator | None = None) -> np.ndarray:
    """Horse whinny: the call, a snort of breath just after it starts, and a soft falling tail."""

    rng = rng or np.random.default_rng()
    duration = definition.duration
    out = np.zeros(sample_count(max(duration, 0.1 + 0.15, duration * 0.7 + 0.3), sample_rate))
    mix_into(out, _whinny_call(definition, volume, sample_rate), 0)
    mix_into(out, _whinny_breath(volume * 0.6, sample_rate, rng), sample_count(0.1, sample_rate))
    mix_into(out, _whinny_tail(volume * 0.4, sample_rate), sample_count(duration * 0.7, sample_rate))
    return out


Renderer = Callable[..., np.ndarray]

RENDERERS: dict[str, Renderer] = {
    "gunshot": render_gunshot,
    "spittoon": render_spittoon,
    "saloon_door": render_saloon_door,
    "whistle_down": render_whistle_down,
    "harmonica": render_harmonica,
    "western_chord": render_western_chord,
    "yeehaw": render_yeehaw,
    "yeehaw_big": render_yeehaw_big,
    "spur": render_spur,
    "whinny": render_whinny,
}


def render(definition: SoundDefinition, volume: float, sample_rate: int = SAMPLE_RATE,
           rng: np.random.Generator | None = None) -> np.ndarray:
    """
    Synthesize one sound.

    Args:
        definition: What to play.
        volume: Peak gain, already scaled by the effects level.
        sample_rate: Samples per second.
        rng: Source for noise components. A fresh generator is used if omitted.

    Returns:
        np.ndarray: Mono float samples. Not clipped; the backend does that on conversion.

    Raises:
        ValueError: If the definition's type has no renderer.
    """

    try:
        renderer = RENDERERS[definition.type]
    except KeyError:
        raise ValueError(f"No renderer for sound type '{definition.type}'") from None
    return renderer(definition, volume, sample_rate, rng or np.random.default_rng())
