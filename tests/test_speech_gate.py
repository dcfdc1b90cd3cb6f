"""Tests for the speech presence gate."""

import numpy as np
import pytest

from conftest import SAMPLE_RATE, silence, tone, write_wav
from ghosttype import speech_gate
from ghosttype.speech_gate import (
    has_speech,
    iter_window_rms,
    read_wav_samples,
    speech_present,
    wav_has_speech,
)


class TestWindowRms:
    """Test per-window RMS computation."""

    def test_window_count_ignores_trailing_partial_window(self):
        """Only complete 50 ms windows are measured."""
        samples = silence(0.125)  # 2.5 windows
        assert len(list(iter_window_rms(samples, SAMPLE_RATE, 50))) == 2

    def test_full_scale_square_wave_is_one(self):
        """RMS is normalized by int16 full scale."""
        samples = np.full(800, -32768, dtype=np.int16)
        values = list(iter_window_rms(samples, SAMPLE_RATE, 50))
        assert values == [pytest.approx(1.0)]

    def test_silence_is_zero(self):
        assert all(v == 0.0 for v in iter_window_rms(silence(0.2)))

    def test_is_lazy(self):
        """The generator computes nothing until iterated."""
        gen = iter_window_rms(silence(1.0))
        assert next(gen) == 0.0


class TestSpeechPresent:
    """Test the qualifying-window count decision."""

    @pytest.mark.parametrize(
        "values,expected",
        [
            ([], False),
            ([0.5, 0.5], False),
            ([0.5, 0.0, 0.5, 0.0, 0.5], True),
            ([0.015, 0.015, 0.015], True),
            ([0.0149, 0.5, 0.5], False),
            ([0.0] * 100 + [0.02] * 3, True),
        ],
    )
    def test_threshold_and_count(self, values, expected):
        """Speech iff at least three windows reach 0.015."""
        assert speech_present(values, threshold=0.015, min_windows=3) is expected

    def test_stops_at_third_qualifying_window(self):
        """The scan does not advance past the third qualifying window."""
        consumed = []

        def windows():
            for value in [0.5, 0.0, 0.5, 0.5, 0.5, 0.5]:
                consumed.append(value)
                yield value

        assert speech_present(windows(), threshold=0.015, min_windows=3) is True
        assert consumed == [0.5, 0.0, 0.5, 0.5]

    def test_custom_thresholds(self):
        assert speech_present([0.2, 0.2], threshold=0.1, min_windows=2) is True
        assert speech_present([0.2, 0.2], threshold=0.3, min_windows=2) is False


class TestHasSpeech:
    """Test the gate over sample buffers and WAV files."""

    def test_tone_is_speech(self):
        assert has_speech(tone(0.5)) is True

    def test_single_click_is_not_speech(self):
        """One loud window (a click) is rejected."""
        samples = np.concatenate([silence(0.5), tone(0.05), silence(0.5)])
        assert has_speech(samples) is False

    def test_empty_buffer_is_not_speech(self):
        assert has_speech(np.array([], dtype=np.int16)) is False
        assert has_speech(None) is False

    def test_wav_with_speech(self, speech_wav):
        assert wav_has_speech(speech_wav) is True

    def test_silent_wav(self, silent_wav):
        assert wav_has_speech(silent_wav) is False

    def test_missing_file_is_not_speech(self, tmp_path):
        assert wav_has_speech(tmp_path / "missing.wav") is False

    def test_garbage_file_is_not_speech(self, tmp_path):
        path = tmp_path / "garbage.wav"
        path.write_bytes(b"not a wav file at all")
        assert wav_has_speech(path) is False

    def test_header_only_wav_is_not_speech(self, tmp_path):
        path = tmp_path / "empty.wav"
        write_wav(path, np.array([], dtype=np.int16))
        assert wav_has_speech(path) is False

    def test_stereo_wav_is_downmixed(self, tmp_path):
        path = tmp_path / "stereo.wav"
        mono = tone(0.5)
        write_wav(path, np.repeat(mono, 2), channels=2)

        samples, rate = read_wav_samples(path)

        assert rate == SAMPLE_RATE
        assert len(samples) == len(mono)

    def test_unreadable_file_is_logged(self, tmp_path, caplog):
        with caplog.at_level("INFO", logger=speech_gate.__name__):
            wav_has_speech(tmp_path / "missing.wav")
        assert "could not read" in caplog.text
