"""Unit tests for the WAV sink and recordings helpers."""

import os
import re
import wave
from pathlib import Path
from unittest.mock import patch

import pytest
import numpy as np

from dictato.audio.recordings import (
    RECORDINGS_DIRNAME,
    ensure_recordings_dir,
    generate_unique_wav_name,
    read_wav_samples,
    remove_recording,
    wav_metadata,
)
from dictato.audio.wav_sink import WavSink
from dictato.errors import CaptureIOError, TranscriptionError


def _write_wav(path, frames: np.ndarray, rate: int, channels: int = 1, width: int = 2):
    with wave.open(str(path), 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(width)
        wf.setframerate(rate)
        wf.writeframes(frames.tobytes())


@pytest.mark.unit
class TestWavSink:

    def test_writes_mono_16bit_header(self, temp_data_dir):
        path = Path(temp_data_dir) / "out.wav"
        sink = WavSink(path, 48000)
        sink.write_samples(np.array([0, 1000, -1000, 32767], dtype=np.int16))
        sink.write_sample(-32768)
        assert sink.finalize() == path

        with wave.open(str(path), 'rb') as wf:
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getframerate() == 48000
            assert wf.getnframes() == 5
            data = np.frombuffer(wf.readframes(5), dtype='<i2')
        np.testing.assert_array_equal(data, [0, 1000, -1000, 32767, -32768])

    def test_double_finalize_raises(self, temp_data_dir):
        sink = WavSink(Path(temp_data_dir) / "out.wav", 16000)
        sink.finalize()

        assert sink.finalized is True
        with pytest.raises(CaptureIOError):
            sink.finalize()

    def test_write_after_finalize_raises(self, temp_data_dir):
        sink = WavSink(Path(temp_data_dir) / "out.wav", 16000)
        sink.finalize()

        with pytest.raises(CaptureIOError):
            sink.write_sample(1)

    def test_unwritable_path_raises(self, temp_data_dir):
        with pytest.raises(CaptureIOError):
            WavSink(Path(temp_data_dir) / "missing" / "out.wav", 16000)

    def test_samples_written_counter(self, temp_data_dir):
        sink = WavSink(Path(temp_data_dir) / "out.wav", 16000)
        sink.write_samples(np.zeros(100, dtype=np.int16))
        sink.write_samples(np.zeros(28, dtype=np.int16))
        sink.finalize()

        assert sink.samples_written == 128


@pytest.mark.unit
class TestRecordings:

    def test_recordings_dir_created(self, temp_data_dir):
        recordings = ensure_recordings_dir(temp_data_dir)

        assert recordings == Path(temp_data_dir) / RECORDINGS_DIRNAME
        assert recordings.is_dir()

    def test_unique_name_format(self):
        assert re.fullmatch(r"dictato-\d+-[0-9a-f]{8}\.wav", generate_unique_wav_name())

    def test_unique_names_within_same_second(self):
        with patch("dictato.audio.recordings.time.time", return_value=1700000000.0):
            names = {generate_unique_wav_name() for _ in range(20)}
        assert len(names) == 20

    def test_remove_recording_only_touches_its_file(self, temp_data_dir):
        recordings = ensure_recordings_dir(temp_data_dir)
        done, active = recordings / "done.wav", recordings / "active.wav"
        done.write_bytes(b"x")
        active.write_bytes(b"x")

        assert remove_recording(done) is True
        assert remove_recording(done) is True
        assert not done.exists()
        assert active.exists()

    def test_read_16k_mono(self, temp_data_dir):
        path = Path(temp_data_dir) / "in.wav"
        _write_wav(path, np.array([0, 32767, -32767], dtype='<i2'), 16000)

        samples = read_wav_samples(path)

        np.testing.assert_allclose(samples, [0.0, 1.0, -1.0])
        assert samples.dtype == np.float32

    def test_read_stereo_averages_channels(self, temp_data_dir):
        path = Path(temp_data_dir) / "stereo.wav"
        # Interleaved L/R pairs; -3 averages to -1.5 and truncates to -1
        frames = np.array([100, 300, -1, -2, 32767, 32767], dtype='<i2')
        _write_wav(path, frames, 16000, channels=2)

        samples = read_wav_samples(path)

        np.testing.assert_allclose(samples * 32767.0, [200, -1, 32767], atol=1e-3)

    def test_read_resamples_to_16k(self, temp_data_dir):
        path = Path(temp_data_dir) / "48k.wav"
        _write_wav(path, np.zeros(4800, dtype='<i2'), 48000)

        assert read_wav_samples(path).size == 1600

    def test_read_rejects_non_16bit(self, temp_data_dir):
        path = Path(temp_data_dir) / "8bit.wav"
        _write_wav(path, np.zeros(10, dtype=np.uint8), 16000, width=1)

        with pytest.raises(TranscriptionError, match="16 bits"):
            read_wav_samples(path)

    def test_read_missing_file(self, temp_data_dir):
        with pytest.raises(TranscriptionError):
            read_wav_samples(Path(temp_data_dir) / "missing.wav")

    def test_metadata(self, sample_audio_file):
        duration, size = wav_metadata(sample_audio_file)

        assert duration == pytest.approx(10 * 1024 / 16000)
        assert size == os.path.getsize(sample_audio_file)

    def test_metadata_unreadable(self, temp_data_dir):
        assert wav_metadata(Path(temp_data_dir) / "missing.wav") == (0.0, 0)
