import numpy as np
import soundfile as sf

from streamclip.stt.audio import pcm_chunks, pcm_format


def _tone(path, seconds=0.35, rate=16000, channels=1):
    frames = int(seconds * rate)
    samples = (np.sin(np.linspace(0, 440 * 2 * np.pi * seconds, frames)) * 8000).astype(np.int16)
    if channels > 1:
        samples = np.repeat(samples[:, None], channels, axis=1)
    sf.write(str(path), samples, rate, subtype="PCM_16")


def test_pcm_format(tmp_path):
    wav = tmp_path / "tone.wav"
    _tone(wav, channels=2)
    fmt = pcm_format(wav)
    assert fmt.sample_rate == 16000
    assert fmt.channels == 2
    assert abs(fmt.duration - 0.35) < 0.01


def test_chunks_are_interleaved_int16(tmp_path):
    wav = tmp_path / "tone.wav"
    _tone(wav, channels=2)
    chunks = list(pcm_chunks(wav, chunk_ms=100))

    # 1600 frames x 2 channels x 2 bytes per full chunk
    assert all(len(c) == 6400 for c in chunks[:-1])
    assert len(chunks) == 4
    assert sum(len(c) for c in chunks) == pcm_format(wav).frames * 4
