"""
Audio transcoding for clone uploads.

Browser recordings arrive as WebM/Opus, which MiniMax refuses. pydub (backed
by ffmpeg) decodes them to mono 16-bit PCM at 16 kHz (60 s stays well below
the 4.5 MB request body limit of the hosting platform) and the samples are
written out as a canonical 44-byte-header PCM WAV.
"""

import io
import logging
import os
import struct
import wave
from typing import Tuple

import numpy as np
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from .errors import ConversionError
from .providers.base import Provider

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16000


def is_wav(data: bytes) -> bool:
    return len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WAVE"


def float_to_pcm16(samples) -> np.ndarray:
    """Quantize float samples to int16, clamping to [-1, 1] first so loud peaks cannot wrap."""
    arr = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (arr * 32767).astype('<i2')


def encode_wav(samples, sample_rate: int = TARGET_SAMPLE_RATE) -> bytes:
    """
    Write mono 16-bit PCM WAV bytes.

    Float input is quantized through ``float_to_pcm16``; int16 input is
    written as is.
    """
    arr = np.asarray(samples)
    if np.issubdtype(arr.dtype, np.floating):
        pcm = float_to_pcm16(arr)
    else:
        pcm = arr.astype('<i2')
    data = pcm.tobytes()

    wav_io = io.BytesIO()
    wav_io.write(b'RIFF')
    wav_io.write(struct.pack('<I', 36 + len(data)))
    wav_io.write(b'WAVEfmt ')
    wav_io.write(struct.pack('<IHHIIHH', 16, 1, 1, sample_rate, sample_rate * 2, 2, 16))
    wav_io.write(b'data')
    wav_io.write(struct.pack('<I', len(data)))
    wav_io.write(data)
    return wav_io.getvalue()


def decode_wav(data: bytes) -> Tuple[np.ndarray, int]:
    """Read a mono 16-bit PCM WAV back into int16 samples and its sample rate."""
    try:
        with wave.open(io.BytesIO(data), 'rb') as wf:
            if wf.getnchannels() != 1 or wf.getsampwidth() != 2:
                raise ConversionError(
                    "Only mono 16-bit WAV is supported",
                    detail={"channels": wf.getnchannels(), "sample_width": wf.getsampwidth()},
                )
            frames = wf.readframes(wf.getnframes())
            rate = wf.getframerate()
    except (wave.Error, EOFError) as e:
        raise ConversionError("Invalid WAV data", detail=str(e))
    return np.frombuffer(frames, dtype='<i2'), rate


def _decode_error(message: str) -> str:
    # Skip the ffmpeg version/config banner, keep the actual error
    lines = message.splitlines()
    real = '\n'.join(l for l in lines if l and not l.startswith(('ffmpeg version', 'built with', 'configuration', '  lib')))
    return real.strip()[-400:]


def convert_to_wav(source: bytes, format_hint: str = "webm", sample_rate: int = TARGET_SAMPLE_RATE) -> bytes:
    """
    Transcode compressed audio into mono 16-bit PCM WAV.

    Args:
        source: Encoded audio bytes (WebM/Opus, MP3, OGG, ...)
        format_hint: Container name passed to ffmpeg, or empty to let it probe
        sample_rate: Output sample rate

    Raises:
        ConversionError: If ffmpeg is missing or cannot decode the input
    """
    if not source:
        raise ConversionError(detail="empty input")

    try:
        segment = AudioSegment.from_file(io.BytesIO(source), format=format_hint or None)
    except FileNotFoundError:
        logger.error("ffmpeg is not available on PATH")
        raise ConversionError(detail="ffmpeg is not available on PATH")
    except CouldntDecodeError as e:
        detail = _decode_error(str(e))
        logger.error("Audio decode error:\n%s", detail)
        raise ConversionError(detail=detail)

    segment = segment.set_channels(1).set_frame_rate(sample_rate).set_sample_width(2)
    samples = np.array(segment.get_array_of_samples(), dtype=np.int16)
    if samples.size == 0:
        raise ConversionError(detail="decoded audio is empty")

    logger.info("Converted %.1f KB %s to %.1fs of %d Hz WAV",
                len(source) / 1024, format_hint or "audio", samples.size / sample_rate, sample_rate)
    return encode_wav(samples, sample_rate)


def format_hint_from_filename(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower().lstrip('.')
    return {"webm": "webm", "ogg": "ogg", "oga": "ogg", "mp3": "mp3", "m4a": "mp4", "mp4": "mp4"}.get(ext, "")


def prepare_clone_sample(data: bytes, filename: str, provider: Provider) -> Tuple[bytes, str]:
    """
    Make an uploaded sample acceptable to ``provider``.

    Returns:
        The bytes to upload and the filename to upload them under
    """
    if provider is not Provider.MINIMAX or is_wav(data):
        return data, filename
    wav = convert_to_wav(data, format_hint_from_filename(filename))
    return wav, "voice-sample.wav"
