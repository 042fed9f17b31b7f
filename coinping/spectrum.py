"""Spectral frontend: microphone capture, high-pass filtering and snapshots.

:class:`SpectralFrontend` wraps a ``sounddevice`` input stream.  Every
incoming block is high-pass filtered and appended to a ring buffer holding
the most recent ``fft_size`` samples.  Consumers poll the buffer through
:meth:`SpectralFrontend.sample_frequency_snapshot` and
:meth:`SpectralFrontend.sample_time_snapshot`, which return byte arrays in
the same format a browser ``AnalyserNode`` produces: magnitudes scaled
from a decibel range onto ``0``–``255`` and waveform samples centred on
``128``.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import numpy as np
from scipy.signal import butter, sosfilt, sosfilt_zi

from .constants import (
    BLOCK_SIZE,
    FFT_SIZE,
    HP_FILTER_CUTOFF,
    HP_FILTER_ORDER,
    MAX_DECIBELS,
    MIN_DECIBELS,
    SAMPLE_RATE,
    SMOOTHING_TIME_CONSTANT,
    TIME_DOMAIN_CENTER,
)
from .models import DeviceUnavailable
from .peaks import bin_frequencies

logger = logging.getLogger(__name__)


def byte_frequency_data(
    samples: np.ndarray,
    previous: Optional[np.ndarray] = None,
    *,
    smoothing: float = SMOOTHING_TIME_CONSTANT,
    min_db: float = MIN_DECIBELS,
    max_db: float = MAX_DECIBELS,
) -> tuple[np.ndarray, np.ndarray]:
    """Convert a block of samples into byte magnitudes.

    Args:
        samples: Time-domain samples; the block length is the FFT size.
        previous: Smoothed magnitudes returned by the previous call, or
            ``None`` to start without history.
        smoothing: Weight given to ``previous`` (``0`` disables smoothing).
        min_db: Level mapped to ``0``.
        max_db: Level mapped to ``255``.

    Returns:
        ``(bytes, magnitudes)`` where ``bytes`` holds ``len(samples) // 2``
        ``uint8`` values and ``magnitudes`` is the smoothed linear spectrum
        to pass back as ``previous`` next time.
    """

    n = samples.size
    window = np.blackman(n)
    magnitudes = np.abs(np.fft.rfft(samples * window))[: n // 2] / n
    if previous is not None and previous.shape == magnitudes.shape:
        magnitudes = smoothing * previous + (1.0 - smoothing) * magnitudes

    with np.errstate(divide="ignore"):
        decibels = 20.0 * np.log10(magnitudes)
    scaled = 255.0 * (decibels - min_db) / (max_db - min_db)
    scaled = np.nan_to_num(scaled, nan=0.0, neginf=0.0, posinf=255.0)
    return np.clip(np.floor(scaled), 0, 255).astype(np.uint8), magnitudes


def byte_time_domain_data(samples: np.ndarray) -> np.ndarray:
    """Map samples in ``[-1, 1]`` onto bytes centred on ``128``."""
    scaled = np.floor(TIME_DOMAIN_CENTER * (1.0 + samples))
    return np.clip(scaled, 0, 255).astype(np.uint8)


class SpectralFrontend:
    """Capture audio from an input device and expose spectral snapshots.

    Args:
        device: ``sounddevice`` device index or name; ``None`` selects the
            system default input.
        sample_rate: Requested sampling frequency in hertz.
        fft_size: Transform size; the frequency snapshot has
            ``fft_size // 2`` bins.
        block_size: Samples per audio callback.
        hp_cutoff: High-pass filter cutoff frequency in hertz.
        channels: Number of input channels; they are mixed down to mono.
    """

    def __init__(
        self,
        device: Optional[int | str] = None,
        *,
        sample_rate: int = SAMPLE_RATE,
        fft_size: int = FFT_SIZE,
        block_size: int = BLOCK_SIZE,
        hp_cutoff: float = HP_FILTER_CUTOFF,
        channels: int = 1,
    ) -> None:
        self.device = device
        self.sample_rate = float(sample_rate)
        self.fft_size = fft_size
        self.block_size = block_size
        self.hp_cutoff = hp_cutoff
        self.channels = channels
        self.stream = None
        self._running = False
        self._lock = threading.Lock()
        self._ring = np.zeros(fft_size, dtype=np.float32)
        self._smoothed: Optional[np.ndarray] = None
        self._build_filter()

    # --------------------------------------------------------------
    def _build_filter(self) -> None:
        self.hp_sos = butter(
            HP_FILTER_ORDER, self.hp_cutoff, "hp", fs=self.sample_rate, output="sos"
        )
        self.hp_zi: Optional[np.ndarray] = None

    def _reset_buffers(self) -> None:
        with self._lock:
            self._ring[:] = 0.0
            self._smoothed = None
            self.hp_zi = None

    # --------------------------------------------------------------
    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def bin_frequency(self, index: int) -> float:
        """Return the frequency in hertz represented by bin ``index``."""
        return index * (self.sample_rate / 2.0) / self.bin_count

    def frequency_axis(self) -> np.ndarray:
        return bin_frequencies(self.bin_count, self.sample_rate)

    # --------------------------------------------------------------
    def push(self, block: np.ndarray) -> None:
        """Filter ``block`` and append it to the analysis buffer."""

        if block.ndim == 2 and block.shape[1] > 1:
            samples = block.mean(axis=1).astype(np.float32)
        else:
            samples = block.reshape(-1).astype(np.float32)
        if samples.size == 0:
            return

        if self.hp_zi is None:
            self.hp_zi = sosfilt_zi(self.hp_sos) * samples[0]
        filtered, self.hp_zi = sosfilt(self.hp_sos, samples, zi=self.hp_zi)

        n = filtered.size
        with self._lock:
            if n >= self.fft_size:
                self._ring[:] = filtered[-self.fft_size :]
            else:
                self._ring[:-n] = self._ring[n:]
                self._ring[-n:] = filtered

    def _callback(self, indata, frames, _time, status) -> None:  # noqa: D401
        if status:
            logger.warning("Input stream status: %s", status)
        self.push(indata)

    # --------------------------------------------------------------
    def start(self, on_ready: Optional[Callable[[], None]] = None) -> None:
        """Open the input device and begin filling the analysis buffer.

        ``on_ready`` is called once the stream is running.  A failure to
        open the device raises :class:`~coinping.models.DeviceUnavailable`;
        the caller decides whether to try again.
        """

        if self._running:
            return
        import sounddevice as sd

        self._reset_buffers()
        try:
            stream = sd.InputStream(
                device=self.device,
                channels=self.channels,
                samplerate=self.sample_rate,
                blocksize=self.block_size,
                dtype="float32",
                callback=self._callback,
            )
        except Exception as exc:
            raise DeviceUnavailable(f"Audio input unavailable: {exc}") from exc
        try:
            stream.start()
        except Exception as exc:
            stream.close()
            raise DeviceUnavailable(f"Audio input unavailable: {exc}") from exc

        actual_rate = float(getattr(stream, "samplerate", self.sample_rate) or self.sample_rate)
        if actual_rate != self.sample_rate:
            logger.info("Device opened at %.0f Hz instead of %.0f Hz", actual_rate, self.sample_rate)
            self.sample_rate = actual_rate
            self._build_filter()
        self.stream = stream
        self._running = True
        logger.info(
            "Listening on device %s at %.0f Hz (fft %d, high-pass %.0f Hz)",
            self.device if self.device is not None else "default",
            self.sample_rate,
            self.fft_size,
            self.hp_cutoff,
        )
        if on_ready is not None:
            on_ready()

    def stop(self) -> None:
        """Release the input device.  Does nothing when already stopped."""

        if self.stream is None:
            self._running = False
            return
        self._running = False
        stream, self.stream = self.stream, None
        try:
            stream.stop()
        finally:
            stream.close()
        self.hp_zi = None
        logger.info("Audio input released")

    # --------------------------------------------------------------
    def sample_frequency_snapshot(self) -> np.ndarray:
        """Return the current byte magnitude of every frequency bin."""
        with self._lock:
            samples = self._ring.copy()
            previous = self._smoothed
        data, self._smoothed = byte_frequency_data(samples, previous)
        return data

    def sample_time_snapshot(self) -> np.ndarray:
        """Return the current waveform as bytes centred on 128."""
        with self._lock:
            samples = self._ring.copy()
        return byte_time_domain_data(samples)


__all__ = ["byte_frequency_data", "byte_time_domain_data", "SpectralFrontend"]
