"""Container formats (demux/mux)."""

from wavsmith.container.wav import WavContainer, WavReader, WavWriter

__all__ = ["WavContainer", "WavReader", "WavWriter"]
