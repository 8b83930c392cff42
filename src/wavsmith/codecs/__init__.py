"""Codecs (decode/encode)."""

from wavsmith.codecs.pcm import PcmCodec

__all__ = ["PcmCodec"]
