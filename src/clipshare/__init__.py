"""Clipshare media pipeline.

Turns one source video into a canonical transcoded file, shot boundaries,
sampled preview frames, per-range clips and an exportable control package.
"""

__version__ = "0.4.0"
