"""Analysis of tracked regions."""

from hsvideo.analysis.profile import track_profile, track_outline

__all__ = ['track_profile', 'track_outline']
