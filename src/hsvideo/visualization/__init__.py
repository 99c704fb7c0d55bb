"""Display helpers for hsvideo."""

from hsvideo.visualization.compare import SideBySideViewer

__all__ = ['SideBySideViewer']
