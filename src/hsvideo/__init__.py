"""`hsvideo` - physical geometry and chunked processing for high-speed video.

Subpackages:
- geometry: Orientation, pixel/physical transform, lazy cache, ROI reprojection
- core: Video aggregate, frame store, tracks, events, persistence
- pipeline: Stage interface and chunked processing pipeline
- analysis: Track profiles
- visualization: Debug comparison view
"""

__version__ = "0.1.0"
