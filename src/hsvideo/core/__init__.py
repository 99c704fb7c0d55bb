"""Video aggregate and its collaborators: frame store, tracks, events, persistence."""

from hsvideo.core.events import VideoEvent, EventChannel, DisplaySession
from hsvideo.core.frame_store import FrameStore, ArrayFrameStore, owner_of
from hsvideo.core.tracks import ShapeKind, Track, normalize_tracks, track_center, tracks_to_frame
from hsvideo.core.persistence import MinimizeStoreHasher, to_jsonable, canonical_json, backup_path
from hsvideo.core.parameter_file import read_parameter_file, apply_cih
from hsvideo.core.video import Video, check_videos, PERSISTED_FIELDS

__all__ = [
    'VideoEvent',
    'EventChannel',
    'DisplaySession',
    'FrameStore',
    'ArrayFrameStore',
    'owner_of',
    'ShapeKind',
    'Track',
    'normalize_tracks',
    'track_center',
    'tracks_to_frame',
    'MinimizeStoreHasher',
    'to_jsonable',
    'canonical_json',
    'backup_path',
    'read_parameter_file',
    'apply_cih',
    'Video',
    'check_videos',
    'PERSISTED_FIELDS',
]
