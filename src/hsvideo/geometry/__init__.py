"""Geometry engine: orientation, coordinate transform, cache and ROI reprojection."""

from hsvideo.geometry.orientation import Orientation, resolve_orientation, validate_normal, axis_vector
from hsvideo.geometry.transform import CoordinateTransform
from hsvideo.geometry.cache import GeometryParams, LazyGeometryCache
from hsvideo.geometry.reprojector import ROIReprojector, BOX_SHAPES, VERTEX_SHAPES

__all__ = [
    'Orientation',
    'resolve_orientation',
    'validate_normal',
    'axis_vector',
    'CoordinateTransform',
    'GeometryParams',
    'LazyGeometryCache',
    'ROIReprojector',
    'BOX_SHAPES',
    'VERTEX_SHAPES',
]
