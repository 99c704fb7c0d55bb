"""Root-level pytest fixtures for the hsvideo test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture. Tests use these fixtures instead of creating raw dict configs.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from hsvideo.schemas import ParamConfig, UserConfig, resolve_config

from tests.helpers.fake_video import make_frames, make_video


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).

    Examples
    --------
    >>> def test_video_init(internal_config):
    ...     video = Video(np.zeros((4, 4, 2)), config=internal_config)
    ...     assert video.minimize_store
    """
    return resolve_config(param_config, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Examples
    --------
    >>> def test_small_chunks(make_config):
    ...     config = make_config(CHUNK_SIZE_MIB=0.001)
    ...     assert config.video.chunk_size_mib == 0.001
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user)
        return resolve_config(param_config, None)

    return _make


# =============================================================================
# Video Fixtures
# =============================================================================

@pytest.fixture
def frames():
    """Deterministic uint16 frames of shape (6, 8, 1, 5)."""
    return make_frames()


@pytest.fixture
def video(internal_config):
    """Unlocked video with a rect and a line track."""
    return make_video(config=internal_config, with_tracks=True)


@pytest.fixture
def video_factory(internal_config):
    """Factory fixture for videos with custom geometry and data."""
    def _make(**kwargs):
        kwargs.setdefault("config", internal_config)
        return make_video(**kwargs)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)
