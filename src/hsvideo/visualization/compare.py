"""Side-by-side comparison of production frames and a debug sandbox.

Renders the original frame on the left and the processed sandbox frame on
the right, both in physical coordinates.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from hsvideo.contracts import require

__all__ = ['SideBySideViewer']

logger = logging.getLogger(__name__)


class SideBySideViewer:
    """Compare frames of a video with the matching frames of its sandbox.

    Parameters
    ----------
    production : Video
        Original video.
    sandbox : Video
        Debug copy; sandbox frame ``i`` corresponds to ``frames[i]``.
    frames : sequence of int, optional
        Production frame indices held by the sandbox; defaults to
        ``0 .. sandbox.n_frames - 1``.
    figsize : tuple, optional
        Matplotlib figure size in inches.

    Examples
    --------
    >>> viewer = SideBySideViewer(video, video.temp, frames=[0, 2, 4])
    >>> viewer.save("compare.png", position=1)
    """

    def __init__(self, production, sandbox, frames: Optional[Sequence[int]] = None,
                 figsize=(10, 4.5), cmap: str = "gray"):
        self.production = production
        self.sandbox = sandbox
        if frames is None:
            frames = range(sandbox.n_frames)
        self.frames = [int(f) for f in frames]
        require(len(self.frames) == sandbox.n_frames,
                f"Sandbox holds {sandbox.n_frames} frames but {len(self.frames)} were selected")
        self.figsize = figsize
        self.cmap = cmap
        self.figure = None

    @staticmethod
    def _image(video, index: int) -> np.ndarray:
        frame = video.frames.get([index])[:, :, :, 0]
        if frame.shape[2] == 1:
            return frame[:, :, 0]
        if frame.shape[2] == 3:
            return frame
        return frame[:, :, 0]

    @staticmethod
    def _extent(video):
        x, y = video.x, video.y
        if x.size == 0 or y.size == 0:
            return None
        dx = (x[-1] - x[0]) / (2 * max(x.size - 1, 1)) if x.size > 1 else video.pitch_x / 2
        dy = (y[-1] - y[0]) / (2 * max(y.size - 1, 1)) if y.size > 1 else video.pitch_y / 2
        return (x[0] - dx, x[-1] + dx, y[-1] + dy, y[0] - dy)

    def render(self, position: int = 0):
        """Draw the comparison for the ``position``-th selected frame."""
        require(0 <= position < len(self.frames),
                f"Position {position} outside the {len(self.frames)} compared frames")
        frame = self.frames[position]
        if self.figure is not None:
            plt.close(self.figure)
        fig, (ax1, ax2) = plt.subplots(1, 2, figsize=self.figsize, sharex=True, sharey=True)

        for ax, video, index, title in (
            (ax1, self.production, frame, f"{self.production.name} [{frame}]"),
            (ax2, self.sandbox, position, f"{self.sandbox.name} [{position}]"),
        ):
            ax.imshow(self._image(video, index), cmap=self.cmap, extent=self._extent(video),
                      interpolation="nearest")
            ax.set_title(title)
            ax.set_xlabel(video.geometry.x_label)
            ax.set_ylabel(video.geometry.y_label)

        plt.tight_layout()
        self.figure = fig
        return fig

    def save(self, output_path: Union[str, Path], position: int = 0, dpi: int = 100) -> str:
        fig = self.render(position)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=dpi, bbox_inches='tight')
        logger.info("Saved comparison: %s", output_path.name)
        return str(output_path)

    def show(self, position: int = 0):
        """Render and return the figure; a no-op display with the Agg backend."""
        fig = self.render(position)
        logger.debug("Comparison of %d frame(s) rendered for '%s'",
                     len(self.frames), self.production.name)
        return fig

    def close(self):
        if self.figure is not None:
            plt.close(self.figure)
            self.figure = None
