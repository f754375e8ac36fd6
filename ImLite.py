import logging

from PIL import Image as PIM
import numpy as np

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


class Image(object):
    """Image

    Thin wrapper around an (h, w, c) pixel array that can be built from a raw frame
    buffer, shown in a window, or written to disk.
    """

    def __init__(self, pixels=None, path=None):
        # You can do Image(pixels) or Image(path=...)
        self._samples = None
        self.file_path = path
        self.pixels = pixels
        if self.file_path is not None and pixels is None:
            self.loadImageData(self.file_path)

    @classmethod
    def FromFrameBuffer(cls, frame_info, buffer):
        """Wrap a raw frame buffer laid out as described by frame_info (a FrameInfo)."""
        if len(buffer) != frame_info.byte_size:
            raise ValueError("buffer is {} bytes but the frame needs {}".format(
                len(buffer), frame_info.byte_size))
        pix = np.frombuffer(buffer, dtype=frame_info.pixel_format.dtype)
        return cls(pixels=pix.reshape(frame_info.shape))

    @property
    def pixels(self):
        return self._samples

    @pixels.setter
    def pixels(self, data):
        self._samples = data

    @property
    def n_color_channels(self):
        if len(self.pixels.shape) < 3:
            return 1
        return self.pixels.shape[2]

    @property
    def dtype(self):
        return self.pixels.dtype

    @property
    def _is_float(self):
        return self.dtype.kind in 'f'

    @property
    def _is_int(self):
        return self.dtype.kind in 'iu'

    @property
    def fpixels(self):
        if self._is_float:
            return self.pixels
        return self.pixels.astype(float) * np.true_divide(1.0, np.iinfo(self.dtype).max)

    @property
    def ipixels(self):
        """Pixels as 8-bit integers, the only depth the viewers take."""
        if self.dtype == np.uint8:
            return self.pixels
        return (np.clip(self.fpixels, 0.0, 1.0) * 255).astype(np.uint8)

    @property
    def shape(self):
        return np.asarray(self.pixels.shape)[:]

    @property
    def width(self):
        return self.shape[1]

    @property
    def height(self):
        return self.shape[0]

    def loadImageData(self, path=None):
        if path:
            self.file_path = path
        if self.file_path:
            with PIM.open(fp=self.file_path) as pim:
                self._samples = np.array(pim)

    def PIL(self):
        return PIM.fromarray(np.ascontiguousarray(self.ipixels))

    def writeToFile(self, output_path=None, **kwargs):
        self.PIL().save(output_path, **kwargs)
        logger.info("wrote %dx%d image to %s", self.width, self.height, output_path)

    def show(self, title=None):
        """Show the image in a window until it is closed.

        Returns True if the window was dismissed with Escape.
        """
        fig = plt.figure(num=title)
        plt.imshow(self.ipixels)
        plt.axis('off')
        if title:
            plt.title(title)
        handler = EscapeToClose(fig)
        fig.canvas.mpl_connect('key_press_event', handler)
        plt.show()
        plt.close(fig)
        return handler.escaped


class EscapeToClose(object):
    """Key handler that logs key presses and closes its figure on Escape."""

    def __init__(self, figure):
        self.figure = figure
        self.escaped = False

    def __call__(self, event):
        logger.debug("key press: %r", event.key)
        if event.key == 'escape':
            self.escaped = True
            plt.close(self.figure)


def present(frame_info, buffer, title='image'):
    """Display a raw frame buffer in a window.

    This is the only place the display is touched; nothing flows back into the
    renderer except whether Escape ended the session.
    """
    im = Image.FromFrameBuffer(frame_info, buffer)
    return im.show(title=title)
