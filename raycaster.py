import logging
import time
from functools import lru_cache

import numpy as np
from geometry import Sphere, no_hit
from utils import vec, normalize, clamp_unit

"""
Core implementation of the ray caster.  This module contains the classes (Ray, OrthoCamera,
Scene, PixelFormat, FrameInfo) used in the rendering algorithm, the shading functions, and the
main entry point `render_frame`, which turns a scene into a raw frame buffer.

Every shading step exists twice: once for a single ray (`Scene.intersect`, `shade`,
`render_pixel`) and once for a whole frame of parallel rays at a time (`Scene.intersect_rays`,
`shade_rays`).  Both go through `Sphere.near_root`, so they agree to rounding.
"""

logger = logging.getLogger(__name__)

BACKGROUND_COLOR = vec([0.0, 0.0, 0.1])  # dark blue
FORWARD = vec([0.0, 0.0, 1.0])

RED = vec([1.0, 0.0, 0.0])
GREEN = vec([0.0, 1.0, 0.0])
BLUE = vec([0.0, 0.0, 1.0])


class Ray:

    def __init__(self, origin, direction, start=-np.inf, end=np.inf):
        """Create a ray with the given origin and direction.

        Parameters:
          origin : (3,) or (..., 3) -- the start point of the ray, or one start point per pixel
          direction : (3,) -- the direction of the ray (not necessarily normalized)
          start, end : float -- accepted range of t; the default start of -inf keeps hits
            behind the origin
        """
        self.origin = np.array(origin, np.float64)
        self.direction = np.array(direction, np.float64)
        self.start = start
        self.end = end


class OrthoCamera:

    def __init__(self, direction=FORWARD, cull_behind=False):
        """Create a camera that shoots parallel rays from the z=0 plane.

        Parameters:
          direction : (3,) -- the shared direction of every ray
          cull_behind : bool -- discard intersections behind the ray origin (t < 0)
        """
        self.direction = vec(direction)
        self.cull_behind = cull_behind
        self.start = 0. if cull_behind else -np.inf

    def device_coords(self, col, row, nx, ny):
        """Map a pixel index to device coordinates.

        x spans [-1, 1); y is scaled by the aspect ratio ny/nx and x is not.
        Works on scalars and on index arrays alike.
        """
        aspect = ny / nx
        x = 2.0 * (col / nx - 0.5)
        y = 2.0 * aspect * (row / ny - 0.5)
        return x, y

    def generate_ray(self, x, y):
        """Compute the ray for a point in device coordinates."""
        return Ray(vec([x, y, 0.0]), self.direction, start=self.start)

    def generate_rays(self, nx, ny):
        """Compute one batched ray holding an origin for every pixel, shape (ny, nx, 3)."""
        rows, cols = np.mgrid[0:ny, 0:nx]
        x, y = self.device_coords(cols, rows, nx, ny)
        origin = np.stack([x, y, np.zeros_like(x)], axis=-1)
        return Ray(origin, self.direction, start=self.start)


class Scene:

    def __init__(self, surfs, bg_color=BACKGROUND_COLOR):
        """Create a scene containing the given spheres.

        The spheres keep their insertion order; hits report their position in it.
        """
        self.surfs = tuple(surfs)
        self.bg_color = vec(bg_color)
        self.centers = np.array([s.center for s in self.surfs], np.float64).reshape(-1, 3)
        self.colors = np.array([s.color for s in self.surfs], np.float64).reshape(-1, 3)
        for a in (self.bg_color, self.centers, self.colors):
            a.setflags(write=False)

    def __len__(self):
        return len(self.surfs)

    def __getitem__(self, index):
        return self.surfs[index]

    def intersect(self, ray):
        """Computes the intersection with the smallest t between a ray and the scene.

        t is compared signed, so a hit behind the origin beats any hit in front of it
        unless the ray's start excludes it.  On equal t the earlier sphere wins.
        """
        closest_hit = no_hit
        for index, surf in enumerate(self.surfs):
            hit = surf.intersect(ray)
            if hit.t < closest_hit.t:
                hit.index = index
                closest_hit = hit
        return closest_hit

    def intersect_rays(self, ray):
        """Batched `intersect`: returns (t, index) arrays, with index -1 where nothing is hit."""
        shape = ray.origin.shape[:-1]
        best_t = np.full(shape, np.inf)
        best_index = np.full(shape, -1, dtype=np.intp)
        for index, surf in enumerate(self.surfs):
            t = surf.intersect_rays(ray)
            closer = t < best_t
            best_t = np.where(closer, t, best_t)
            best_index = np.where(closer, index, best_index)
        return best_t, best_index


def shade(ray, hit, scene):
    """Compute the color seen along a ray given its nearest hit.

    The shade is |d . n| with the ray direction d used unnormalized, so it is a
    true cosine only for unit directions.
    """
    if hit.t == np.inf:
        return scene.bg_color
    s = abs(np.dot(ray.direction, hit.normal))
    return s * hit.color


def shade_rays(ray, t, index, scene):
    """Batched `shade` over the output of `Scene.intersect_rays`."""
    colors = np.empty(t.shape + (3,))
    colors[...] = scene.bg_color
    hit = index >= 0
    if not np.any(hit):
        return colors
    hit_index = index[hit]
    origin = np.broadcast_to(ray.origin, t.shape + (3,))[hit]
    point = origin + t[hit][:, np.newaxis] * ray.direction
    normal = normalize(point - scene.centers[hit_index])
    s = np.abs(np.sum(ray.direction * normal, axis=-1))
    colors[hit] = s[:, np.newaxis] * scene.colors[hit_index]
    return colors


def render_pixel(x, y, scene, camera=None):
    """Color of the pixel at device coordinates (x, y), clamped to [0, 1]."""
    if camera is None:
        camera = OrthoCamera()
    ray = camera.generate_ray(x, y)
    return clamp_unit(shade(ray, scene.intersect(ray), scene))


def render_image(camera, scene, nx, ny, per_pixel=False):
    """
    render a ray cast image as an (ny, nx, 3) float array with values in [0, 1].

    Row 0 is the top of the image.  With per_pixel the frame is walked one pixel
    at a time through `render_pixel`; otherwise it is shaded as a single batch.
    """
    if not per_pixel:
        ray = camera.generate_rays(nx, ny)
        t, index = scene.intersect_rays(ray)
        return clamp_unit(shade_rays(ray, t, index, scene))

    output_image = np.zeros((ny, nx, 3), np.float64)
    for i in range(ny):
        logger.debug("rendering row %d/%d", i + 1, ny)
        for j in range(nx):
            x, y = camera.device_coords(j, i, nx, ny)
            output_image[i, j] = render_pixel(x, y, scene, camera)
    return output_image


class PixelFormat:

    def __init__(self, channels, bytes_per_channel):
        """Layout of one pixel in a frame buffer.

        Parameters:
          channels : int -- 3 for RGB, 4 for RGBA (alpha is always opaque)
          bytes_per_channel : int -- 1, 2 or 4; wider channels are stored big-endian
        """
        if channels not in (3, 4):
            raise ValueError("unsupported channel count: {}".format(channels))
        if bytes_per_channel not in (1, 2, 4):
            raise ValueError("unsupported bytes per channel: {}".format(bytes_per_channel))
        self.channels = channels
        self.bytes_per_channel = bytes_per_channel

    @classmethod
    def rgb8(cls):
        return cls(3, 1)

    @classmethod
    def rgba8(cls):
        return cls(4, 1)

    @classmethod
    def rgb16(cls):
        return cls(3, 2)

    @property
    def bytes_per_pixel(self):
        return self.channels * self.bytes_per_channel

    @property
    def channel_factor(self):
        """Largest channel value: 255 for 8-bit channels."""
        return float((1 << (8 * (self.bytes_per_pixel // self.channels))) - 1)

    @property
    def dtype(self):
        if self.bytes_per_channel == 1:
            return np.dtype(np.uint8)
        return np.dtype('>u{}'.format(self.bytes_per_channel))

    def __eq__(self, other):
        return (isinstance(other, PixelFormat) and self.channels == other.channels
                and self.bytes_per_channel == other.bytes_per_channel)

    def __hash__(self):
        return hash((self.channels, self.bytes_per_channel))

    def __repr__(self):
        return "PixelFormat(channels={}, bytes_per_channel={})".format(
            self.channels, self.bytes_per_channel)


class FrameInfo:

    def __init__(self, width, height, pixel_format):
        """Metadata describing a frame buffer: size and pixel layout."""
        self.width = width
        self.height = height
        self.pixel_format = pixel_format

    @property
    def shape(self):
        return (self.height, self.width, self.pixel_format.channels)

    @property
    def byte_size(self):
        return self.width * self.height * self.pixel_format.bytes_per_pixel


def quantize(image, pixel_format):
    """Clamp float colors to [0, 1], scale by the channel factor, truncate, and pack to bytes."""
    pixels = clamp_unit(image)
    if pixel_format.channels == 4:
        alpha = np.ones(pixels.shape[:-1] + (1,))
        pixels = np.concatenate([pixels, alpha], axis=-1)
    return (pixels * pixel_format.channel_factor).astype(pixel_format.dtype).tobytes()


@lru_cache(maxsize=None)
def default_scene():
    """The fixed three-sphere scene, built once and shared."""
    return Scene([
        Sphere(vec([0.3, 0.0, 5.0]), 0.5, GREEN),
        Sphere(vec([0.2, 0.2, 3.0]), 0.2, BLUE),
        Sphere(vec([-0.2, 0.0, 4.0]), 0.3, RED),
    ])


def render_frame(width, height, pixel_format=None, scene=None, camera=None, per_pixel=False):
    """Render a full frame and return it as a raw, row-major, channel-interleaved buffer.

    Parameters:
      width, height : int -- resolution in pixels
      pixel_format : PixelFormat -- defaults to 8-bit RGB
      scene : Scene -- defaults to `default_scene()`
      camera : OrthoCamera -- defaults to a forward-looking camera that keeps hits behind it
      per_pixel : bool -- shade pixel by pixel instead of as one batch
    Return:
      bytes -- exactly width * height * bytes_per_pixel long
    """
    if width <= 0 or height <= 0:
        raise ValueError("resolution must be positive, got {}x{}".format(width, height))
    if pixel_format is None:
        pixel_format = PixelFormat.rgb8()
    if scene is None:
        scene = default_scene()
    if camera is None:
        camera = OrthoCamera()
    frame_info = FrameInfo(width, height, pixel_format)

    start_time = time.perf_counter()
    image = render_image(camera, scene, width, height, per_pixel=per_pixel)
    pixel_data = quantize(image, pixel_format)

    assert len(pixel_data) == frame_info.byte_size, \
        "frame buffer is {} bytes, expected {}".format(len(pixel_data), frame_info.byte_size)

    logger.info("rendered %dx%d frame (%d bytes) in %.3f s",
                width, height, len(pixel_data), time.perf_counter() - start_time)
    return pixel_data
