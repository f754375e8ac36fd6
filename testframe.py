import unittest
import numpy as np
from raycaster import *
from utils import vec


def pixel_at(buffer, frame_info, row, col):
    fmt = frame_info.pixel_format
    pix = np.frombuffer(buffer, dtype=fmt.dtype).reshape(frame_info.shape)
    return pix[row, col]


class TestPixelFormat(unittest.TestCase):

    def test_channel_factor(self):
        self.assertEqual(PixelFormat.rgb8().channel_factor, 255.0)
        self.assertEqual(PixelFormat.rgba8().channel_factor, 255.0)
        self.assertEqual(PixelFormat.rgb16().channel_factor, 65535.0)
        self.assertEqual(PixelFormat(3, 4).channel_factor, 4294967295.0)

    def test_layout(self):
        self.assertEqual(PixelFormat.rgb8().bytes_per_pixel, 3)
        self.assertEqual(PixelFormat.rgba8().bytes_per_pixel, 4)
        self.assertEqual(PixelFormat.rgb16().bytes_per_pixel, 6)
        self.assertEqual(PixelFormat.rgb16(), PixelFormat(3, 2))
        self.assertEqual(FrameInfo(640, 480, PixelFormat.rgb8()).byte_size, 921600)

    def test_rejects_unsupported_layouts(self):
        with self.assertRaises(ValueError):
            PixelFormat(1, 1)
        with self.assertRaises(ValueError):
            PixelFormat(3, 3)


class TestQuantize(unittest.TestCase):

    def test_endpoints(self):
        image = vec([[[1.0, 0.0, 0.5]]])
        self.assertEqual(quantize(image, PixelFormat.rgb8()), bytes([255, 0, 127]))

    def test_out_of_range_is_clamped(self):
        image = vec([[[1.2, -0.3, np.nan]]])
        self.assertEqual(quantize(image, PixelFormat.rgb8()), bytes([255, 0, 0]))

    def test_truncates(self):
        # 0.999 * 255 = 254.745 truncates, it does not round
        image = vec([[[0.999, 0.1, 0.0]]])
        self.assertEqual(quantize(image, PixelFormat.rgb8()), bytes([254, 25, 0]))

    def test_rgba_is_opaque(self):
        image = vec([[[0.0, 0.0, 0.1], [1.0, 1.0, 1.0]]])
        self.assertEqual(quantize(image, PixelFormat.rgba8()),
                         bytes([0, 0, 25, 255, 255, 255, 255, 255]))

    def test_rgb16_is_big_endian(self):
        image = vec([[[1.0, 0.0, 0.5]]])
        self.assertEqual(quantize(image, PixelFormat.rgb16()),
                         bytes([0xff, 0xff, 0x00, 0x00, 0x7f, 0xff]))


class TestRenderFrame(unittest.TestCase):

    def test_buffer_size_640x480(self):
        buffer = render_frame(640, 480, PixelFormat.rgb8())
        self.assertIsInstance(buffer, bytes)
        self.assertEqual(len(buffer), 921600)

    def test_buffer_size_other_formats(self):
        for fmt in (PixelFormat.rgba8(), PixelFormat.rgb16(), PixelFormat(4, 4)):
            self.assertEqual(len(render_frame(33, 17, fmt)),
                             FrameInfo(33, 17, fmt).byte_size)

    def test_rejects_empty_resolution(self):
        with self.assertRaises(ValueError):
            render_frame(0, 480)
        with self.assertRaises(ValueError):
            render_frame(640, -1)

    def test_per_pixel_matches_batched(self):
        camera = OrthoCamera()
        scene = default_scene()
        batched = render_image(camera, scene, 40, 30)
        walked = render_image(camera, scene, 40, 30, per_pixel=True)
        self.assertEqual(batched.shape, (30, 40, 3))
        np.testing.assert_allclose(batched, walked, atol=1e-12)

    def test_per_pixel_matches_batched_culled(self):
        camera = OrthoCamera(cull_behind=True)
        scene = Scene([
            Sphere(vec([0, 0, 4]), 0.4, BLUE),
            Sphere(vec([0, 0, -3]), 0.8, RED),
        ])
        np.testing.assert_allclose(render_image(camera, scene, 24, 16),
                                   render_image(camera, scene, 24, 16, per_pixel=True),
                                   atol=1e-12)

    def test_golden_pixels(self):
        # pixel (row 304, col 384) of a 640x480 frame is device (0.2, 0.2):
        # the blue sphere head on
        info = FrameInfo(640, 480, PixelFormat.rgb8())
        buffer = render_frame(640, 480)
        x, y = OrthoCamera().device_coords(384, 304, 640, 480)
        self.assertAlmostEqual(x, 0.2)
        self.assertAlmostEqual(y, 0.2)
        np.testing.assert_array_equal(pixel_at(buffer, info, 304, 384), [0, 0, 255])
        # corner pixel misses everything: background (0, 0, 0.1) -> (0, 0, 25)
        np.testing.assert_array_equal(pixel_at(buffer, info, 0, 0), [0, 0, 25])
        # green sphere center column
        x, y = OrthoCamera().device_coords(416, 240, 640, 480)
        self.assertAlmostEqual(x, 0.3)
        self.assertEqual(y, 0.0)
        np.testing.assert_array_equal(pixel_at(buffer, info, 240, 416), [0, 255, 0])

    def test_row_major_top_down(self):
        # a single sphere in the lower half of device space lands in the bottom rows
        scene = Scene([Sphere(vec([0, 0.5, 5]), 0.2, RED)])
        info = FrameInfo(20, 20, PixelFormat.rgb8())
        buffer = render_frame(20, 20, scene=scene)
        self.assertEqual(pixel_at(buffer, info, 15, 10)[0], 255)
        self.assertEqual(pixel_at(buffer, info, 5, 10)[0], 0)
        # same pixel read straight from the flat buffer
        offset = (15 * 20 + 10) * 3
        self.assertEqual(buffer[offset:offset + 3], bytes([255, 0, 0]))

    def test_behind_camera_modes(self):
        scene = Scene([
            Sphere(vec([0, 0, 4]), 0.4, BLUE),
            Sphere(vec([0, 0, -3]), 0.8, RED),
        ])
        info = FrameInfo(20, 20, PixelFormat.rgb8())
        faithful = render_frame(20, 20, scene=scene)
        corrected = render_frame(20, 20, scene=scene, camera=OrthoCamera(cull_behind=True))
        np.testing.assert_array_equal(pixel_at(faithful, info, 10, 10), [255, 0, 0])
        np.testing.assert_array_equal(pixel_at(corrected, info, 10, 10), [0, 0, 255])

    def test_default_scene_is_shared(self):
        self.assertIs(default_scene(), default_scene())
        self.assertEqual(len(default_scene()), 3)


if __name__ == '__main__':
    unittest.main()
