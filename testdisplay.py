import os
import tempfile
import unittest
from types import SimpleNamespace

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
from PIL import Image as PIM

import cli
import raycaster
from ExampleSceneDef import EXAMPLES, BehindCameraExample, SingleSphereExample, ThreeSpheresExample
from ImLite import EscapeToClose, Image, present


class TestImage(unittest.TestCase):

    def test_from_frame_buffer(self):
        info = raycaster.FrameInfo(4, 2, raycaster.PixelFormat.rgb8())
        buffer = bytes(range(24))
        im = Image.FromFrameBuffer(info, buffer)
        self.assertEqual(im.width, 4)
        self.assertEqual(im.height, 2)
        self.assertEqual(im.n_color_channels, 3)
        np.testing.assert_array_equal(im.pixels[1, 0], [12, 13, 14])

    def test_from_frame_buffer_rejects_wrong_size(self):
        info = raycaster.FrameInfo(4, 2, raycaster.PixelFormat.rgb8())
        with self.assertRaises(ValueError):
            Image.FromFrameBuffer(info, bytes(23))

    def test_rgb16_converts_to_8_bit(self):
        fmt = raycaster.PixelFormat.rgb16()
        info = raycaster.FrameInfo(1, 1, fmt)
        im = Image.FromFrameBuffer(info, bytes([0xff, 0xff, 0x00, 0x00, 0x7f, 0xff]))
        np.testing.assert_array_equal(im.pixels[0, 0], [65535, 0, 32767])
        np.testing.assert_array_equal(im.ipixels[0, 0], [255, 0, 127])

    def test_rgba_frame_to_pil(self):
        info = raycaster.FrameInfo(8, 6, raycaster.PixelFormat.rgba8())
        im = Image.FromFrameBuffer(info, raycaster.render_frame(8, 6, info.pixel_format))
        self.assertEqual(im.PIL().mode, 'RGBA')
        self.assertEqual(im.PIL().size, (8, 6))

    def test_write_and_load(self):
        info = raycaster.FrameInfo(16, 12, raycaster.PixelFormat.rgb8())
        buffer = raycaster.render_frame(16, 12)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'frame.png')
            Image.FromFrameBuffer(info, buffer).writeToFile(path)
            loaded = Image(path=path)
            self.assertEqual(loaded.pixels.tobytes(), buffer)


class TestDisplay(unittest.TestCase):

    def test_escape_closes_figure(self):
        fig = plt.figure()
        handler = EscapeToClose(fig)
        handler(SimpleNamespace(key='a'))
        self.assertFalse(handler.escaped)
        self.assertTrue(plt.fignum_exists(fig.number))
        handler(SimpleNamespace(key='escape'))
        self.assertTrue(handler.escaped)
        self.assertFalse(plt.fignum_exists(fig.number))

    def test_present_returns_without_escape(self):
        info = raycaster.FrameInfo(8, 6, raycaster.PixelFormat.rgb8())
        escaped = present(info, raycaster.render_frame(8, 6), title='image')
        self.assertFalse(escaped)
        self.assertFalse(plt.get_fignums())


class TestExampleScenes(unittest.TestCase):

    def test_examples_render(self):
        for name, make in EXAMPLES.items():
            im = make().render(output_shape=[12, 16])
            self.assertEqual((im.height, im.width), (12, 16), name)

    def test_single_sphere_is_red(self):
        im = SingleSphereExample().render(output_shape=[30, 40])
        # column 26 of 40 is device x = 0.3, the sphere's center
        np.testing.assert_array_equal(im.pixels[15, 26], [255, 0, 0])

    def test_three_spheres_golden(self):
        # row 304, col 384 of 640x480 is device (0.2, 0.2)
        im = ThreeSpheresExample().render(output_shape=[480, 640])
        np.testing.assert_array_equal(im.pixels[304, 384], [0, 0, 255])

    def test_behind_camera_modes(self):
        faithful = BehindCameraExample().render(output_shape=[10, 10])
        corrected = BehindCameraExample(cull_behind=True).render(output_shape=[10, 10])
        np.testing.assert_array_equal(faithful.pixels[5, 5], [255, 0, 0])
        np.testing.assert_array_equal(corrected.pixels[5, 5], [0, 0, 255])


class TestCli(unittest.TestCase):

    def test_defaults(self):
        args = cli.parse_arguments([])
        self.assertEqual((args.width, args.height), (640, 480))
        self.assertEqual(args.scene, 'three')
        self.assertEqual(args.format, 'rgb8')
        self.assertFalse(args.cull_behind)

    def test_rejects_bad_resolution(self):
        with self.assertRaises(SystemExit):
            cli.parse_arguments(['--width', '0'])

    def test_main_writes_png(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'out.png')
            status = cli.main(['--width', '32', '--height', '24', '--no-show',
                               '--output', path, '--log-level', 'WARNING'])
            self.assertEqual(status, 0)
            with PIM.open(path) as im:
                self.assertEqual(im.size, (32, 24))
                self.assertEqual(im.mode, 'RGB')

    def test_main_rgb16_per_pixel(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'out.png')
            cli.main(['--scene', 'behind', '--width', '10', '--height', '10', '--format', 'rgb16',
                      '--per-pixel', '--cull-behind', '--no-show', '--output', path,
                      '--log-level', 'WARNING'])
            with PIM.open(path) as im:
                self.assertEqual(im.getpixel((5, 5)), (0, 0, 255))

    def test_render_with_custom_scene(self):
        scene = raycaster.Scene([raycaster.Sphere([0, 0, -3], 0.8, raycaster.RED)])
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'out.png')
            cli.render(raycaster.OrthoCamera(), scene,
                       ['--width', '10', '--height', '10', '--cull-behind', '--no-show',
                        '--output', path, '--log-level', 'WARNING'])
            with PIM.open(path) as im:
                # culled, so only the background remains
                self.assertEqual(im.getpixel((5, 5)), (0, 0, 25))


if __name__ == '__main__':
    unittest.main()
