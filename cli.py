"""Command line entry point: render an example scene, show it, optionally save it."""

import argparse
import logging
import sys

import raycaster
from ExampleSceneDef import EXAMPLES, ExampleSceneDef
from ImLite import Image, present

logger = logging.getLogger(__name__)

WIDTH = 640
HEIGHT = 480

PIXEL_FORMATS = {
    'rgb8': raycaster.PixelFormat.rgb8,
    'rgba8': raycaster.PixelFormat.rgba8,
    'rgb16': raycaster.PixelFormat.rgb16,
}


def _positive_int(text):
    value = int(text)
    if value <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer, got {}".format(text))
    return value


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description="Ray cast a scene of spheres into an image")
    parser.add_argument("--scene", choices=sorted(EXAMPLES), default="three",
                        help="Which example scene to render (default: three)")
    parser.add_argument("--width", type=_positive_int, default=WIDTH,
                        help="Image width in pixels (default: {})".format(WIDTH))
    parser.add_argument("--height", type=_positive_int, default=HEIGHT,
                        help="Image height in pixels (default: {})".format(HEIGHT))
    parser.add_argument("--format", choices=sorted(PIXEL_FORMATS), default="rgb8",
                        help="Pixel format of the frame buffer (default: rgb8)")
    parser.add_argument("--output", default=None,
                        help="Also write the frame to this image file")
    parser.add_argument("--no-show", action="store_true",
                        help="Do not open a window")
    parser.add_argument("--per-pixel", action="store_true",
                        help="Shade one pixel at a time instead of the whole frame at once")
    parser.add_argument("--cull-behind", action="store_true",
                        help="Ignore sphere hits behind the camera plane")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging verbosity (default: INFO)")
    return parser.parse_args(argv)


def _setup_logging(level):
    logging.basicConfig(level=getattr(logging, level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _run(args, example):
    pixel_format = PIXEL_FORMATS[args.format]()
    frame_info = raycaster.FrameInfo(args.width, args.height, pixel_format)
    buffer = raycaster.render_frame(args.width, args.height, pixel_format,
                                    scene=example.scene, camera=example.camera,
                                    per_pixel=args.per_pixel)
    if args.output:
        Image.FromFrameBuffer(frame_info, buffer).writeToFile(args.output)
    if not args.no_show:
        if present(frame_info, buffer, title="image"):
            logger.info("closed with escape")
    return 0


def render(camera, scene, argv=None):
    """Render scene through camera with the settings given on the command line."""
    args = parse_arguments(argv)
    _setup_logging(args.log_level)
    if args.cull_behind and not camera.cull_behind:
        camera = raycaster.OrthoCamera(camera.direction, cull_behind=True)
    return _run(args, ExampleSceneDef(camera=camera, scene=scene))


def main(argv=None):
    args = parse_arguments(argv)
    _setup_logging(args.log_level)
    example = EXAMPLES[args.scene](cull_behind=args.cull_behind)
    logger.debug("scene %r: %d spheres", args.scene, len(example.scene))
    return _run(args, example)


if __name__ == "__main__":
    sys.exit(main())
