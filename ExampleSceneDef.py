import raycaster
from ImLite import Image
from utils import vec


class ExampleSceneDef(object):
    def __init__(self, camera, scene):
        self.camera = camera
        self.scene = scene

    def render(self, output_path=None, output_shape=None, pixel_format=None, per_pixel=False):
        """Render the scene to an Image, or write it to output_path if one is given."""
        if output_shape is None:
            output_shape = [128, 128]
        if pixel_format is None:
            pixel_format = raycaster.PixelFormat.rgb8()
        height, width = output_shape
        buffer = raycaster.render_frame(width, height, pixel_format, scene=self.scene,
                                        camera=self.camera, per_pixel=per_pixel)
        im = Image.FromFrameBuffer(raycaster.FrameInfo(width, height, pixel_format), buffer)
        if output_path is None:
            return im
        im.writeToFile(output_path)


def SingleSphereExample(cull_behind=False):
    # One red sphere, slightly right of center
    scene = raycaster.Scene([
        raycaster.Sphere(vec([0.3, 0, 5]), 0.5, raycaster.RED),
    ])
    camera = raycaster.OrthoCamera(cull_behind=cull_behind)
    return ExampleSceneDef(camera=camera, scene=scene)


def ThreeSpheresExample(cull_behind=False):
    # green at the back, red in the middle, small blue up front
    camera = raycaster.OrthoCamera(cull_behind=cull_behind)
    return ExampleSceneDef(camera=camera, scene=raycaster.default_scene())


def BehindCameraExample(cull_behind=False):
    # The large sphere sits behind the z=0 camera plane. Without culling its near
    # root is negative and it hides the blue sphere in front of the camera.
    scene = raycaster.Scene([
        raycaster.Sphere(vec([0, 0, 4]), 0.4, raycaster.BLUE),
        raycaster.Sphere(vec([0, 0, -3]), 0.8, raycaster.RED),
    ])
    camera = raycaster.OrthoCamera(cull_behind=cull_behind)
    return ExampleSceneDef(camera=camera, scene=scene)


EXAMPLES = {
    'single': SingleSphereExample,
    'three': ThreeSpheresExample,
    'behind': BehindCameraExample,
}
