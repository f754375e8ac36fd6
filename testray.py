import unittest
import numpy as np
from raycaster import *
from utils import normalize, vec, clamp_unit, length, length_squared


def three_sphere_scene(reverse=False):
    surfs = [
        Sphere(vec([0.3, 0, 5]), 0.5, GREEN),
        Sphere(vec([0.2, 0.2, 3]), 0.2, BLUE),
        Sphere(vec([-0.2, 0, 4]), 0.3, RED),
    ]
    if reverse:
        surfs.reverse()
    return Scene(surfs)


class TestVectorMath(unittest.TestCase):

    def test_normalize(self):
        np.testing.assert_almost_equal(normalize(vec([3, 0, 4])), [0.6, 0, 0.8])
        np.testing.assert_almost_equal(
            normalize(vec([[2, 0, 0], [0, 0, -5]])), [[1, 0, 0], [0, 0, -1]])

    def test_length(self):
        self.assertEqual(length_squared(vec([1, 2, 2])), 9.0)
        self.assertEqual(length(vec([1, 2, 2])), 3.0)
        np.testing.assert_array_equal(length(vec([[3, 4, 0], [0, 0, 0]])), [5.0, 0.0])

    def test_normalize_zero_is_nan(self):
        self.assertTrue(np.all(np.isnan(normalize(vec([0, 0, 0])))))

    def test_clamp_unit(self):
        np.testing.assert_array_equal(
            clamp_unit([-0.5, 0.25, 1.2, np.nan]), [0.0, 0.25, 1.0, 0.0])


class TestSphereIntersect(unittest.TestCase):

    def confirm_hit(self, sphere, ray):
        # make sure hit is self-consistent, then return it
        hit = sphere.intersect(ray)
        self.assertLess(hit.t, np.inf)
        np.testing.assert_almost_equal(ray.origin + hit.t * ray.direction, hit.point)
        np.testing.assert_almost_equal(normalize(hit.point - sphere.center), hit.normal)
        self.assertAlmostEqual(np.linalg.norm(hit.point - sphere.center), sphere.radius)
        np.testing.assert_array_equal(hit.color, sphere.color)
        return hit

    def test_unitsphere_hits(self):
        unit_sphere = Sphere(vec([0, 0, 0]), 1.0, RED)
        # dead center hit
        hit = self.confirm_hit(unit_sphere, Ray(vec([2.0, 0.0, 0.0]), vec([-1.0, 0.0, 0.0])))
        self.assertAlmostEqual(hit.t, 1.0)
        np.testing.assert_almost_equal(hit.normal, [1, 0, 0])
        # off center hit
        hit = self.confirm_hit(unit_sphere, Ray(vec([1.0, 0.5, 0.0]), vec([-1.0, 0.0, 0.0])))
        self.assertAlmostEqual(hit.t, 1 - np.sin(np.pi / 3))
        # center hit from off axis
        d = normalize(vec([-2.0, -3.0, -4.0]))
        hit = self.confirm_hit(unit_sphere, Ray(vec([2.0, 3.0, 4.0]), d))
        self.assertAlmostEqual(hit.t, np.sqrt(29) - 1)

    def test_unitsphere_misses(self):
        unit_sphere = Sphere(vec([0, 0, 0]), 1.0, RED)
        # on axis miss
        hit = unit_sphere.intersect(Ray(vec([2.0, 3.0, 0.0]), vec([-1.0, 0.0, 0.0])))
        self.assertIs(hit, no_hit)
        self.assertEqual(hit.t, np.inf)

    def test_origin_on_surface_facing_center(self):
        sphere = Sphere(vec([0, 0, 5]), 0.5, GREEN)
        hit = self.confirm_hit(sphere, Ray(vec([0, 0, 4.5]), FORWARD))
        self.assertEqual(hit.t, 0.0)
        np.testing.assert_array_equal(hit.normal, [0, 0, -1])

    def test_near_root_is_used_from_inside(self):
        # the far root is never chosen, so from the center the hit lies behind
        sphere = Sphere(vec([0, 0, 5]), 0.5, GREEN)
        hit = sphere.intersect(Ray(vec([0, 0, 5]), FORWARD))
        self.assertAlmostEqual(hit.t, -0.5)
        np.testing.assert_almost_equal(hit.point, [0, 0, 4.5])

    def test_start_excludes_behind_hits(self):
        sphere = Sphere(vec([0, 0, -3]), 0.5, RED)
        self.assertAlmostEqual(sphere.intersect(Ray(vec([0, 0, 0]), FORWARD)).t, -3.5)
        self.assertIs(sphere.intersect(Ray(vec([0, 0, 0]), FORWARD, start=0.)), no_hit)

    def test_batched_matches_single(self):
        sphere = Sphere(vec([0.3, 0, 5]), 0.5, GREEN)
        origins = vec([[0.3, 0, 0], [0.5, 0.1, 0], [2, 2, 0], [0.3, 0, 7]])
        ts = sphere.intersect_rays(Ray(origins, FORWARD))
        for origin, t in zip(origins, ts):
            self.assertAlmostEqual(sphere.intersect(Ray(origin, FORWARD)).t, t)
        self.assertEqual(ts[2], np.inf)

    def test_sphere_is_immutable(self):
        sphere = Sphere(vec([0, 0, 5]), 0.5, GREEN)
        with self.assertRaises(ValueError):
            sphere.center[0] = 1.0
        with self.assertRaises(ValueError):
            sphere.color[1] = 0.5


class TestScene(unittest.TestCase):

    def test_empty_scene_misses(self):
        scene = Scene([])
        self.assertIs(scene.intersect(Ray(vec([0, 0, 0]), FORWARD)), no_hit)
        t, index = scene.intersect_rays(Ray(vec([[0, 0, 0], [1, 1, 0]]), FORWARD))
        np.testing.assert_array_equal(index, [-1, -1])
        np.testing.assert_array_equal(t, [np.inf, np.inf])

    def test_nearest_hit(self):
        scene = three_sphere_scene()
        hit = scene.intersect(Ray(vec([0.2, 0.2, 0]), FORWARD))
        self.assertEqual(hit.index, 1)
        self.assertIs(scene[hit.index], scene.surfs[1])
        self.assertAlmostEqual(hit.t, 2.8)

    def test_nearest_hit_ignores_insertion_order(self):
        near = Sphere(vec([0, 0, 3]), 0.5, BLUE)
        far = Sphere(vec([0, 0, 3.6]), 0.5, RED)
        ray = Ray(vec([0, 0, 0]), FORWARD)
        for surfs in ([near, far], [far, near]):
            scene = Scene(surfs)
            hit = scene.intersect(ray)
            self.assertIs(scene[hit.index], near)
            self.assertAlmostEqual(hit.t, 2.5)
            np.testing.assert_array_equal(render_pixel(0, 0, scene), BLUE)

    def test_equal_distance_first_inserted_wins(self):
        a = Sphere(vec([0, 0, 3]), 0.5, BLUE)
        b = Sphere(vec([0, 0, 3]), 0.5, RED)
        ray = Ray(vec([0, 0, 0]), FORWARD)
        self.assertEqual(Scene([a, b]).intersect(ray).index, 0)
        t, index = Scene([a, b]).intersect_rays(Ray(vec([[0, 0, 0]]), FORWARD))
        np.testing.assert_array_equal(index, [0])

    def test_intersect_rays_matches_intersect(self):
        scene = three_sphere_scene()
        origins = vec([[0.2, 0.2, 0], [0.3, 0, 0], [-0.2, 0, 0], [0.9, 0.9, 0], [-0.1, 0.05, 0]])
        ts, indices = scene.intersect_rays(Ray(origins, FORWARD))
        for origin, t, index in zip(origins, ts, indices):
            hit = scene.intersect(Ray(origin, FORWARD))
            self.assertAlmostEqual(hit.t, t)
            self.assertEqual(-1 if hit.index is None else hit.index, index)


class TestBehindOrigin(unittest.TestCase):
    # A sphere behind the camera plane has a negative near root. Both the
    # faithful (no culling) and the corrected (cull_behind) behavior are pinned.

    def setUp(self):
        self.scene = Scene([
            Sphere(vec([0, 0, 5]), 0.5, GREEN),
            Sphere(vec([0, 0, -3]), 0.5, RED),
        ])

    def test_faithful_mode_keeps_hits_behind(self):
        camera = OrthoCamera()
        hit = self.scene.intersect(camera.generate_ray(0, 0))
        self.assertEqual(hit.index, 1)
        self.assertAlmostEqual(hit.t, -3.5)
        np.testing.assert_array_equal(render_pixel(0, 0, self.scene, camera), RED)

    def test_corrected_mode_discards_hits_behind(self):
        camera = OrthoCamera(cull_behind=True)
        hit = self.scene.intersect(camera.generate_ray(0, 0))
        self.assertEqual(hit.index, 0)
        self.assertAlmostEqual(hit.t, 4.5)
        np.testing.assert_array_equal(render_pixel(0, 0, self.scene, camera), GREEN)

    def test_inside_sphere(self):
        scene = Scene([Sphere(vec([0, 0, 0]), 0.5, GREEN)])
        np.testing.assert_array_equal(render_pixel(0, 0, scene), GREEN)
        np.testing.assert_array_equal(
            render_pixel(0, 0, scene, OrthoCamera(cull_behind=True)), BACKGROUND_COLOR)


class TestShading(unittest.TestCase):

    def test_miss_is_background(self):
        scene = three_sphere_scene()
        for x, y in [(0.9, 0.9), (-0.9, -0.7), (0.0, 0.7)]:
            np.testing.assert_array_equal(render_pixel(x, y, scene), [0.0, 0.0, 0.1])

    def test_head_on_shade_is_full_color(self):
        sphere = Sphere(vec([0, 0, 5]), 0.5, vec([0.2, 0.4, 0.6]))
        ray = Ray(vec([0, 0, 4.5]), FORWARD)
        scene = Scene([sphere])
        color = shade(ray, scene.intersect(ray), scene)
        np.testing.assert_allclose(color, 1.0 * sphere.color)

    def test_grazing_shade(self):
        # at 60 degrees off axis the normal has z = -cos(60)
        sphere = Sphere(vec([0, 0, 5]), 1.0, vec([1, 1, 1]))
        scene = Scene([sphere])
        color = render_pixel(np.sin(np.pi / 3), 0, scene)
        np.testing.assert_allclose(color, [0.5, 0.5, 0.5])

    def test_unnormalized_direction_scales_shade(self):
        sphere = Sphere(vec([0, 0, 5]), 0.5, vec([0.2, 0.2, 0.2]))
        scene = Scene([sphere])
        ray = Ray(vec([0, 0, 0]), vec([0, 0, 2]))
        hit = scene.intersect(ray)
        np.testing.assert_allclose(shade(ray, hit, scene), [0.4, 0.4, 0.4])
        # shade 2 is clamped into range
        green_scene = Scene([Sphere(vec([0, 0, 5]), 0.5, GREEN)])
        camera = OrthoCamera(direction=vec([0, 0, 2]))
        np.testing.assert_array_equal(render_pixel(0, 0, green_scene, camera), GREEN)

    def test_degenerate_normal_shades_to_black(self):
        # a zero radius sphere sitting on the ray origin: the normal is NaN
        scene = Scene([Sphere(vec([0, 0, 0]), 0.0, vec([1, 1, 1]))])
        with np.errstate(invalid='ignore'):
            color = render_pixel(0, 0, scene)
        np.testing.assert_array_equal(color, [0, 0, 0])

    def test_golden_three_spheres(self):
        # device (0.2, 0.2) lines up with the small blue sphere at z=3, head on
        scene = three_sphere_scene()
        hit = scene.intersect(OrthoCamera().generate_ray(0.2, 0.2))
        self.assertIs(scene[hit.index], scene.surfs[1])
        self.assertAlmostEqual(hit.t, 2.8)
        np.testing.assert_allclose(render_pixel(0.2, 0.2, scene), [0.0, 0.0, 1.0])
        np.testing.assert_allclose(render_pixel(0.2, 0.2, three_sphere_scene(reverse=True)),
                                   [0.0, 0.0, 1.0])

    def test_golden_green_and_red(self):
        scene = default_scene()
        # green center column, head on
        np.testing.assert_allclose(render_pixel(0.3, 0.0, scene), GREEN)
        # red sphere 0.15 off axis: shade = sqrt(1 - (0.15/0.3)^2)
        np.testing.assert_allclose(render_pixel(-0.05, 0.0, scene),
                                   np.sqrt(0.75) * RED)


class TestCamera(unittest.TestCase):

    def test_device_coords(self):
        cam = OrthoCamera()
        self.assertEqual(cam.device_coords(0, 0, 640, 480), (-1.0, -0.75))
        self.assertEqual(cam.device_coords(320, 240, 640, 480), (0.0, 0.0))
        x, y = cam.device_coords(639, 479, 640, 480)
        self.assertAlmostEqual(x, 2 * (639 / 640 - 0.5))
        self.assertAlmostEqual(y, 2 * 0.75 * (479 / 480 - 0.5))

    def test_only_y_is_aspect_scaled(self):
        cam = OrthoCamera()
        self.assertEqual(cam.device_coords(0, 0, 100, 200), (-1.0, -2.0))
        self.assertEqual(cam.device_coords(0, 0, 200, 100), (-1.0, -0.5))

    def test_generate_ray(self):
        ray = OrthoCamera().generate_ray(0.25, -0.5)
        np.testing.assert_array_equal(ray.origin, [0.25, -0.5, 0])
        np.testing.assert_array_equal(ray.direction, [0, 0, 1])
        self.assertEqual(ray.start, -np.inf)
        self.assertEqual(OrthoCamera(cull_behind=True).generate_ray(0, 0).start, 0.)

    def test_generate_rays(self):
        cam = OrthoCamera()
        ray = cam.generate_rays(4, 3)
        self.assertEqual(ray.origin.shape, (3, 4, 3))
        for i in range(3):
            for j in range(4):
                x, y = cam.device_coords(j, i, 4, 3)
                np.testing.assert_array_equal(ray.origin[i, j], [x, y, 0])


if __name__ == '__main__':
    unittest.main()
