import numpy as np
from utils import vec, normalize, length_squared


class Hit:
    def __init__(self, t, point=None, normal=None, color=None, index=None):
        """Create a Hit with the given data.

        Parameters:
          t : float -- the t value of the intersection along the ray (may be negative)
          point : (3,) -- the 3D point where the intersection happens
          normal : (3,) -- the outward-facing unit normal to the sphere at the hit point
          color : (3,) -- the color of the surface
          index : int -- position of the hit sphere in its Scene, set by the Scene
        """
        self.t = t
        self.point = point
        self.normal = normal
        self.color = color
        self.index = index

# Value to represent absence of an intersection
no_hit = Hit(np.inf)


def _frozen(a):
    a = vec(a)
    a.setflags(write=False)
    return a


class Sphere:

    def __init__(self, center, radius, color):
        """Create a sphere with the given center, radius and color.

        Parameters:
          center : (3,) -- a 3D point specifying the sphere's center
          radius : float -- the sphere's radius
          color : (3,) -- RGB color with components in [0, 1]
        """
        self.center = _frozen(center)
        self.radius = float(radius)
        self.color = _frozen(color)

    def __repr__(self):
        return "Sphere(center={}, radius={}, color={})".format(
            self.center.tolist(), self.radius, self.color.tolist())

    def near_root(self, origin, direction):
        """Distance to the near root of the ray/sphere quadratic, inf on a miss.

        origin may be a single point or a batch of shape (..., 3). The
        direction is used as-is (no 1/|d|^2 term), and the far root is never
        returned, so a ray starting inside the sphere reports the surface
        behind it.
        """
        oc = origin - self.center
        b = np.sum(direction * oc, axis=-1)
        discriminant = b * b - (length_squared(oc) - self.radius * self.radius)
        with np.errstate(invalid='ignore'):
            return np.where(discriminant < 0, np.inf, -b - np.sqrt(discriminant))

    def intersect(self, ray):
        """Computes the near intersection between a ray and this sphere.

        Parameters:
          ray : Ray -- the ray to intersect with the sphere
        Return:
          Hit -- the hit data, or no_hit if the near root falls outside [ray.start, ray.end)
        """
        t = float(self.near_root(ray.origin, ray.direction))
        if not (ray.start <= t < ray.end):
            return no_hit
        point = ray.origin + t * ray.direction
        normal = normalize(point - self.center)
        return Hit(t, point, normal, self.color)

    def intersect_rays(self, ray):
        """Near-root distances for a ray whose origin is a batch of points.

        Misses and roots outside [ray.start, ray.end) come back as inf.
        """
        t = self.near_root(ray.origin, ray.direction)
        return np.where((t >= ray.start) & (t < ray.end), t, np.inf)
