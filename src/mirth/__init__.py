"""Taichi-based offline ray tracer for JSON scene descriptions.

Scenes are built from spheres and quads placed by affine transforms, shaded
by constant textures and Lambertian materials, viewed through a thin-lens
camera and rendered with an ambient occlusion or path tracing integrator.

Subpackages:
    core: Rays, random numbers, sampling, integrators and the sample loop
    geometry: Transforms and shape primitives with their intersection routines
    materials: Textures and material models
    camera: Thin-lens camera and primary ray generation
    scene: Objects, object groups, the scene manager and JSON scene parsing
    preview: Tone mapping and image export

``config.init_taichi`` must run before importing the modules that declare
fields (camera, materials, scene, core.integrator).
"""

__version__ = "0.1.0"
