"""Scene module: objects, object groups and scene descriptions.

Components:
    objects: Object and ObjectGroup, stored in an arena of Taichi fields
    manager: SceneManager tying camera, objects and integrator together
    parsing: JSON scene description loading

Submodules declare fields, so import them directly once Taichi is
initialized:
    >>> from src.mirth.scene.parsing import load_scene_file
"""
