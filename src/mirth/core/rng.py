"""Keyed pseudorandom generator for reproducible parallel rendering.

Every trace (one camera ray's full evaluation) owns a 32-bit generator state
seeded from ``(seed, pixel_index, sample_index)``. The state is an ordinary
value: functions that consume randomness take it as an argument and return the
advanced state alongside their result, so no generator is ever shared between
pixels and the image does not depend on thread scheduling.

Seeding mixes the key with Wang's integer hash; draws use a xorshift32 step.

Example:
    >>> @ti.kernel
    ... def fill(out: ti.template()):
    ...     for i in out:
    ...         state = rng_seed(ti.u32(7), ti.cast(i, ti.u32), ti.u32(0))
    ...         u, state = rng_next_float(state)
    ...         out[i] = u
"""

import taichi as ti

# 2^-24: maps the top 24 bits of a draw onto [0, 1)
_INV_2_POW_24 = 1.0 / 16777216.0


@ti.func
def wang_hash(key: ti.u32) -> ti.u32:
    """Wang's 32-bit integer hash."""
    h = key
    h = (h ^ ti.u32(61)) ^ (h >> ti.u32(16))
    h = h * ti.u32(9)
    h = h ^ (h >> ti.u32(4))
    h = h * ti.u32(0x27D4EB2D)
    h = h ^ (h >> ti.u32(15))
    return h


@ti.func
def xorshift32(state: ti.u32) -> ti.u32:
    x = state
    x = x ^ (x << ti.u32(13))
    x = x ^ (x >> ti.u32(17))
    x = x ^ (x << ti.u32(5))
    return x


@ti.func
def rng_seed(seed: ti.u32, pixel_index: ti.u32, sample_index: ti.u32) -> ti.u32:
    """Derive the generator state for one trace.

    Args:
        seed: Render-wide seed.
        pixel_index: Linear pixel index (``y * width + x``).
        sample_index: Index of the sample pass.

    Returns:
        A non-zero 32-bit state.
    """
    h = wang_hash(seed)
    h = wang_hash(h ^ pixel_index)
    h = wang_hash(h ^ sample_index)
    # xorshift has a fixed point at zero
    state = h
    if state == ti.u32(0):
        state = ti.u32(1)
    return state


@ti.func
def rng_next_float(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Args:
        state: Current generator state.

    Returns:
        A tuple (u, new_state).
    """
    x = xorshift32(state)
    u = ti.cast(x >> ti.u32(8), ti.f32) * _INV_2_POW_24
    return u, x
