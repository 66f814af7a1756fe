from .seed import set_seed, make_rng

__all__ = [
    "set_seed",
    "make_rng",
]
