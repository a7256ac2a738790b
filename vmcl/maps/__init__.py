"""
Vector map loading and storage.
"""

from .vector_map import VectorMap, load_vector_map, parse_vector_map, save_vector_map

__all__ = [
    "VectorMap",
    "load_vector_map",
    "parse_vector_map",
    "save_vector_map",
]
