"""Utilities package - Flat structure (no nested directories)"""

# Hash utilities
from .hash_utils import hash_string, generate_cache_key

# Resource loading
from .resource_loader import load_yaml_resource, load_classification_vocabulary

__all__ = [
    # hash
    "hash_string",
    "generate_cache_key",
    # resources
    "load_yaml_resource",
    "load_classification_vocabulary",
]
