"""Experiment matrix for token scheme probing."""

from .matrix import ExperimentMatrix, base_parameters, default_variants, load_variants

__all__ = ["ExperimentMatrix", "base_parameters", "default_variants", "load_variants"]
