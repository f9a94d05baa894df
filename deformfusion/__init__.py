"""Embedded deformation graph, sparse Gauss-Newton solving and camera utilities for surfel mapping."""

__version__ = "0.1.0"