"""Compile and run single-file Rust scripts through Cargo."""

__version__ = "0.35.0"

__all__ = ["__version__"]