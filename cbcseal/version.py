"""Runtime engine version; setup.py reads the same constant."""

from .main import cbcseal

__version__ = cbcseal.ENGINE_VERSION


__all__ = ["__version__"]
