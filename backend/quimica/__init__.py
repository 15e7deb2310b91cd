"""Chemistry e-learning backend"""
__version__ = "0.1.0"
