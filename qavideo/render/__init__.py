"""Slide rendering components."""

from .slides import SlideRenderer, SlideStyle

__all__ = ["SlideRenderer", "SlideStyle"]
