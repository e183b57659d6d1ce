"""Core services for the depot."""

from .template import TemplateResolver, render

__all__ = ["TemplateResolver", "render"]
