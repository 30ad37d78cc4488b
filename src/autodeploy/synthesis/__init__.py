"""Terraform template synthesis from validated plans."""

from .hcl import escape_string
from .synthesizer import TemplateBundle, synthesize
from .writer import write_bundle

__all__ = ["synthesize", "TemplateBundle", "write_bundle", "escape_string"]
