"""User-facing command-line surface."""

from osgi_forge.ui.render import CLIRenderer, create_renderer

__all__ = ["CLIRenderer", "create_renderer"]
