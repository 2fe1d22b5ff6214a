"""FocusFlow local state core: namespaced task, progress and preference stores."""

__version__ = "0.1.0"
