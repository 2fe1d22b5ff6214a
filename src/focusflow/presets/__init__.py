"""Focus presets (namespaced)."""
