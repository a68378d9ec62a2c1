"""
nfckeys - turn NFC tag taps into key presses.

Tap a tag on a reader and the configured key is pressed in the foreground
application, e.g. to advance a slide deck. Unknown tags are assigned
interactively the first time they are seen and remembered in a JSON file.

The package is organised as:

- Reader adapters (`readers`): nfcpy hardware and a mock reader
- Key injection backends (`injectors`): macOS, Windows, pynput, console
- Assignment prompts (`prompts`)
- Mapping store, action registry and dispatch engine (`core`)
- Command-line entry point (`cli`)
"""

from .core import Config, DispatchEngine, MappingStore, create_engine

__all__ = ["Config", "DispatchEngine", "MappingStore", "create_engine"]
__version__ = "0.1.0"
