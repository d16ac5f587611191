# edhex/__init__.py

__version__ = "0.1.0"

from .editor import HexEditor, initial_state
from .grammar import recognize
from .state import EditorState, Preferences
from .config import deep_merge, load_config

# Package-level shortcuts for embedding the editor or driving it from scripts
__all__ = [
    'HexEditor',
    'initial_state',
    'recognize',
    'EditorState',
    'Preferences',
    'deep_merge',
    'load_config',
]
