"""wbstree.tools package

Command-line utilities over snapshot JSON files (outline ops, validation).

Design note:
  Keep this package's __init__ free of eager imports to avoid side-effects at
  import time (important for module execution via `python -m ...`).
"""

__all__: list[str] = []
