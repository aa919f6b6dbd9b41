"""Pure folder-tree logic — no I/O."""
