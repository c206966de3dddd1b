"""Pure domain layer: value objects and decision functions, zero I/O."""
