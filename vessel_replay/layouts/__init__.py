"""
Layout definitions sub-package for vessel-replay.

Contains YAML files that define the parsing constants for each known
dataset format. The loader module (layout_registry.py in the parent
package) reads these files at runtime.
"""
