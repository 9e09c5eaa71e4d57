"""Core value types, errors and configuration shared by the codec.

Submodules are imported directly (``eui_protocol.core.types`` etc.); the
package itself re-exports nothing so that the wire layer can depend on
the leaf modules without import cycles.
"""
