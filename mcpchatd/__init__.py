"""mcpchatd - REST daemon exposing tool-calling chat over HTTP."""

__version__ = "0.1.0"
