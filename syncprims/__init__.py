"""Thread-safe timers, a multi-producer queue and a message bus, with a small HTTP server and a word counter."""

__version__ = "0.1.0"