"""Nintendo Switch Opus containers, their game-specific wrappers, and WAV files."""

__version__ = "1.2.0"