"""subtrack — subtitle resolution and playback sync for hosted videos."""

__version__ = "0.1.0"
