"""SessionTrack: scheduling and messaging backend for musicians,
producers and studios."""

__version__ = "0.1.0"
