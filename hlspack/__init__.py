"""HLS packager helpers for probing, ladder planning, encoding, playlists and publishing."""

__all__ = [
    "config",
    "errors",
    "probe",
    "ladder",
    "filters",
    "encoder",
    "playlist",
    "storage",
    "publisher",
    "monitoring",
    "workspace",
    "orchestrator",
]
