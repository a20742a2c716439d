"""kie-music: generation tracking backend for the KIE music API."""

__version__ = "0.1.0"
