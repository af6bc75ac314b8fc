"""BAMI application-tracking backend: cases, document intake, AI reading pipeline and live narration."""

__version__ = "0.1.0"
