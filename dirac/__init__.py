"""DIRAC — AI-powered terminal."""

__version__ = "0.1.0"
