"""Image and pool link extraction for yande.re pages."""

__version__ = "0.1.0"
