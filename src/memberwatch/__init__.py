"""memberwatch: track membership of keyword-matched WhatsApp groups."""

__version__ = "0.1.0"
