"""Provision a Raspberry Pi as a USB mass-storage gadget shared over Samba."""

from .__version__ import __version__


__all__ = ["__version__"]
