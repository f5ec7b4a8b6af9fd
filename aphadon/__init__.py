"""Aphadon — terminal dotfiles installer."""

__version__ = "0.1.0"
