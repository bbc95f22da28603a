# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.20
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/cli/__init__.py

"""Command Line Interface package for zenjournal."""

from .main import app

__all__ = ['app']
