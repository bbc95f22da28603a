# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.20
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/__init__.py

"""zenjournal - a journal mirrored to a cloud drive."""
