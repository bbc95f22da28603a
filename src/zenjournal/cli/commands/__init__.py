# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.20
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/cli/commands/__init__.py

"""
Command handlers for zenjournal CLI operations, separated from the CLI
interface layer:

- info: Read-only commands (list, show, status, validate-config)
- actions: State-changing commands (new, edit, delete, export, login, logout, sync, push)
"""
