"""
MemeForge - Meme editor and AI meme generator desktop client.

This package contains the main application modules:
- core: Application core and wiring
- ui: Main window and dialogs
- editor: Text-overlay editor, gesture controller and compositor
- services: Application services (config, logging, API, session)
"""

__version__ = "0.1.0"
