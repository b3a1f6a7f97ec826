"""
Browser module for polyclaim.

Provides persistent-profile browser sessions built on top of Camoufox (a
hardened Firefox fork) and Playwright.

- **BrowserManager** – launches one browser per claim run bound to the
  persistent profile directory and guarantees cleanup on every exit path.

Submodules:
    instance: ``BrowserManager`` class.
"""

from .instance import BrowserManager

__all__ = ["BrowserManager"]
